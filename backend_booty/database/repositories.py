"""
Repositories for the three game collections.

Each record is keyed by txSignature. save() is idempotent: a re-delivered
transaction refreshes its payload fields and metadata but never resets the
status, createdAt or the domain timestamps set on first write.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar

from backend_booty.booty_logging import get_logger
from backend_booty.core.exceptions import InvalidStatus, InvalidStatusTransition
from backend_booty.database.models import (
    CLUE_TRANSITIONS,
    CLUES_COLLECTION,
    SEARCH_TRANSITIONS,
    SEARCHES_COLLECTION,
    TREASURE_TRANSITIONS,
    TREASURES_COLLECTION,
    ClueStatus,
    SearchStatus,
    TreasureStatus,
)
from backend_booty.database.service import DatabaseService
from backend_booty.database.store import DocumentStore, Filter

logger = get_logger(__name__)

DEFAULT_LIST_LIMIT = 100
MAX_LIST_LIMIT = 1000


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def iso_from_unix(ts: int | None) -> str:
    if ts is None:
        return utc_now_iso()
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


def clamp_limit(limit: int | None) -> int:
    if limit is None or limit <= 0:
        return DEFAULT_LIST_LIMIT
    return min(limit, MAX_LIST_LIMIT)


class RecordRepository:
    collection_name: ClassVar[str]
    status_enum: ClassVar[type[Enum]]
    transitions: ClassVar[dict[Any, frozenset]]
    initial_status: ClassVar[Enum]
    # Fields a re-delivery may overwrite on an existing record
    refresh_fields: ClassVar[tuple[str, ...]]
    # Ledger-time field lists are ordered by, newest first
    order_field: ClassVar[str]

    def __init__(self, database: DatabaseService) -> None:
        self._database = database

    @property
    def store(self) -> DocumentStore:
        return self._database.collection(self.collection_name)

    def save(self, record: dict[str, Any]) -> bool:
        """Insert or refresh one record. Returns True when newly created."""
        signature = record["txSignature"]
        now = utc_now_iso()
        full = {"status": self.initial_status.value, **record, "createdAt": now, "updatedAt": now}
        created = self.store.upsert(
            signature,
            full,
            merge_fields=self.refresh_fields + ("metadata", "updatedAt"),
        )
        logger.info(
            "repo_saved",
            collection=self.collection_name,
            signature=signature,
            created=created,
        )
        return created

    def get(self, signature: str) -> dict[str, Any] | None:
        return self.store.get(signature)

    def _list(self, filters: list[Filter], limit: int | None) -> list[dict[str, Any]]:
        return self.store.query(
            filters,
            order_by=self.order_field,
            descending=True,
            limit=clamp_limit(limit),
        )

    def _status_fields(self, status: Any, extra: dict[str, Any]) -> dict[str, Any]:
        return {}

    def update_status(
        self,
        signature: str,
        new_status: str,
        extra: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Move a record to new_status.

        Raises InvalidStatus for a value outside the lifecycle, RecordNotFound
        when absent, InvalidStatusTransition when the lifecycle forbids the move.
        """
        try:
            status = self.status_enum(new_status)
        except ValueError:
            allowed = ", ".join(s.value for s in self.status_enum)
            raise InvalidStatus(f"Invalid status {new_status!r}; expected one of: {allowed}") from None

        def check(current: dict[str, Any]) -> None:
            current_status = self.status_enum(current.get("status", self.initial_status.value))
            if status not in self.transitions[current_status]:
                raise InvalidStatusTransition(current_status.value, status.value)

        fields = {"status": status.value, "updatedAt": utc_now_iso()}
        fields.update(self._status_fields(status, extra or {}))
        updated = self.store.update(signature, fields, check=check)
        logger.info(
            "repo_status_updated",
            collection=self.collection_name,
            signature=signature,
            status=status.value,
        )
        return updated


class TreasureRepository(RecordRepository):
    collection_name = TREASURES_COLLECTION
    status_enum = TreasureStatus
    transitions = TREASURE_TRANSITIONS
    initial_status = TreasureStatus.ACTIVE
    order_field = "hiddenAt"
    refresh_fields = ("hiddenBy", "walletAddress", "amount", "tokenType", "monsterType")

    def list(
        self,
        *,
        wallet: str | None = None,
        status: str | None = None,
        token_type: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        filters: list[Filter] = []
        if wallet:
            filters.append(("walletAddress", "==", wallet))
        if status:
            filters.append(("status", "==", status))
        if token_type:
            filters.append(("tokenType", "==", token_type))
        return self._list(filters, limit)

    def _status_fields(self, status: Any, extra: dict[str, Any]) -> dict[str, Any]:
        if status is TreasureStatus.CLAIMED:
            return {"claimDate": utc_now_iso(), "claimedBy": extra.get("claimedBy")}
        return {}


class SearchRepository(RecordRepository):
    collection_name = SEARCHES_COLLECTION
    status_enum = SearchStatus
    transitions = SEARCH_TRANSITIONS
    initial_status = SearchStatus.NOT_FOUND
    order_field = "searchedAt"
    refresh_fields = ("walletAddress", "x", "y")

    def list(
        self,
        *,
        wallet: str | None = None,
        found: bool | None = None,
        x: int | None = None,
        y: int | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        filters: list[Filter] = []
        if wallet:
            filters.append(("walletAddress", "==", wallet))
        if found is not None:
            filters.append(("found", "==", found))
        if x is not None:
            filters.append(("x", "==", x))
        if y is not None:
            filters.append(("y", "==", y))
        return self._list(filters, limit)

    def _status_fields(self, status: Any, extra: dict[str, Any]) -> dict[str, Any]:
        if status is SearchStatus.FOUND:
            fields: dict[str, Any] = {"found": True}
            if extra.get("treasureId"):
                fields["treasureId"] = extra["treasureId"]
            return fields
        return {}


class ClueRepository(RecordRepository):
    collection_name = CLUES_COLLECTION
    status_enum = ClueStatus
    transitions = CLUE_TRANSITIONS
    initial_status = ClueStatus.PENDING
    order_field = "requestedAt"
    refresh_fields = ("walletAddress", "treasureId")

    def list(
        self,
        *,
        wallet: str | None = None,
        treasure_id: str | None = None,
        status: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        filters: list[Filter] = []
        if wallet:
            filters.append(("walletAddress", "==", wallet))
        if treasure_id:
            filters.append(("treasureId", "==", treasure_id))
        if status:
            filters.append(("status", "==", status))
        return self._list(filters, limit)

    def _status_fields(self, status: Any, extra: dict[str, Any]) -> dict[str, Any]:
        if status is ClueStatus.COMPLETED:
            return {"clueText": extra.get("clueText"), "error": None}
        if status is ClueStatus.FAILED:
            return {"error": extra.get("error") or "Clue generation failed"}
        return {}
