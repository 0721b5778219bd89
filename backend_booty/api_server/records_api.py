"""
Query surface over stored game records, plus narrow status updates.

Reads go straight to the repositories; status changes are validated against
each collection's lifecycle (400 unknown status, 404 missing, 409 illegal move).
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from backend_booty.core.exceptions import RecordNotFound
from backend_booty.database.repositories import (
    DEFAULT_LIST_LIMIT,
    MAX_LIST_LIMIT,
    ClueRepository,
    RecordRepository,
    SearchRepository,
    TreasureRepository,
)
from backend_booty.ingestion.service import IngestionService

router = APIRouter(prefix="/api", tags=["records"])


class _StatusUpdate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    status: str = Field(..., min_length=1)


class TreasureStatusUpdate(_StatusUpdate):
    """PATCH /api/treasures/{signature}/status body."""

    claimed_by: str | None = None


class SearchStatusUpdate(_StatusUpdate):
    """PATCH /api/searches/{signature}/status body."""

    treasure_id: str | None = None


class ClueStatusUpdate(_StatusUpdate):
    """PATCH /api/clues/{signature}/status body."""

    clue_text: str | None = None
    error: str | None = None


def _ingestion(request: Request) -> IngestionService:
    return request.app.state.ingestion


def get_treasures(request: Request) -> TreasureRepository:
    return _ingestion(request).treasures


def get_searches(request: Request) -> SearchRepository:
    return _ingestion(request).searches


def get_clues(request: Request) -> ClueRepository:
    return _ingestion(request).clues


def _one(repo: RecordRepository, signature: str) -> dict[str, Any]:
    record = repo.get(signature)
    if record is None:
        raise RecordNotFound(repo.collection_name, signature)
    return {"success": True, "data": record}


def _many(records: list[dict[str, Any]]) -> dict[str, Any]:
    return {"success": True, "count": len(records), "data": records}


def _limit_query() -> Any:
    return Query(DEFAULT_LIST_LIMIT, ge=1, le=MAX_LIST_LIMIT)


# -----------------------------------------------------------------------------
# Treasures
# -----------------------------------------------------------------------------


@router.get("/treasures")
def list_treasures(
    wallet: str | None = None,
    status: str | None = None,
    token_type: str | None = None,
    limit: int = _limit_query(),
    repo: TreasureRepository = Depends(get_treasures),
) -> dict[str, Any]:
    """Hidden treasures, newest first."""
    return _many(repo.list(wallet=wallet, status=status, token_type=token_type, limit=limit))


@router.get("/treasures/{signature}")
def get_treasure(signature: str, repo: TreasureRepository = Depends(get_treasures)) -> dict[str, Any]:
    return _one(repo, signature)


@router.patch("/treasures/{signature}/status")
def update_treasure_status(
    signature: str,
    body: TreasureStatusUpdate,
    repo: TreasureRepository = Depends(get_treasures),
) -> dict[str, Any]:
    record = repo.update_status(signature, body.status, {"claimedBy": body.claimed_by})
    return {"success": True, "data": record}


# -----------------------------------------------------------------------------
# Searches
# -----------------------------------------------------------------------------


@router.get("/searches")
def list_searches(
    wallet: str | None = None,
    found: bool | None = None,
    x: int | None = None,
    y: int | None = None,
    limit: int = _limit_query(),
    repo: SearchRepository = Depends(get_searches),
) -> dict[str, Any]:
    """Map searches, newest first."""
    return _many(repo.list(wallet=wallet, found=found, x=x, y=y, limit=limit))


@router.get("/searches/{signature}")
def get_search(signature: str, repo: SearchRepository = Depends(get_searches)) -> dict[str, Any]:
    return _one(repo, signature)


@router.patch("/searches/{signature}/status")
def update_search_status(
    signature: str,
    body: SearchStatusUpdate,
    repo: SearchRepository = Depends(get_searches),
) -> dict[str, Any]:
    record = repo.update_status(signature, body.status, {"treasureId": body.treasure_id})
    return {"success": True, "data": record}


# -----------------------------------------------------------------------------
# Clues
# -----------------------------------------------------------------------------


@router.get("/clues")
def list_clues(
    wallet: str | None = None,
    treasure_id: str | None = None,
    status: str | None = None,
    limit: int = _limit_query(),
    repo: ClueRepository = Depends(get_clues),
) -> dict[str, Any]:
    """Clue requests, newest first."""
    return _many(repo.list(wallet=wallet, treasure_id=treasure_id, status=status, limit=limit))


@router.get("/clues/{signature}")
def get_clue(signature: str, repo: ClueRepository = Depends(get_clues)) -> dict[str, Any]:
    return _one(repo, signature)


@router.patch("/clues/{signature}/status")
def update_clue_status(
    signature: str,
    body: ClueStatusUpdate,
    repo: ClueRepository = Depends(get_clues),
) -> dict[str, Any]:
    record = repo.update_status(
        signature,
        body.status,
        {"clueText": body.clue_text, "error": body.error},
    )
    return {"success": True, "data": record}
