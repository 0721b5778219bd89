"""
Document store — JSON records keyed by transaction signature, one collection per domain.

DocumentStore is the narrow interface repositories depend on. SqlDocumentStore
implements it on SQLAlchemy: one `documents` table holding (collection, key,
JSON data). PostgreSQL when DATABASE_URL is set; otherwise SQLite.

Per-key atomicity: every write runs in one session under a process lock, so a
read-check-write in update() or upsert() cannot interleave with another writer.
"""

from __future__ import annotations

import copy
import threading
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Sequence

from sqlalchemy import JSON, Column, Integer, String, UniqueConstraint
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from backend_booty.booty_logging import get_logger
from backend_booty.core.exceptions import RecordNotFound

logger = get_logger(__name__)

Base = declarative_base()

FILTER_OPS = ("==", "<", "<=", ">", ">=")

Filter = tuple[str, str, Any]


class Document(Base):
    """One stored record: a JSON document in a named collection."""

    __tablename__ = "documents"
    __table_args__ = (UniqueConstraint("collection", "key", name="uq_documents_collection_key"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    collection = Column(String(64), nullable=False, index=True)
    key = Column(String(128), nullable=False, index=True)
    data = Column(JSON, nullable=False)
    created_at = Column(Integer, nullable=False)  # Unix
    updated_at = Column(Integer, nullable=False, index=True)  # Unix


def deep_merge(base: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of base with patch merged in; nested dicts merge, everything else replaces."""
    merged = copy.deepcopy(base)
    for key, value in patch.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class DocumentStore(ABC):
    """Keyed JSON documents of one collection."""

    @abstractmethod
    def get(self, key: str) -> dict[str, Any] | None:
        ...

    @abstractmethod
    def upsert(
        self,
        key: str,
        record: dict[str, Any],
        merge_fields: Sequence[str] | None = None,
    ) -> bool:
        """
        Write record under key. Returns True if created, False if it already existed.

        Existing documents are deep-merged with record, or with only the
        merge_fields subset of it when given.
        """

    @abstractmethod
    def query(
        self,
        filters: Sequence[Filter] = (),
        *,
        order_by: str | None = None,
        descending: bool = True,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Documents matching all (field, op, value) filters on top-level fields."""

    @abstractmethod
    def update(
        self,
        key: str,
        fields: dict[str, Any],
        check: Callable[[dict[str, Any]], None] | None = None,
    ) -> dict[str, Any]:
        """
        Merge fields into an existing document and return it.

        Raises RecordNotFound when absent. check(current) runs before the write
        inside the same transaction; an exception from it aborts the update.
        """


class SqlDocumentStore(DocumentStore):
    """DocumentStore for one collection of the `documents` table."""

    def __init__(self, collection: str, session_factory: sessionmaker, lock: threading.Lock) -> None:
        self.collection = collection
        self._session_factory = session_factory
        self._lock = lock

    @contextmanager
    def _session_scope(self) -> Iterator[Session]:
        """Single session. Commits on success, rolls back on error."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _row(self, session: Session, key: str) -> Document | None:
        return (
            session.query(Document)
            .filter(Document.collection == self.collection, Document.key == key)
            .first()
        )

    def get(self, key: str) -> dict[str, Any] | None:
        with self._session_scope() as session:
            row = self._row(session, key)
            return copy.deepcopy(row.data) if row else None

    def upsert(
        self,
        key: str,
        record: dict[str, Any],
        merge_fields: Sequence[str] | None = None,
    ) -> bool:
        now = int(time.time())
        with self._lock, self._session_scope() as session:
            row = self._row(session, key)
            if row is None:
                session.add(
                    Document(
                        collection=self.collection,
                        key=key,
                        data=copy.deepcopy(record),
                        created_at=now,
                        updated_at=now,
                    )
                )
                logger.debug("store_created", collection=self.collection, key=key)
                return True

            if merge_fields is None:
                patch = record
            else:
                patch = {f: record[f] for f in merge_fields if f in record}
            # Reassign so the JSON column is flagged dirty
            row.data = deep_merge(row.data, patch)
            row.updated_at = now
            logger.debug("store_merged", collection=self.collection, key=key, fields=sorted(patch))
            return False

    def query(
        self,
        filters: Sequence[Filter] = (),
        *,
        order_by: str | None = None,
        descending: bool = True,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        with self._session_scope() as session:
            q = session.query(Document).filter(Document.collection == self.collection)
            for field_name, op, value in filters:
                q = q.filter(_compare(field_name, op, value))
            if order_by:
                sort_key = Document.data[order_by].as_string()
                q = q.order_by(sort_key.desc() if descending else sort_key.asc())
            # Insertion order breaks ties
            q = q.order_by(Document.id.desc() if descending else Document.id.asc())
            if limit is not None:
                q = q.limit(limit)
            return [copy.deepcopy(r.data) for r in q.all()]

    def update(
        self,
        key: str,
        fields: dict[str, Any],
        check: Callable[[dict[str, Any]], None] | None = None,
    ) -> dict[str, Any]:
        with self._lock, self._session_scope() as session:
            row = self._row(session, key)
            if row is None:
                raise RecordNotFound(self.collection, key)
            if check is not None:
                check(copy.deepcopy(row.data))
            row.data = deep_merge(row.data, fields)
            row.updated_at = int(time.time())
            return copy.deepcopy(row.data)


def _compare(field_name: str, op: str, value: Any):
    """SQL expression comparing a top-level JSON field with value; accessor picked by value type."""
    if op not in FILTER_OPS:
        raise ValueError(f"Unsupported filter operator {op!r}")
    element = Document.data[field_name]
    # bool first: bool is a subclass of int
    if isinstance(value, bool):
        column = element.as_boolean()
    elif isinstance(value, int):
        column = element.as_integer()
    elif isinstance(value, float):
        column = element.as_float()
    else:
        column = element.as_string()
        value = str(value)
    if op == "==":
        return column == value
    if op == "<":
        return column < value
    if op == "<=":
        return column <= value
    if op == ">":
        return column > value
    return column >= value
