"""
Database service: engine lifecycle, readiness and collection access.

Explicitly constructed and passed to the services that need it (no module-level
singleton). The ingestion endpoints check is_ready() before touching any envelope.
"""

from __future__ import annotations

import threading

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from backend_booty.booty_logging import get_logger
from backend_booty.core.exceptions import DatabaseNotReady
from backend_booty.database.store import Base, SqlDocumentStore

logger = get_logger(__name__)


def _redact_url(url: str) -> str:
    return url.split("?")[0].split("//")[-1].split("@")[-1]


class DatabaseService:
    """Owns the SQLAlchemy engine and hands out per-collection document stores."""

    def __init__(self, database_url: str) -> None:
        self.database_url = database_url
        self._engine: Engine | None = None
        self._session_factory: sessionmaker | None = None
        self._lock = threading.Lock()
        self._stores: dict[str, SqlDocumentStore] = {}
        self._ready = False

    def initialize(self) -> bool:
        """
        Create the engine and tables. Safe to call on every startup.
        Returns readiness; failures are logged, not raised.
        """
        if self._ready:
            return True
        connect_args = {}
        if self.database_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        try:
            engine = create_engine(self.database_url, connect_args=connect_args, pool_pre_ping=True)
            Base.metadata.create_all(bind=engine)
        except SQLAlchemyError as e:
            logger.error("store_init_failed", url=_redact_url(self.database_url), error=str(e))
            return False
        self._engine = engine
        self._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
        self._ready = True
        logger.info("store_ready", url=_redact_url(self.database_url))
        return True

    def is_ready(self) -> bool:
        return self._ready

    def collection(self, name: str) -> SqlDocumentStore:
        """Store for one collection. Raises DatabaseNotReady before initialize() succeeded."""
        if not self._ready or self._session_factory is None:
            raise DatabaseNotReady()
        store = self._stores.get(name)
        if store is None:
            store = SqlDocumentStore(name, self._session_factory, self._lock)
            self._stores[name] = store
        return store

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._session_factory = None
        self._stores.clear()
        self._ready = False
