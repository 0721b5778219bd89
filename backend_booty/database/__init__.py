"""
Persistence layer: SQLAlchemy-backed document store, database service and the
treasure / search / clue repositories.
"""

from backend_booty.database.repositories import (
    ClueRepository,
    SearchRepository,
    TreasureRepository,
)
from backend_booty.database.service import DatabaseService
from backend_booty.database.store import DocumentStore, SqlDocumentStore

__all__ = [
    "ClueRepository",
    "DatabaseService",
    "DocumentStore",
    "SearchRepository",
    "SqlDocumentStore",
    "TreasureRepository",
]
