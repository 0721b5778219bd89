"""
Webhook ingestion: envelope parsers and the service that persists them.
"""

from backend_booty.ingestion.parsers import ParsedRecord, parse_clue, parse_hide, parse_search
from backend_booty.ingestion.service import IngestionResult, IngestionService

__all__ = [
    "IngestionResult",
    "IngestionService",
    "ParsedRecord",
    "parse_clue",
    "parse_hide",
    "parse_search",
]
