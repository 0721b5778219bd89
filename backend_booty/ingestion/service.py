"""
Webhook ingestion service.

Takes an already-authenticated request body (one envelope or a list), checks the
database is ready, then processes envelopes one at a time: validate shape, find
the domain event, parse, upsert. Bad envelopes are skipped with a warning; only
persisted envelopes count toward `processed`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

from pydantic import ValidationError

from backend_booty.booty_logging import get_logger
from backend_booty.core.exceptions import DatabaseNotReady
from backend_booty.database import (
    ClueRepository,
    DatabaseService,
    SearchRepository,
    TreasureRepository,
)
from backend_booty.database.repositories import RecordRepository
from backend_booty.ingestion.parsers import ParsedRecord, parse_clue, parse_hide, parse_search
from backend_booty.webhook.models import (
    GET_CLUE,
    HIDE_TREASURE,
    SEARCH_TREASURE,
    GetClueEvent,
    HideTreasureEvent,
    SearchTreasureEvent,
    TypedEvent,
    WebhookEnvelope,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class IngestionRoute:
    """Everything one webhook endpoint needs to turn envelopes into records."""

    event_type: str
    event_cls: type[TypedEvent]
    parse: Callable[[WebhookEnvelope, Any], ParsedRecord]
    repository: RecordRepository
    service_name: str


@dataclass
class IngestionResult:
    processed: int = 0
    results: list[dict[str, Any]] = field(default_factory=list)
    skipped: int = 0

    def to_response(self) -> dict[str, Any]:
        return {"success": True, "processed": self.processed, "results": self.results}


class IngestionService:
    """Routes webhook bodies to the treasure, search and clue repositories."""

    def __init__(self, database: DatabaseService) -> None:
        self.database = database
        self.treasures = TreasureRepository(database)
        self.searches = SearchRepository(database)
        self.clues = ClueRepository(database)
        self.routes: dict[str, IngestionRoute] = {
            HIDE_TREASURE: IngestionRoute(
                HIDE_TREASURE, HideTreasureEvent, parse_hide, self.treasures, "Helius Webhook Handler"
            ),
            SEARCH_TREASURE: IngestionRoute(
                SEARCH_TREASURE, SearchTreasureEvent, parse_search, self.searches, "Search Webhook Handler"
            ),
            GET_CLUE: IngestionRoute(
                GET_CLUE, GetClueEvent, parse_clue, self.clues, "Clue Webhook Handler"
            ),
        }

    def is_ready(self) -> bool:
        return self.database.is_ready()

    def ingest(self, event_type: str, body: Any) -> IngestionResult:
        """
        Process one webhook request body for the given event type.

        Raises DatabaseNotReady before touching any envelope when the store is down.
        """
        route = self.routes[event_type]
        if not self.database.is_ready():
            raise DatabaseNotReady()

        items = body if isinstance(body, list) else [body]
        result = IngestionResult()
        for index, item in enumerate(items):
            record = self._process_one(route, index, item)
            if record is None:
                result.skipped += 1
                continue
            result.processed += 1
            result.results.append(record)

        logger.info(
            "webhook_batch_processed",
            game_event=event_type,
            received=len(items),
            processed=result.processed,
            skipped=result.skipped,
        )
        return result

    def _process_one(self, route: IngestionRoute, index: int, item: Any) -> dict[str, Any] | None:
        try:
            envelope = WebhookEnvelope.model_validate(item)
        except ValidationError as e:
            logger.warning(
                "webhook_envelope_invalid",
                game_event=route.event_type,
                index=index,
                errors=e.error_count(),
                error=str(e).splitlines()[0],
            )
            return None

        event = envelope.find_event(route.event_cls)
        if event is None:
            if envelope.has_untyped_event(route.event_type):
                logger.warning(
                    "webhook_event_invalid",
                    signature=envelope.signature,
                    game_event=route.event_type,
                )
            else:
                logger.info(
                    "webhook_event_absent",
                    signature=envelope.signature,
                    game_event=route.event_type,
                )
            return None

        parsed = route.parse(envelope, event)
        if not parsed.ok:
            logger.warning(
                "webhook_envelope_skipped",
                signature=envelope.signature,
                game_event=route.event_type,
                reason=parsed.reason,
            )
            return None

        created = route.repository.save(parsed.record)
        return {
            "signature": envelope.signature,
            "collection": route.repository.collection_name,
            "created": created,
        }
