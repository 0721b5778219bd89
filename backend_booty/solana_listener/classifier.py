"""
Transaction classifier — RawTransaction to ClassifiedEvent.

Decision procedure, in priority order:
1. No top-level instruction targets the game program -> Unrecognized.
2. First log line containing a known marker phrase decides the type.
3. Otherwise a structural fallback: any nonzero token-balance delta means a
   deposit (HideTreasure), none means a non-transfer call (SearchTreasure).

The procedure is total: every transaction that targets the program gets exactly
one classification.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Union

from backend_booty.booty_logging import get_logger
from backend_booty.solana_listener.models import RawTransaction

logger = get_logger(__name__)

HIDE_TREASURE = "HIDE_TREASURE"
SEARCH_TREASURE = "SEARCH_TREASURE"
GET_CLUE = "GET_CLUE"

SOURCE_LOG_MARKER = "log_marker"
SOURCE_BALANCE_FALLBACK = "balance_fallback"

# Checked in this order within a log line; the first log line with any match wins.
LOG_MARKERS: tuple[tuple[str, tuple[str, ...]], ...] = (
    (HIDE_TREASURE, ("Player hiding", "Treasure hidden")),
    (SEARCH_TREASURE, ("Player searching", "Search recorded")),
    (GET_CLUE, ("Player requesting clue", "Clue purchased")),
)


@dataclass(frozen=True)
class _GameEvent:
    signature: str
    wallet: str
    """Fee payer; the payload builder may refine it from transfers."""
    source: str
    """SOURCE_LOG_MARKER or SOURCE_BALANCE_FALLBACK."""
    marker: str | None = None

    event_type: ClassVar[str] = ""


@dataclass(frozen=True)
class HideTreasure(_GameEvent):
    event_type: ClassVar[str] = HIDE_TREASURE


@dataclass(frozen=True)
class SearchTreasure(_GameEvent):
    event_type: ClassVar[str] = SEARCH_TREASURE


@dataclass(frozen=True)
class ClueRequest(_GameEvent):
    event_type: ClassVar[str] = GET_CLUE


@dataclass(frozen=True)
class Unrecognized:
    signature: str
    reason: str

    event_type: ClassVar[str] = "UNRECOGNIZED"


ClassifiedEvent = Union[HideTreasure, SearchTreasure, ClueRequest, Unrecognized]

_VARIANTS: dict[str, type[_GameEvent]] = {
    HIDE_TREASURE: HideTreasure,
    SEARCH_TREASURE: SearchTreasure,
    GET_CLUE: ClueRequest,
}


def _match_marker(log_messages: tuple[str, ...]) -> tuple[str, str] | None:
    for line in log_messages:
        for event_type, markers in LOG_MARKERS:
            for marker in markers:
                if marker in line:
                    return event_type, marker
    return None


def classify(tx: RawTransaction, program_id: str) -> ClassifiedEvent:
    """Classify one transaction against the configured game program."""
    if not tx.targets_program(program_id):
        return Unrecognized(signature=tx.signature, reason="program_not_targeted")

    matched = _match_marker(tx.log_messages)
    if matched is not None:
        event_type, marker = matched
        event = _VARIANTS[event_type](
            signature=tx.signature,
            wallet=tx.fee_payer,
            source=SOURCE_LOG_MARKER,
            marker=marker,
        )
    elif tx.has_token_movement():
        event = HideTreasure(
            signature=tx.signature, wallet=tx.fee_payer, source=SOURCE_BALANCE_FALLBACK
        )
    else:
        event = SearchTreasure(
            signature=tx.signature, wallet=tx.fee_payer, source=SOURCE_BALANCE_FALLBACK
        )

    logger.debug(
        "classifier_result",
        signature=tx.signature,
        game_event=event.event_type,
        source=event.source,
        marker=event.marker,
    )
    return event
