"""
Payload builder — ClassifiedEvent + RawTransaction to WebhookEnvelope.

Reproduces the envelope the production provider would send for the same
transaction. Fail-closed: when a required field cannot be derived (no paired
token transfer for a deposit, no coordinates for a search, no treasure id for a
clue) the event is dropped and the reason is returned as a warning.

Transfer pairing is heuristic: each balance increase is matched to an unused
decrease of the same mint and equal magnitude. Two equal-sized transfers of one
mint in a single transaction can be mis-paired.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from decimal import Decimal

from backend_booty.booty_logging import get_logger
from backend_booty.solana_listener.classifier import (
    ClassifiedEvent,
    ClueRequest,
    HideTreasure,
    SearchTreasure,
)
from backend_booty.solana_listener.models import BalanceDelta, RawTransaction
from backend_booty.webhook.models import (
    AccountData,
    GetClueData,
    GetClueEvent,
    HideTreasureData,
    HideTreasureEvent,
    SearchTreasureData,
    SearchTreasureEvent,
    TokenTransfer,
    WebhookEnvelope,
)

logger = get_logger(__name__)

GRID_MIN = -100
GRID_MAX = 100

DEFAULT_TOKEN_SYMBOL = "SPL"
# Used when the ledger reports no fee (matches the base signature fee)
DEFAULT_FEE_LAMPORTS = 5000

# "Player searching for treasure at coordinates (10, 20)" / "Search recorded at (10, 20)"
COORDINATES_RE = re.compile(r"(?:coordinates|at) \((-?\d+),\s*(-?\d+)\)")
SEARCH_ID_RE = re.compile(r"Search ID: (-?\d+)")
# "Clue purchased for treasure <id>"
TREASURE_ID_RE = re.compile(r"treasure ([A-Za-z0-9_\-]+)")


@dataclass
class EnvelopeBuild:
    """Result of building one envelope: the envelope, or None when dropped, plus warnings."""

    envelope: WebhookEnvelope | None
    warnings: list[str] = field(default_factory=list)

    @property
    def dropped(self) -> bool:
        return self.envelope is None


def in_grid(x: int, y: int) -> bool:
    return GRID_MIN <= x <= GRID_MAX and GRID_MIN <= y <= GRID_MAX


def _amount_to_wire(amount: Decimal) -> int | float:
    integral = amount.to_integral_value()
    return int(integral) if integral == amount else float(amount)


def extract_token_transfers(tx: RawTransaction) -> tuple[list[TokenTransfer], list[str]]:
    """
    Pair balance increases with equal decreases of the same mint.

    Returns (transfers, warnings). Increases with no counterpart are omitted.
    """
    deltas = tx.token_balance_deltas()
    decreases: list[BalanceDelta] = [d for d in deltas if d.delta < 0]
    used: set[int] = set()
    transfers: list[TokenTransfer] = []
    warnings: list[str] = []

    for inc in (d for d in deltas if d.delta > 0):
        match_idx = None
        for i, dec in enumerate(decreases):
            if i in used or dec.mint != inc.mint:
                continue
            if -dec.delta == inc.delta:
                match_idx = i
                break
        if match_idx is None:
            warnings.append(
                f"no matching sender for +{inc.delta} {inc.mint} to account index {inc.account_index}"
            )
            continue
        used.add(match_idx)
        sender = decreases[match_idx]
        transfers.append(
            TokenTransfer(
                from_user_account=sender.owner or "unknown",
                to_user_account=inc.owner or "unknown",
                token_amount=_amount_to_wire(inc.delta),
                mint=inc.mint,
                token_symbol=DEFAULT_TOKEN_SYMBOL,
            )
        )
    return transfers, warnings


def extract_coordinates(log_messages: tuple[str, ...]) -> tuple[int, int] | None:
    for line in log_messages:
        match = COORDINATES_RE.search(line)
        if match:
            return int(match.group(1)), int(match.group(2))
    return None


def extract_search_id(log_messages: tuple[str, ...]) -> int | None:
    for line in log_messages:
        match = SEARCH_ID_RE.search(line)
        if match:
            return int(match.group(1))
    return None


def extract_treasure_id(log_messages: tuple[str, ...]) -> str | None:
    for line in log_messages:
        if "clue" not in line.lower():
            continue
        match = TREASURE_ID_RE.search(line)
        if match:
            return match.group(1)
    return None


def _base_fields(tx: RawTransaction) -> dict:
    fee = tx.fee or DEFAULT_FEE_LAMPORTS
    return {
        "signature": tx.signature,
        "timestamp": tx.block_time if tx.block_time is not None else int(time.time()),
        "slot": tx.slot,
        "fee": fee,
        "fee_payer": tx.fee_payer,
        "native_transfers": [],
        "account_data": [
            AccountData(account=tx.fee_payer, native_balance_change=-fee)
        ],
    }


def _build_hide(tx: RawTransaction, program_id: str) -> EnvelopeBuild:
    transfers, warnings = extract_token_transfers(tx)
    if not transfers:
        warnings.append("hide_treasure without token transfers")
        return EnvelopeBuild(envelope=None, warnings=warnings)
    first = transfers[0]
    envelope = WebhookEnvelope(
        **_base_fields(tx),
        type="TRANSFER",
        token_transfers=transfers,
        description=f"Treasure hidden: {first.token_amount} {first.mint or 'tokens'}",
        events=[
            HideTreasureEvent(
                type="HIDE_TREASURE",
                program_id=program_id,
                data=HideTreasureData(
                    wallet=first.from_user_account,
                    amount=first.token_amount,
                    mint=first.mint,
                    token=first.token_symbol or DEFAULT_TOKEN_SYMBOL,
                ),
            )
        ],
    )
    return EnvelopeBuild(envelope=envelope, warnings=warnings)


def _build_search(tx: RawTransaction, program_id: str) -> EnvelopeBuild:
    coords = extract_coordinates(tx.log_messages)
    if coords is None:
        return EnvelopeBuild(envelope=None, warnings=["search_treasure without coordinates in logs"])
    x, y = coords
    if not in_grid(x, y):
        return EnvelopeBuild(
            envelope=None, warnings=[f"search coordinates ({x}, {y}) outside the map grid"]
        )
    envelope = WebhookEnvelope(
        **_base_fields(tx),
        type="UNKNOWN",
        description=f"Treasure search at ({x}, {y})",
        events=[
            SearchTreasureEvent(
                type="SEARCH_TREASURE",
                program_id=program_id,
                data=SearchTreasureData(
                    wallet=tx.fee_payer,
                    x=x,
                    y=y,
                    search_id=extract_search_id(tx.log_messages),
                ),
            )
        ],
    )
    return EnvelopeBuild(envelope=envelope)


def _build_clue(tx: RawTransaction, program_id: str) -> EnvelopeBuild:
    treasure_id = extract_treasure_id(tx.log_messages)
    if not treasure_id:
        return EnvelopeBuild(envelope=None, warnings=["get_clue without treasure id in logs"])
    transfers, warnings = extract_token_transfers(tx)
    envelope = WebhookEnvelope(
        **_base_fields(tx),
        type="TRANSFER" if transfers else "UNKNOWN",
        token_transfers=transfers,
        description=f"Clue requested for treasure {treasure_id}",
        events=[
            GetClueEvent(
                type="GET_CLUE",
                program_id=program_id,
                data=GetClueData(wallet=tx.fee_payer, treasure_id=treasure_id),
            )
        ],
    )
    return EnvelopeBuild(envelope=envelope, warnings=warnings)


def build_envelope(event: ClassifiedEvent, tx: RawTransaction, program_id: str) -> EnvelopeBuild:
    """Build the webhook envelope for a classified transaction; Unrecognized is always dropped."""
    if isinstance(event, HideTreasure):
        result = _build_hide(tx, program_id)
    elif isinstance(event, SearchTreasure):
        result = _build_search(tx, program_id)
    elif isinstance(event, ClueRequest):
        result = _build_clue(tx, program_id)
    else:
        return EnvelopeBuild(envelope=None, warnings=[f"unrecognized transaction: {event.reason}"])

    for warning in result.warnings:
        logger.warning(
            "payload_warning",
            signature=tx.signature,
            game_event=event.event_type,
            warning=warning,
        )
    if result.dropped:
        logger.warning("payload_dropped", signature=tx.signature, game_event=event.event_type)
    return result
