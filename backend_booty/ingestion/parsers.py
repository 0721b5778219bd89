"""
Envelope parsers: one validated webhook envelope to one stored-record dict.

Each parser returns ParsedRecord(record, reason); record is None when a required
field is missing, and reason says which. Unknown keys in the event data are
carried into the record's metadata.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from backend_booty.database.models import monster_for_amount
from backend_booty.database.repositories import iso_from_unix
from backend_booty.webhook.models import (
    GetClueEvent,
    HideTreasureEvent,
    SearchTreasureEvent,
    WebhookEnvelope,
)
from backend_booty.webhook.payload import in_grid

LAMPORTS_PER_SOL = 1_000_000_000


@dataclass(frozen=True)
class ParsedRecord:
    record: dict[str, Any] | None
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.record is not None


def _skip(reason: str) -> ParsedRecord:
    return ParsedRecord(record=None, reason=reason)


def _metadata(envelope: WebhookEnvelope, program_id: str | None, extras: dict[str, Any]) -> dict[str, Any]:
    return {
        **extras,
        "blockTime": envelope.timestamp,
        "slot": envelope.slot,
        "fee": envelope.fee,
        "programId": program_id,
    }


def parse_hide(envelope: WebhookEnvelope, event: HideTreasureEvent) -> ParsedRecord:
    """
    Treasure deposit from a HIDE_TREASURE envelope.

    Wallet and amount come from the first native transfer (lamports to SOL),
    overridden by the first token transfer, overridden by the event data.
    """
    wallet = ""
    amount: float = 0.0
    token_type = "SOL"

    if envelope.native_transfers:
        transfer = envelope.native_transfers[0]
        wallet = transfer.from_user_account or transfer.to_user_account
        amount = transfer.amount / LAMPORTS_PER_SOL
        token_type = "SOL"

    if envelope.token_transfers:
        transfer = envelope.token_transfers[0]
        wallet = transfer.from_user_account or transfer.to_user_account
        amount = transfer.token_amount
        token_type = transfer.mint or transfer.token_symbol or "UNKNOWN"

    data = event.data
    if data.amount:
        amount = data.amount
    if data.wallet:
        wallet = data.wallet
    if data.mint:
        token_type = data.mint

    if not wallet:
        return _skip("missing wallet address")
    if not amount or not math.isfinite(amount) or amount <= 0:
        return _skip("missing or invalid amount")

    hidden_at = iso_from_unix(envelope.timestamp)
    return ParsedRecord(
        record={
            "txSignature": envelope.signature,
            "hiddenBy": wallet,
            "walletAddress": wallet,
            "amount": amount,
            "tokenType": token_type,
            "hiddenAt": hidden_at,
            "hiddenLocation": {"x": 0, "y": 0},
            "monsterType": monster_for_amount(amount).value,
            "metadata": _metadata(envelope, event.program_id, data.extra_fields()),
        }
    )


def parse_search(envelope: WebhookEnvelope, event: SearchTreasureEvent) -> ParsedRecord:
    data = event.data
    if not data.wallet:
        return _skip("missing wallet address")
    if data.x is None or data.y is None:
        return _skip("missing coordinates")
    if not in_grid(data.x, data.y):
        return _skip(f"coordinates ({data.x}, {data.y}) outside the map grid")

    extras = data.extra_fields()
    if data.search_id is not None:
        extras["searchId"] = data.search_id
    return ParsedRecord(
        record={
            "txSignature": envelope.signature,
            "walletAddress": data.wallet,
            "x": data.x,
            "y": data.y,
            "found": False,
            "searchedAt": iso_from_unix(envelope.timestamp),
            "metadata": _metadata(envelope, event.program_id, extras),
        }
    )


def parse_clue(envelope: WebhookEnvelope, event: GetClueEvent) -> ParsedRecord:
    data = event.data
    if not data.wallet:
        return _skip("missing wallet address")
    if not data.treasure_id:
        return _skip("missing treasure id")
    return ParsedRecord(
        record={
            "txSignature": envelope.signature,
            "walletAddress": data.wallet,
            "treasureId": data.treasure_id,
            "requestedAt": iso_from_unix(envelope.timestamp),
            "clueText": None,
            "error": None,
            "metadata": _metadata(envelope, event.program_id, data.extra_fields()),
        }
    )
