"""
Solana ledger listener package.

Polls the ledger for game-program transactions (watermark-based), normalizes
getTransaction results into RawTransaction, and classifies each into a game event.
"""

from backend_booty.solana_listener.classifier import (
    ClassifiedEvent,
    ClueRequest,
    HideTreasure,
    SearchTreasure,
    Unrecognized,
    classify,
)
from backend_booty.solana_listener.listener import LedgerPoller
from backend_booty.solana_listener.models import RawTransaction, SignatureInfo
from backend_booty.solana_listener.rpc import SolanaRpcClient

__all__ = [
    "ClassifiedEvent",
    "ClueRequest",
    "HideTreasure",
    "LedgerPoller",
    "RawTransaction",
    "SearchTreasure",
    "SignatureInfo",
    "SolanaRpcClient",
    "Unrecognized",
    "classify",
]
