"""
Backend Booty — transaction ingestion for the Booty treasure-hunting game.

A local monitor polls the Solana ledger for game-program transactions,
classifies them, and forwards Helius-style webhook envelopes to an ingestion
service that records each one exactly once, keyed by transaction signature.
"""

__version__ = "0.1.0"
