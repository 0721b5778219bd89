"""
Environment variable loading for Backend Booty.

- HELIUS_WEBHOOK_AUTH_HEADER: shared secret sent by the monitor and checked by the webhooks
- GAME_PROGRAM_ID: deployed game program (hide_treasure / search_treasure / get_clue)
- SOLANA_RPC_URL: ledger JSON-RPC endpoint (local validator by default)
- WEBHOOK_BASE_URL: base URL of the ingestion service the monitor posts to
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from solders.pubkey import Pubkey

_CONFIG_DIR = Path(__file__).resolve().parent
_BACKEND_DIR = _CONFIG_DIR.parent
_ROOT = _BACKEND_DIR.parent
_ENV_PATH = _ROOT / ".env"

# Anchor.toml localnet program ID (programs.localnet.game)
DEFAULT_GAME_PROGRAM_ID = "7fcqEt6ieMEgPNQUbVyxGCpVXFPfRsj7xxHgdwqNB1kh"

LOCAL_VALIDATOR_URL = "http://localhost:8899"
LOCAL_WEBHOOK_BASE_URL = "http://localhost:3000"


def load_booty_env() -> None:
    """Load .env from project root. Safe to call multiple times; existing env wins."""
    from dotenv import load_dotenv

    if _ENV_PATH.is_file():
        load_dotenv(_ENV_PATH, override=False)


def env_str(name: str, default: str = "") -> str:
    return (os.getenv(name) or default).strip()


def env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


def env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


def get_game_program_id() -> str:
    """
    Return GAME_PROGRAM_ID from env, or the localnet default.
    Raises ValueError when the value is not a valid Solana public key.
    """
    load_booty_env()
    pid = env_str("GAME_PROGRAM_ID") or DEFAULT_GAME_PROGRAM_ID
    try:
        Pubkey.from_string(pid)
    except Exception as e:
        raise ValueError(f"GAME_PROGRAM_ID is not a valid Solana address: {pid}") from e
    return pid


def get_solana_rpc_url() -> str:
    load_booty_env()
    return env_str("SOLANA_RPC_URL") or LOCAL_VALIDATOR_URL


def get_webhook_auth_header() -> str | None:
    """Return the shared webhook secret, or None when unset (auth bypassed, dev only)."""
    load_booty_env()
    return env_str("HELIUS_WEBHOOK_AUTH_HEADER") or None


def get_database_url() -> str:
    """Return DATABASE_URL when set; else SQLite from DB_PATH (default booty.db)."""
    load_booty_env()
    url = env_str("DATABASE_URL")
    if url:
        return url
    path = env_str("DB_PATH") or "booty.db"
    return f"sqlite:///{path}"
