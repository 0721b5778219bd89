"""
Application settings.

One typed Settings object shared by the monitor (poller + dispatcher) and the
ingestion service. Build it with get_settings(); tests construct Settings directly.
"""

from __future__ import annotations

from dataclasses import dataclass

from backend_booty.config.env import (
    LOCAL_WEBHOOK_BASE_URL,
    env_float,
    env_int,
    env_str,
    get_database_url,
    get_game_program_id,
    get_solana_rpc_url,
    get_webhook_auth_header,
    load_booty_env,
)


@dataclass(frozen=True)
class Settings:
    """Monitor and ingestion-service configuration."""

    program_id: str
    rpc_url: str = "http://localhost:8899"
    webhook_base_url: str = LOCAL_WEBHOOK_BASE_URL
    webhook_auth_header: str | None = None
    """Shared secret; None disables webhook authentication (development only)."""
    poll_interval_sec: float = 2.0
    signatures_limit: int = 10
    """Page size for getSignaturesForAddress."""
    max_pages_per_cycle: int = 10
    dispatch_timeout_sec: float = 10.0
    database_url: str = "sqlite:///booty.db"
    api_host: str = "0.0.0.0"
    api_port: int = 3000

    def __post_init__(self) -> None:
        if self.poll_interval_sec <= 0:
            raise ValueError("poll_interval_sec must be positive")
        if not (1 <= self.signatures_limit <= 1000):
            raise ValueError("signatures_limit must be between 1 and 1000")
        if self.dispatch_timeout_sec <= 0:
            raise ValueError("dispatch_timeout_sec must be positive")


def get_settings() -> Settings:
    """
    Return settings from the environment.

    Env: GAME_PROGRAM_ID, SOLANA_RPC_URL, WEBHOOK_BASE_URL, HELIUS_WEBHOOK_AUTH_HEADER,
    POLL_INTERVAL_SEC, SIGNATURES_LIMIT, MAX_PAGES_PER_CYCLE, DISPATCH_TIMEOUT_SEC,
    DATABASE_URL / DB_PATH, API_HOST, API_PORT.
    """
    load_booty_env()
    return Settings(
        program_id=get_game_program_id(),
        rpc_url=get_solana_rpc_url(),
        webhook_base_url=env_str("WEBHOOK_BASE_URL") or LOCAL_WEBHOOK_BASE_URL,
        webhook_auth_header=get_webhook_auth_header(),
        poll_interval_sec=env_float("POLL_INTERVAL_SEC", 2.0),
        signatures_limit=env_int("SIGNATURES_LIMIT", 10),
        max_pages_per_cycle=env_int("MAX_PAGES_PER_CYCLE", 10),
        dispatch_timeout_sec=env_float("DISPATCH_TIMEOUT_SEC", 10.0),
        database_url=get_database_url(),
        api_host=env_str("API_HOST") or "0.0.0.0",
        api_port=env_int("API_PORT", 3000),
    )
