"""
Configuration management for Backend Booty.

Loads settings from environment variables (and .env via python-dotenv).
Exposes a single source of truth for monitor and ingestion-service configuration.
"""

from backend_booty.config.settings import Settings, get_settings  # noqa: F401

__all__ = ["Settings", "get_settings"]
