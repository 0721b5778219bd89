"""
HTTP API: webhook ingestion endpoints, health checks and the record query surface.
"""

from backend_booty.api_server.server import create_app

__all__ = ["create_app"]
