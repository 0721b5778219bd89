"""
Pytest fixtures for Booty tests. Uses a temporary SQLite database per test.
"""

from __future__ import annotations

import pytest

from backend_booty.config import Settings
from backend_booty.config.env import DEFAULT_GAME_PROGRAM_ID

WEBHOOK_SECRET = "test-webhook-secret"


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings with a webhook secret and a temporary SQLite database."""
    return Settings(
        program_id=DEFAULT_GAME_PROGRAM_ID,
        webhook_auth_header=WEBHOOK_SECRET,
        database_url=f"sqlite:///{tmp_path / 'booty.db'}",
    )


@pytest.fixture
def database(settings):
    """Initialized DatabaseService on the temporary SQLite file; closed after the test."""
    from backend_booty.database import DatabaseService

    db = DatabaseService(settings.database_url)
    assert db.initialize() is True
    yield db
    db.close()


@pytest.fixture
def app(settings, database):
    from backend_booty.api_server.server import create_app

    return create_app(settings, database)


@pytest.fixture
def client(app):
    """FastAPI TestClient. Database is initialized by the fixture, so lifespan is not needed."""
    from fastapi.testclient import TestClient

    return TestClient(app)


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": WEBHOOK_SECRET}
