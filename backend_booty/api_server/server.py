"""
FastAPI server — webhook ingestion endpoints and the record query surface.

Build the app with create_app(settings, database); services are attached to
app.state so routes reach them through dependencies. Domain errors are
translated into the {"success": false, "error": ...} JSON contract.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from backend_booty import __version__
from backend_booty.api_server.records_api import router as records_router
from backend_booty.api_server.webhooks import router as webhooks_router
from backend_booty.booty_logging import get_logger
from backend_booty.config import Settings, get_settings
from backend_booty.core.exceptions import (
    DatabaseNotReady,
    InvalidStatus,
    InvalidStatusTransition,
    RecordNotFound,
    Unauthorized,
)
from backend_booty.database import DatabaseService
from backend_booty.ingestion import IngestionService

logger = get_logger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def _install_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(Unauthorized)
    async def _unauthorized(request: Request, exc: Unauthorized) -> JSONResponse:
        return _error(401, str(exc))

    @app.exception_handler(DatabaseNotReady)
    async def _not_ready(request: Request, exc: DatabaseNotReady) -> JSONResponse:
        logger.error("api_database_not_ready", path=request.url.path)
        return _error(503, str(exc))

    @app.exception_handler(RecordNotFound)
    async def _not_found(request: Request, exc: RecordNotFound) -> JSONResponse:
        return _error(404, str(exc))

    @app.exception_handler(InvalidStatus)
    async def _invalid_status(request: Request, exc: InvalidStatus) -> JSONResponse:
        return _error(400, str(exc))

    @app.exception_handler(InvalidStatusTransition)
    async def _invalid_transition(request: Request, exc: InvalidStatusTransition) -> JSONResponse:
        logger.warning(
            "api_status_transition_rejected",
            path=request.url.path,
            current=exc.current,
            requested=exc.requested,
        )
        return _error(409, str(exc))

    @app.exception_handler(RequestValidationError)
    async def _validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = ".".join(str(p) for p in first.get("loc", ()))
        return _error(400, f"Invalid request: {location} {first.get('msg', '')}".strip())


def create_app(
    settings: Settings | None = None,
    database: DatabaseService | None = None,
) -> FastAPI:
    """
    Build the FastAPI app.

    Without arguments, settings come from the environment and the app owns its
    DatabaseService (initialized on startup, closed on shutdown).
    """
    settings = settings or get_settings()
    owns_database = database is None
    database = database or DatabaseService(settings.database_url)
    ingestion = IngestionService(database)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if not database.initialize():
            logger.error("api_database_init_failed")
        if not settings.webhook_auth_header:
            logger.warning("api_webhook_auth_disabled")
        logger.info("api_started", database_ready=database.is_ready())
        yield
        if owns_database:
            database.close()
        logger.info("api_stopped")

    app = FastAPI(
        title="Booty Ingestion API",
        description="Webhook ingestion for treasure, search and clue transactions; read API over stored records.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.database = database
    app.state.ingestion = ingestion

    _install_exception_handlers(app)
    app.include_router(webhooks_router)
    app.include_router(records_router)

    @app.get("/health")
    def health() -> dict[str, str]:
        """Liveness probe: API is up."""
        return {"status": "ok"}

    return app
