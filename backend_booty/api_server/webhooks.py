"""
Webhook ingestion routes: one POST endpoint per game event type, plus health.

POST bodies are a JSON array of envelopes (the provider's batch format) or a
single envelope object. The body is read only after the Authorization check,
so an unauthenticated request is rejected with 401 whatever it carries.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from backend_booty.api_server.middleware import require_webhook_auth
from backend_booty.booty_logging import get_logger
from backend_booty.core.exceptions import DatabaseNotReady
from backend_booty.ingestion.service import IngestionService
from backend_booty.webhook.models import GET_CLUE, HIDE_TREASURE, SEARCH_TREASURE

logger = get_logger(__name__)

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])


def get_ingestion(request: Request) -> IngestionService:
    return request.app.state.ingestion


async def _ingest(request: Request, ingestion: IngestionService, event_type: str) -> JSONResponse:
    raw = await request.body()
    try:
        payload = json.loads(raw) if raw.strip() else None
    except ValueError as e:
        logger.warning("webhook_body_invalid", game_event=event_type, error=str(e))
        return JSONResponse(status_code=400, content={"success": False, "error": "Invalid JSON body"})

    try:
        result = await run_in_threadpool(ingestion.ingest, event_type, payload)
    except DatabaseNotReady as e:
        logger.error("webhook_database_not_ready", game_event=event_type)
        return JSONResponse(status_code=503, content={"success": False, "error": str(e)})
    except Exception as e:
        logger.exception("webhook_failed", game_event=event_type, error=str(e))
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": str(e) or "Internal server error"},
        )
    return JSONResponse(status_code=200, content=result.to_response())


def _health(ingestion: IngestionService, event_type: str) -> dict[str, Any]:
    return {
        "success": True,
        "service": ingestion.routes[event_type].service_name,
        "status": "online",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "databaseReady": ingestion.is_ready(),
    }


@router.post("/helius", dependencies=[Depends(require_webhook_auth)])
async def hide_treasure_webhook(
    request: Request,
    ingestion: IngestionService = Depends(get_ingestion),
) -> JSONResponse:
    """Treasure deposits (HIDE_TREASURE)."""
    return await _ingest(request, ingestion, HIDE_TREASURE)


@router.post("/search", dependencies=[Depends(require_webhook_auth)])
async def search_treasure_webhook(
    request: Request,
    ingestion: IngestionService = Depends(get_ingestion),
) -> JSONResponse:
    """Map searches (SEARCH_TREASURE)."""
    return await _ingest(request, ingestion, SEARCH_TREASURE)


@router.post("/clue", dependencies=[Depends(require_webhook_auth)])
async def clue_webhook(
    request: Request,
    ingestion: IngestionService = Depends(get_ingestion),
) -> JSONResponse:
    """Clue purchases (GET_CLUE)."""
    return await _ingest(request, ingestion, GET_CLUE)


@router.get("/helius/health")
def hide_treasure_health(ingestion: IngestionService = Depends(get_ingestion)) -> dict[str, Any]:
    return _health(ingestion, HIDE_TREASURE)


@router.get("/search/health")
def search_treasure_health(ingestion: IngestionService = Depends(get_ingestion)) -> dict[str, Any]:
    return _health(ingestion, SEARCH_TREASURE)


@router.get("/clue/health")
def clue_health(ingestion: IngestionService = Depends(get_ingestion)) -> dict[str, Any]:
    return _health(ingestion, GET_CLUE)
