"""
Request authentication for the webhook endpoints.

The webhook provider sends the shared secret verbatim in the Authorization
header. Comparison is constant-time. With no secret configured every request is
accepted and a warning is logged (local development only).
"""

from __future__ import annotations

import hmac

from fastapi import Request

from backend_booty.booty_logging import get_logger
from backend_booty.core.exceptions import Unauthorized

logger = get_logger(__name__)


def verify_authorization(header: str | None, secret: str | None) -> bool:
    if not secret:
        return True
    if not header:
        return False
    return hmac.compare_digest(header.encode("utf-8"), secret.encode("utf-8"))


def require_webhook_auth(request: Request) -> None:
    """FastAPI dependency: raise Unauthorized unless the header matches the configured secret."""
    secret = request.app.state.settings.webhook_auth_header
    if not secret:
        logger.warning("webhook_auth_disabled", path=request.url.path)
        return
    if not verify_authorization(request.headers.get("authorization"), secret):
        logger.warning(
            "webhook_unauthorized",
            path=request.url.path,
            client=request.client.host if request.client else None,
        )
        raise Unauthorized()
