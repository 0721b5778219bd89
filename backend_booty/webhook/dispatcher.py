"""
Webhook dispatcher — POST one envelope to its type-specific ingestion endpoint.

Pure transport: the envelope is wrapped in a one-element JSON array (the
provider's batch convention) and sent with the shared-secret Authorization
header. Non-2xx responses and transport errors raise DeliveryError; there is
no internal retry.
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from backend_booty.booty_logging import get_logger
from backend_booty.core.exceptions import DeliveryError
from backend_booty.webhook.models import (
    GET_CLUE,
    HIDE_TREASURE,
    SEARCH_TREASURE,
    GetClueEvent,
    HideTreasureEvent,
    SearchTreasureEvent,
    WebhookEnvelope,
)

logger = get_logger(__name__)

WEBHOOK_PATHS: dict[str, str] = {
    HIDE_TREASURE: "/api/webhooks/helius",
    SEARCH_TREASURE: "/api/webhooks/search",
    GET_CLUE: "/api/webhooks/clue",
}
HEALTH_PATH = "/api/webhooks/helius/health"

DEFAULT_TIMEOUT_SEC = 10.0


def envelope_event_type(envelope: WebhookEnvelope) -> str:
    """Type tag of the envelope's game event; raises ValueError when it has none."""
    for event in envelope.events:
        if isinstance(event, HideTreasureEvent):
            return HIDE_TREASURE
        if isinstance(event, SearchTreasureEvent):
            return SEARCH_TREASURE
        if isinstance(event, GetClueEvent):
            return GET_CLUE
    raise ValueError(f"Envelope {envelope.signature} carries no game event")


@dataclass(frozen=True)
class DeliveryResult:
    signature: str
    url: str
    status_code: int


class WebhookDispatcher:
    """
    Sends envelopes to the ingestion service.

    Pass an httpx.AsyncClient to share a connection pool (or to use a mock
    transport in tests); otherwise one is created with a bounded timeout.
    """

    def __init__(
        self,
        base_url: str,
        *,
        auth_header: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout_sec: float = DEFAULT_TIMEOUT_SEC,
    ) -> None:
        if not base_url.strip():
            raise ValueError("base_url must be non-empty")
        self._base_url = base_url.rstrip("/")
        self._auth_header = auth_header
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_sec))

    def url_for(self, event_type: str) -> str:
        try:
            return self._base_url + WEBHOOK_PATHS[event_type]
        except KeyError:
            raise ValueError(f"No webhook endpoint for event type {event_type}") from None

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._auth_header:
            headers["Authorization"] = self._auth_header
        return headers

    async def dispatch(self, envelope: WebhookEnvelope) -> DeliveryResult:
        """Deliver one envelope. Raises DeliveryError on transport failure or non-2xx status."""
        url = self.url_for(envelope_event_type(envelope))
        body = [envelope.to_wire()]
        try:
            resp = await self._client.post(url, json=body, headers=self._headers())
        except httpx.HTTPError as e:
            logger.error(
                "dispatch_transport_error",
                signature=envelope.signature,
                url=url,
                error=str(e),
            )
            raise DeliveryError(f"POST {url} failed: {e}") from e

        if not resp.is_success:
            logger.error(
                "dispatch_rejected",
                signature=envelope.signature,
                url=url,
                status_code=resp.status_code,
                body=resp.text[:500],
            )
            raise DeliveryError(
                f"Webhook returned {resp.status_code}: {resp.text[:200]}",
                status_code=resp.status_code,
            )

        logger.info(
            "dispatch_delivered",
            signature=envelope.signature,
            url=url,
            status_code=resp.status_code,
        )
        return DeliveryResult(signature=envelope.signature, url=url, status_code=resp.status_code)

    async def check_health(self) -> bool:
        """True if the ingestion service answers (200, or 404 when no health route exists)."""
        url = self._base_url + HEALTH_PATH
        try:
            resp = await self._client.get(url)
        except httpx.HTTPError as e:
            logger.warning("dispatch_health_unreachable", url=url, error=str(e))
            return False
        return resp.status_code in (200, 404)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
