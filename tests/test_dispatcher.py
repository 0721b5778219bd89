"""
Tests for the webhook dispatcher using httpx.MockTransport (no network).
"""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from backend_booty.core.exceptions import DeliveryError
from backend_booty.webhook.dispatcher import WebhookDispatcher
from backend_booty.webhook.models import (
    GetClueData,
    GetClueEvent,
    SearchTreasureData,
    SearchTreasureEvent,
    WebhookEnvelope,
)
from backend_booty.webhook.payload import build_envelope
from backend_booty.solana_listener.classifier import classify
from txfactory import PROGRAM_ID, sigabc_tx

BASE_URL = "http://ingest.test"


def _dispatch(handler, envelope, *, auth_header="secret"):
    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            dispatcher = WebhookDispatcher(BASE_URL, auth_header=auth_header, client=client)
            return await dispatcher.dispatch(envelope)

    return asyncio.run(run())


def _search_envelope() -> WebhookEnvelope:
    return WebhookEnvelope(
        signature="SRCH1",
        events=[
            SearchTreasureEvent(
                type="SEARCH_TREASURE",
                program_id=PROGRAM_ID,
                data=SearchTreasureData(wallet="W", x=1, y=2),
            )
        ],
    )


def test_dispatch_hide_posts_array_with_auth():
    """Hide envelopes go to /api/webhooks/helius as a one-element JSON array."""
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"success": True, "processed": 1})

    tx = sigabc_tx()
    envelope = build_envelope(classify(tx, PROGRAM_ID), tx, PROGRAM_ID).envelope
    result = _dispatch(handler, envelope)

    assert result.status_code == 200
    assert len(seen) == 1
    request = seen[0]
    assert request.method == "POST"
    assert request.url.path == "/api/webhooks/helius"
    assert request.headers["authorization"] == "secret"
    body = json.loads(request.content)
    assert isinstance(body, list) and len(body) == 1
    assert body[0]["signature"] == "SIGabc"
    assert body[0]["tokenTransfers"][0]["toUserAccount"] == "VAULT1"


def test_dispatch_routes_by_event_type():
    paths: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.path)
        return httpx.Response(200)

    clue = WebhookEnvelope(
        signature="CLUE1",
        events=[GetClueEvent(type="GET_CLUE", data=GetClueData(wallet="W", treasure_id="T1"))],
    )
    _dispatch(handler, _search_envelope())
    _dispatch(handler, clue)
    assert paths == ["/api/webhooks/search", "/api/webhooks/clue"]


def test_dispatch_without_secret_sends_no_auth_header():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200)

    _dispatch(handler, _search_envelope(), auth_header=None)
    assert "authorization" not in seen[0].headers


def test_non_2xx_raises_delivery_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"success": False})

    with pytest.raises(DeliveryError) as exc_info:
        _dispatch(handler, _search_envelope())
    assert exc_info.value.status_code == 401


def test_transport_error_raises_delivery_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(DeliveryError) as exc_info:
        _dispatch(handler, _search_envelope())
    assert exc_info.value.status_code is None


def test_envelope_without_game_event_is_rejected():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200)

    with pytest.raises(ValueError, match="no game event"):
        _dispatch(handler, WebhookEnvelope(signature="X"))


@pytest.mark.parametrize("status,reachable", [(200, True), (404, True), (503, False)])
def test_check_health(status, reachable):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/webhooks/helius/health"
        return httpx.Response(status)

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await WebhookDispatcher(BASE_URL, client=client).check_health()

    assert asyncio.run(run()) is reachable
