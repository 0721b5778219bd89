"""
Tests for the webhook ingestion endpoints (FastAPI TestClient, temporary SQLite).
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from backend_booty.api_server.server import create_app
from backend_booty.config import Settings
from backend_booty.database import DatabaseService
from txfactory import PROGRAM_ID, clue_envelope, hide_envelope, search_envelope


def test_hide_webhook_persists_treasure(client, auth_headers):
    r = client.post("/api/webhooks/helius", json=[hide_envelope("SIG1")], headers=auth_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["processed"] == 1
    assert body["results"][0]["signature"] == "SIG1"
    assert body["results"][0]["created"] is True

    treasure = client.get("/api/treasures/SIG1").json()["data"]
    assert treasure["walletAddress"] == "WALLET1"
    assert treasure["hiddenBy"] == "WALLET1"
    assert treasure["amount"] == 500
    assert treasure["tokenType"] == "MINTxyz"
    assert treasure["status"] == "active"
    assert treasure["monsterType"] == "dragon"
    assert treasure["hiddenLocation"] == {"x": 0, "y": 0}
    assert treasure["metadata"]["programId"] == PROGRAM_ID
    assert treasure["metadata"]["slot"] == 42


def test_single_object_body_is_accepted(client, auth_headers):
    r = client.post("/api/webhooks/helius", json=hide_envelope("SIG1"), headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["processed"] == 1


def test_redelivery_is_idempotent(client, auth_headers):
    """The same signature delivered twice yields one record; the second delivery updates it."""
    first = client.post("/api/webhooks/helius", json=[hide_envelope("SIG1")], headers=auth_headers)
    created_at = client.get("/api/treasures/SIG1").json()["data"]["createdAt"]
    second = client.post(
        "/api/webhooks/helius",
        json=[hide_envelope("SIG1", extra_data={"memo": "again"})],
        headers=auth_headers,
    )
    assert first.json()["results"][0]["created"] is True
    assert second.json()["results"][0]["created"] is False

    listing = client.get("/api/treasures").json()
    assert listing["count"] == 1
    record = listing["data"][0]
    assert record["createdAt"] == created_at
    assert record["metadata"]["memo"] == "again"
    assert record["metadata"]["slot"] == 42


def test_batch_partial_failure_processes_valid_envelopes(client, auth_headers):
    """Envelopes without a signature or without the event are skipped, not fatal."""
    no_signature = hide_envelope("X")
    del no_signature["signature"]
    no_event = hide_envelope("NOEVENT")
    no_event["events"] = []
    batch = [hide_envelope("SIG1"), no_signature, no_event, hide_envelope("SIG2", wallet="WALLET2")]

    r = client.post("/api/webhooks/helius", json=batch, headers=auth_headers)

    assert r.status_code == 200
    assert r.json()["processed"] == 2
    assert {t["txSignature"] for t in client.get("/api/treasures").json()["data"]} == {"SIG1", "SIG2"}


def test_non_positive_amount_is_skipped(client, auth_headers):
    envelope = hide_envelope("SIG0", amount=0)
    r = client.post("/api/webhooks/helius", json=[envelope], headers=auth_headers)
    assert r.json()["processed"] == 0
    assert client.get("/api/treasures/SIG0").status_code == 404


def test_hide_derived_from_native_transfer(client, auth_headers):
    """Without token transfers or event data, the native SOL transfer supplies wallet and amount."""
    envelope = {
        "signature": "SOLSIG",
        "type": "TRANSFER",
        "nativeTransfers": [{"fromUserAccount": "WALLET9", "toUserAccount": "VAULT1", "amount": 2_000_000_000}],
        "events": [{"type": "hide_treasure", "data": {}}],
    }
    r = client.post("/api/webhooks/helius", json=[envelope], headers=auth_headers)
    assert r.json()["processed"] == 1
    treasure = client.get("/api/treasures/SOLSIG").json()["data"]
    assert treasure["walletAddress"] == "WALLET9"
    assert treasure["amount"] == 2
    assert treasure["tokenType"] == "SOL"
    assert treasure["monsterType"] == "goblin"


def test_wrong_authorization_is_rejected(client, auth_headers):
    r = client.post("/api/webhooks/helius", json=[hide_envelope("SIG1")], headers={"Authorization": "wrong"})
    assert r.status_code == 401
    assert r.json() == {"success": False, "error": "Unauthorized - invalid authorization header"}
    missing = client.post("/api/webhooks/helius", json=[hide_envelope("SIG1")])
    assert missing.status_code == 401
    assert client.get("/api/treasures").json()["count"] == 0


def test_no_secret_configured_accepts_requests(tmp_path, database):
    settings = Settings(program_id=PROGRAM_ID, webhook_auth_header=None, database_url=database.database_url)
    client = TestClient(create_app(settings, database))
    r = client.post("/api/webhooks/helius", json=[hide_envelope("SIG1")])
    assert r.status_code == 200
    assert r.json()["processed"] == 1


def test_database_not_ready_returns_503(settings, auth_headers, tmp_path):
    database = DatabaseService(f"sqlite:///{tmp_path / 'never.db'}")
    client = TestClient(create_app(settings, database))

    r = client.post("/api/webhooks/helius", json=[hide_envelope("SIG1")], headers=auth_headers)
    assert r.status_code == 503
    assert r.json() == {"success": False, "error": "Database not ready"}

    health = client.get("/api/webhooks/helius/health").json()
    assert health["databaseReady"] is False
    assert client.get("/api/treasures").status_code == 503


def test_search_webhook(client, auth_headers):
    r = client.post("/api/webhooks/search", json=[search_envelope("SRCH1")], headers=auth_headers)
    assert r.json()["processed"] == 1
    search = client.get("/api/searches/SRCH1").json()["data"]
    assert (search["x"], search["y"]) == (10, -20)
    assert search["found"] is False
    assert search["status"] == "not_found"
    assert search["metadata"]["searchId"] == 7


def test_search_outside_grid_or_fractional_is_skipped(client, auth_headers):
    batch = [search_envelope("FAR", x=101), search_envelope("FRAC", x=1.5), search_envelope("OK", x=-100, y=100)]
    r = client.post("/api/webhooks/search", json=batch, headers=auth_headers)
    assert r.json()["processed"] == 1
    assert [s["txSignature"] for s in client.get("/api/searches").json()["data"]] == ["OK"]


def test_clue_webhook(client, auth_headers):
    r = client.post("/api/webhooks/clue", json=[clue_envelope("CLUE1", treasure_id="SIG1")], headers=auth_headers)
    assert r.json()["processed"] == 1
    clue = client.get("/api/clues/CLUE1").json()["data"]
    assert clue["treasureId"] == "SIG1"
    assert clue["status"] == "pending"
    assert clue["clueText"] is None


def test_event_for_other_endpoint_is_ignored(client, auth_headers):
    """A search envelope posted to the hide endpoint has no HIDE_TREASURE event."""
    r = client.post("/api/webhooks/helius", json=[search_envelope("SRCH1")], headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["processed"] == 0


def test_health_endpoints(client):
    for path, service in [
        ("/api/webhooks/helius/health", "Helius Webhook Handler"),
        ("/api/webhooks/search/health", "Search Webhook Handler"),
        ("/api/webhooks/clue/health", "Clue Webhook Handler"),
    ]:
        body = client.get(path).json()
        assert body["success"] is True
        assert body["service"] == service
        assert body["status"] == "online"
        assert body["databaseReady"] is True
        assert body["timestamp"]
    assert client.get("/health").json() == {"status": "ok"}


def test_non_finite_amount_is_skipped(client, auth_headers):
    """NaN and infinite amounts never reach the store; listing keeps working."""
    batch = [hide_envelope("SIGNAN", amount="NaN"), hide_envelope("SIGINF", amount="inf"), hide_envelope("SIG1")]
    r = client.post("/api/webhooks/helius", json=batch, headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["processed"] == 1

    listing = client.get("/api/treasures")
    assert listing.status_code == 200
    assert [t["txSignature"] for t in listing.json()["data"]] == ["SIG1"]


def test_non_finite_event_amount_is_skipped(client, auth_headers):
    envelope = hide_envelope("SIGNAN")
    envelope["events"][0]["data"]["amount"] = "-inf"
    r = client.post("/api/webhooks/helius", json=[envelope], headers=auth_headers)
    assert r.json()["processed"] == 0
    assert client.get("/api/treasures/SIGNAN").status_code == 404


def test_out_of_range_timestamp_skips_only_that_envelope(client, auth_headers):
    bad = search_envelope("SRCH_BAD")
    bad["timestamp"] = 1.7e15
    millis = search_envelope("SRCH_MS")
    millis["timestamp"] = 1_700_000_000_000
    batch = [search_envelope("SRCH1"), bad, millis, search_envelope("SRCH3")]

    r = client.post("/api/webhooks/search", json=batch, headers=auth_headers)

    assert r.status_code == 200
    assert r.json()["processed"] == 2
    stored = {s["txSignature"] for s in client.get("/api/searches").json()["data"]}
    assert stored == {"SRCH1", "SRCH3"}


def test_batch_with_envelope_missing_wallet(client, auth_headers):
    """The middle envelope has no wallet; the other two are still stored."""
    batch = [search_envelope("SRCH1"), search_envelope("SRCH2", wallet=""), search_envelope("SRCH3")]
    r = client.post("/api/webhooks/search", json=batch, headers=auth_headers)

    assert r.status_code == 200
    body = r.json()
    assert body["processed"] == 2
    assert [res["signature"] for res in body["results"]] == ["SRCH1", "SRCH3"]
    assert client.get("/api/searches/SRCH2").status_code == 404


def test_malformed_body_checks_authorization_first(client, auth_headers):
    garbage = b"{not json"
    json_type = {"Content-Type": "application/json"}

    r = client.post("/api/webhooks/helius", content=garbage, headers=json_type)
    assert r.status_code == 401

    r = client.post("/api/webhooks/helius", content=garbage, headers={**json_type, **auth_headers})
    assert r.status_code == 400
    assert r.json() == {"success": False, "error": "Invalid JSON body"}
