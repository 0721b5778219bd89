"""
Tests for the async Solana RPC client and RawTransaction parsing (httpx.MockTransport).
"""

from __future__ import annotations

import asyncio
import json
from decimal import Decimal

import httpx
import pytest

from backend_booty.core.exceptions import RpcError
from backend_booty.solana_listener.models import RawTransaction
from backend_booty.solana_listener.rpc import SolanaRpcClient
from txfactory import BLOCK_TIME, PROGRAM_ID, sigabc_rpc_result

RPC_URL = "http://validator.test"


def _run(handler, call):
    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            return await call(SolanaRpcClient(RPC_URL, http))

    return asyncio.run(run())


def _rpc_response(request: httpx.Request, result) -> httpx.Response:
    body = json.loads(request.content)
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})


def test_get_signatures_for_address_passes_options():
    requests: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(json.loads(request.content))
        return _rpc_response(
            request,
            [
                {"signature": "B", "slot": 2, "err": None, "blockTime": BLOCK_TIME, "confirmationStatus": "confirmed"},
                {"signature": "A", "slot": 1, "err": {"InstructionError": [0, "Custom"]}, "blockTime": None},
            ],
        )

    infos = _run(handler, lambda c: c.get_signatures_for_address(PROGRAM_ID, limit=5, until="W"))

    assert [i.signature for i in infos] == ["B", "A"]
    assert infos[0].failed is False
    assert infos[1].failed is True
    params = requests[0]["params"]
    assert requests[0]["method"] == "getSignaturesForAddress"
    assert params[0] == PROGRAM_ID
    assert params[1]["limit"] == 5
    assert params[1]["until"] == "W"
    assert "before" not in params[1]


def test_get_transaction_parses_jsonparsed_result():
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert body["params"][1]["encoding"] == "jsonParsed"
        assert body["params"][1]["maxSupportedTransactionVersion"] == 0
        return _rpc_response(request, sigabc_rpc_result())

    tx = _run(handler, lambda c: c.get_transaction("SIGabc"))

    assert isinstance(tx, RawTransaction)
    assert tx.signature == "SIGabc"
    assert tx.fee_payer == "WALLET1"
    assert tx.fee == 5000
    assert tx.block_time == BLOCK_TIME
    assert tx.targets_program(PROGRAM_ID)
    deltas = {(d.account_index, d.mint): d.delta for d in tx.token_balance_deltas()}
    assert deltas == {(1, "MINTxyz"): Decimal("-500"), (2, "MINTxyz"): Decimal("500")}


def test_get_transaction_missing_returns_none():
    tx = _run(lambda r: _rpc_response(r, None), lambda c: c.get_transaction("NOPE"))
    assert tx is None


def test_rpc_error_object_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32602, "message": "Invalid param"}}
        )

    with pytest.raises(RpcError, match="Invalid param"):
        _run(handler, lambda c: c.get_signatures_for_address(PROGRAM_ID))


def test_http_error_raises():
    with pytest.raises(RpcError):
        _run(lambda r: httpx.Response(502), lambda c: c.get_version())


def test_malformed_transaction_raises():
    with pytest.raises(RpcError, match="Malformed"):
        _run(lambda r: _rpc_response(r, {"meta": {}}), lambda c: c.get_transaction("BAD"))


def test_program_id_index_instructions():
    """json encoding references programs by index into accountKeys."""
    raw = {
        "slot": 9,
        "blockTime": None,
        "transaction": {
            "message": {
                "accountKeys": ["PAYER", PROGRAM_ID],
                "instructions": [{"programIdIndex": 1, "accounts": [0], "data": "x"}],
            }
        },
        "meta": {"fee": 0, "logMessages": []},
    }
    tx = RawTransaction.from_rpc_result("S", raw)
    assert tx.targets_program(PROGRAM_ID)
    assert tx.instructions[0].accounts == ("PAYER",)
    assert tx.fee_payer == "PAYER"
