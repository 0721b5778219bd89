"""
Async Solana JSON-RPC client for the ledger poller.

Wraps getSignaturesForAddress and getTransaction over a shared httpx.AsyncClient.
Transport failures and RPC error objects are raised as RpcError; the poller
decides whether a failure aborts the cycle.
"""

from __future__ import annotations

import itertools
from typing import Any

import httpx

from backend_booty.booty_logging import get_logger
from backend_booty.core.exceptions import RpcError
from backend_booty.solana_listener.models import RawTransaction, SignatureInfo

logger = get_logger(__name__)

DEFAULT_COMMITMENT = "confirmed"


class SolanaRpcClient:
    """
    Minimal async JSON-RPC client.

    The caller owns the httpx.AsyncClient (so tests can pass one built on
    httpx.MockTransport); no timeout is set beyond the client's own default.
    """

    def __init__(
        self,
        rpc_url: str,
        client: httpx.AsyncClient,
        *,
        commitment: str = DEFAULT_COMMITMENT,
    ) -> None:
        if not rpc_url.strip():
            raise ValueError("rpc_url must be non-empty")
        self._rpc_url = rpc_url.rstrip("/")
        self._client = client
        self._commitment = commitment
        self._ids = itertools.count(1)

    async def _call(self, method: str, params: list[Any]) -> Any:
        body = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        try:
            resp = await self._client.post(self._rpc_url, json=body)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise RpcError(f"{method} failed: {e}") from e
        if "error" in data:
            err = data["error"] or {}
            raise RpcError(
                f"Solana RPC error: {err.get('message', err)} (code={err.get('code')})"
            )
        return data.get("result")

    async def get_version(self) -> str:
        result = await self._call("getVersion", [])
        return str((result or {}).get("solana-core", "unknown"))

    async def get_signatures_for_address(
        self,
        address: str,
        *,
        limit: int = 10,
        until: str | None = None,
        before: str | None = None,
    ) -> list[SignatureInfo]:
        """Return signatures for address, newest first, as the RPC orders them."""
        opts: dict[str, Any] = {"limit": limit, "commitment": self._commitment}
        if until is not None:
            opts["until"] = until
        if before is not None:
            opts["before"] = before
        result = await self._call("getSignaturesForAddress", [address, opts])
        if result is None:
            raise RpcError("getSignaturesForAddress returned no result")
        infos: list[SignatureInfo] = []
        for item in result:
            if not isinstance(item, dict) or "signature" not in item:
                continue
            try:
                infos.append(SignatureInfo.from_rpc_item(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.debug("poller_skip_invalid_signature_item", error=str(e))
        return infos

    async def get_transaction(self, signature: str) -> RawTransaction | None:
        """Fetch one transaction (jsonParsed); None if the ledger does not have it."""
        result = await self._call(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "jsonParsed",
                    "maxSupportedTransactionVersion": 0,
                    "commitment": self._commitment,
                },
            ],
        )
        if result is None:
            return None
        try:
            return RawTransaction.from_rpc_result(signature, result)
        except (KeyError, TypeError, ValueError) as e:
            raise RpcError(f"Malformed transaction {signature}: {e}") from e
