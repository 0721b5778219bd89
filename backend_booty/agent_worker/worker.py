"""
Local transaction monitor: ledger poller → classify → build envelope → dispatch.

Stands in for the hosted webhook provider during local development. The poller
hands each new game-program signature to MonitorPipeline.process_transaction,
which fetches the transaction, classifies it, builds the Helius-style envelope
and POSTs it to the ingestion service. Heartbeat logs report progress.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from dataclasses import dataclass

import httpx

from backend_booty.booty_logging import bind_signature, get_logger
from backend_booty.config import Settings
from backend_booty.core.exceptions import BootyError, RpcError
from backend_booty.solana_listener.classifier import Unrecognized, classify
from backend_booty.solana_listener.listener import LedgerPoller
from backend_booty.solana_listener.rpc import SolanaRpcClient
from backend_booty.webhook.dispatcher import DeliveryResult, WebhookDispatcher
from backend_booty.webhook.payload import build_envelope

logger = get_logger(__name__)

# Default heartbeat interval (seconds)
DEFAULT_HEARTBEAT_INTERVAL_SEC = 30.0


@dataclass
class MonitorState:
    """Mutable counters for heartbeat and monitoring."""

    last_signature: str | None = None
    last_processed_at: float | None = None
    last_error: str | None = None
    processed_count: int = 0
    dispatched_count: int = 0
    ignored_count: int = 0
    dropped_count: int = 0
    error_count: int = 0


class MonitorPipeline:
    """Per-signature pipeline; one instance serves the whole poller run."""

    def __init__(
        self,
        rpc: SolanaRpcClient,
        dispatcher: WebhookDispatcher,
        program_id: str,
        state: MonitorState | None = None,
    ) -> None:
        self._rpc = rpc
        self._dispatcher = dispatcher
        self._program_id = program_id
        self.state = state or MonitorState()

    async def process_transaction(self, signature: str) -> DeliveryResult | None:
        """
        Fetch, classify, build and deliver one transaction.

        Returns the delivery result, or None when the transaction is missing,
        not a game transaction, or could not be turned into an envelope.
        RPC and delivery errors are counted and re-raised to the poller.
        """
        self.state.processed_count += 1
        self.state.last_signature = signature
        self.state.last_processed_at = time.time()
        log = bind_signature(signature, __name__)
        try:
            tx = await self._rpc.get_transaction(signature)
            if tx is None:
                log.warning("monitor_tx_missing")
                return None

            event = classify(tx, self._program_id)
            if isinstance(event, Unrecognized):
                self.state.ignored_count += 1
                log.info("monitor_tx_ignored", reason=event.reason)
                return None

            build = build_envelope(event, tx, self._program_id)
            if build.envelope is None:
                self.state.dropped_count += 1
                return None

            result = await self._dispatcher.dispatch(build.envelope)
        except BootyError as e:
            self.state.error_count += 1
            self.state.last_error = str(e)
            raise

        self.state.dispatched_count += 1
        log.info(
            "monitor_tx_forwarded",
            game_event=event.event_type,
            status_code=result.status_code,
        )
        return result


async def _cancel_task(task: asyncio.Task) -> None:
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task


async def _heartbeat(state: MonitorState, poller: LedgerPoller, interval_sec: float) -> None:
    while True:
        await asyncio.sleep(interval_sec)
        logger.info(
            "monitor_heartbeat",
            cycles=poller.cycles,
            watermark=poller.watermark,
            last_signature=state.last_signature,
            last_processed_at=state.last_processed_at,
            processed_count=state.processed_count,
            dispatched_count=state.dispatched_count,
            ignored_count=state.ignored_count,
            dropped_count=state.dropped_count,
            error_count=state.error_count,
            last_error=state.last_error,
        )


async def monitor(
    settings: Settings,
    *,
    heartbeat_interval_sec: float = DEFAULT_HEARTBEAT_INTERVAL_SEC,
) -> MonitorState:
    """
    Run the monitor until SIGINT/SIGTERM. Fails fast when the ledger is unreachable;
    an unreachable ingestion service only logs a warning.
    """
    async with httpx.AsyncClient() as rpc_http, httpx.AsyncClient(
        timeout=httpx.Timeout(settings.dispatch_timeout_sec)
    ) as webhook_http:
        rpc = SolanaRpcClient(settings.rpc_url, rpc_http)
        try:
            version = await rpc.get_version()
        except RpcError as e:
            logger.error("monitor_rpc_unreachable", rpc_url=settings.rpc_url, error=str(e))
            raise
        logger.info("monitor_rpc_connected", rpc_url=settings.rpc_url, version=version)

        dispatcher = WebhookDispatcher(
            settings.webhook_base_url,
            auth_header=settings.webhook_auth_header,
            client=webhook_http,
        )
        if not await dispatcher.check_health():
            logger.warning("monitor_webhook_unreachable", base_url=settings.webhook_base_url)
        if not settings.webhook_auth_header:
            logger.warning("monitor_webhook_auth_missing")

        pipeline = MonitorPipeline(rpc, dispatcher, settings.program_id)
        poller = LedgerPoller(
            rpc,
            settings.program_id,
            pipeline.process_transaction,
            poll_interval_sec=settings.poll_interval_sec,
            page_limit=settings.signatures_limit,
            max_pages=settings.max_pages_per_cycle,
        )
        poller.install_signal_handlers()
        logger.info(
            "monitor_started",
            program_id=settings.program_id,
            webhook_base_url=settings.webhook_base_url,
            poll_interval_sec=settings.poll_interval_sec,
        )

        heartbeat = asyncio.create_task(
            _heartbeat(pipeline.state, poller, max(1.0, heartbeat_interval_sec))
        )
        try:
            await poller.run()
        finally:
            await _cancel_task(heartbeat)
            logger.info(
                "monitor_stopped",
                processed_count=pipeline.state.processed_count,
                dispatched_count=pipeline.state.dispatched_count,
                error_count=pipeline.state.error_count,
            )
        return pipeline.state


def run_monitor(settings: Settings) -> None:
    """Blocking entrypoint for the CLI."""
    asyncio.run(monitor(settings))
