"""
Ledger poller — watermark-based polling of the game program's transaction log.

Responsibilities:
- Periodically fetch signatures for the program address newer than the watermark.
- Emit them oldest-first to an async handler, one at a time, skipping failed txs.
- Advance the watermark only after a successful fetch; fetch errors leave it untouched.
- Cooperative shutdown: the stop flag is checked between cycles.
"""

from __future__ import annotations

import asyncio
import signal
from typing import Any, Awaitable, Callable

from backend_booty.booty_logging import get_logger
from backend_booty.solana_listener.models import SignatureInfo
from backend_booty.solana_listener.rpc import SolanaRpcClient

logger = get_logger(__name__)

TransactionHandler = Callable[[str], Awaitable[Any]]
SleepFn = Callable[[float], Awaitable[Any]]


class LedgerPoller:
    """
    Single-writer polling loop over getSignaturesForAddress for one program.

    The watermark (last processed signature) is private state. When unset, a
    cycle processes the most recent page; afterwards it asks only for signatures
    until the watermark, following `before` pagination while pages come back
    full so a burst larger than one page is not skipped.
    """

    def __init__(
        self,
        rpc: SolanaRpcClient,
        program_id: str,
        on_transaction: TransactionHandler,
        *,
        poll_interval_sec: float = 2.0,
        page_limit: int = 10,
        max_pages: int = 10,
        start_after: str | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        """
        Args:
            rpc: Ledger client.
            program_id: Address whose transactions are polled.
            on_transaction: Awaited once per new successful signature, oldest-first.
                Exceptions are logged and do not stop the cycle.
            poll_interval_sec: Delay between the end of one cycle and the next fetch.
            page_limit: getSignaturesForAddress limit per request.
            max_pages: Upper bound on pages fetched per cycle once a watermark exists.
            start_after: Optional initial watermark.
            sleep: Awaitable sleep, injectable for tests.
        """
        if not program_id.strip():
            raise ValueError("program_id must be non-empty")
        if poll_interval_sec <= 0:
            raise ValueError("poll_interval_sec must be positive")
        if not (1 <= page_limit <= 1000):
            raise ValueError("page_limit must be between 1 and 1000")
        self._rpc = rpc
        self._program_id = program_id
        self._on_transaction = on_transaction
        self._poll_interval_sec = poll_interval_sec
        self._page_limit = page_limit
        self._max_pages = max(1, max_pages)
        self._watermark = start_after
        self._sleep = sleep
        self._stop_requested = False
        self._cycles = 0

    @property
    def watermark(self) -> str | None:
        return self._watermark

    @property
    def cycles(self) -> int:
        return self._cycles

    def stop(self) -> None:
        """Request shutdown; the loop exits after the current cycle."""
        self._stop_requested = True

    def install_signal_handlers(self) -> None:
        """Stop on SIGINT/SIGTERM where the platform and thread allow it."""
        def _handle_sig(signum: int, frame: Any) -> None:
            sig = "SIGINT" if signum == signal.SIGINT else "SIGTERM"
            logger.info("poller_shutdown_signal", signal=sig)
            self.stop()

        try:
            signal.signal(signal.SIGINT, _handle_sig)
            if hasattr(signal, "SIGTERM"):
                signal.signal(signal.SIGTERM, _handle_sig)
        except (ValueError, OSError):
            # Signal only valid in main thread / not supported on this platform
            pass

    async def run(self) -> None:
        """Poll until stop() is called. One cycle always completes before the next starts."""
        logger.info(
            "poller_started",
            program_id=self._program_id,
            poll_interval_sec=self._poll_interval_sec,
            watermark=self._watermark,
        )
        while not self._stop_requested:
            try:
                await self.poll_once()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.exception("poller_cycle_error", error=str(e), watermark=self._watermark)
            if self._stop_requested:
                break
            await self._sleep(self._poll_interval_sec)
        logger.info("poller_stopped", cycles=self._cycles, watermark=self._watermark)

    async def poll_once(self) -> int:
        """
        Run one cycle. Returns the number of signatures handed to the handler.
        Raises on fetch failure, leaving the watermark unchanged.
        """
        self._cycles += 1
        new_sigs = await self._fetch_new_signatures()
        if not new_sigs:
            return 0

        handled = 0
        for info in new_sigs:
            if info.failed:
                logger.info("poller_skip_failed_tx", signature=info.signature, slot=info.slot)
                continue
            try:
                await self._on_transaction(info.signature)
                handled += 1
            except Exception as e:
                logger.exception(
                    "poller_handler_failed",
                    signature=info.signature,
                    error=str(e),
                )

        previous = self._watermark
        self._watermark = new_sigs[-1].signature
        logger.info(
            "poller_cycle_done",
            fetched=len(new_sigs),
            handled=handled,
            previous_watermark=previous,
            watermark=self._watermark,
        )
        return handled

    async def _fetch_new_signatures(self) -> list[SignatureInfo]:
        """Fetch signatures newer than the watermark; return them oldest-first."""
        collected: list[SignatureInfo] = []
        before: str | None = None
        for _ in range(self._max_pages):
            page = await self._rpc.get_signatures_for_address(
                self._program_id,
                limit=self._page_limit,
                until=self._watermark,
                before=before,
            )
            collected.extend(s for s in page if s.signature != self._watermark)
            if self._watermark is None or len(page) < self._page_limit:
                break
            before = page[-1].signature
        else:
            logger.warning(
                "poller_page_cap_reached",
                max_pages=self._max_pages,
                watermark=self._watermark,
            )

        # RPC returns newest first; emit oldest first
        seen: set[str] = set()
        ordered: list[SignatureInfo] = []
        for info in reversed(collected):
            if info.signature in seen:
                continue
            seen.add(info.signature)
            ordered.append(info)
        if ordered:
            logger.info(
                "poller_new_signatures",
                signature_count=len(ordered),
                oldest_slot=ordered[0].slot,
                newest_slot=ordered[-1].slot,
            )
        return ordered
