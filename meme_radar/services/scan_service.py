"""
Scan service - scheduled community scanning.

Runs a scan of the configured communities every `scan_interval_seconds`,
persists the results and logs a summary. A failing cycle is logged and
the loop carries on with the next one.
"""

import asyncio
import time
from typing import Any

import structlog

from meme_radar.aggregation.service import MentionAggregator
from meme_radar.config.settings import get_settings
from meme_radar.observability.logging import bind_context, clear_context
from meme_radar.scanner.schemas import ScanSummary
from meme_radar.scanner.service import Scanner, summarize

logger = structlog.get_logger(__name__)


class ScanService:
    """
    Service that periodically scans communities and persists aggregates.

    Usage:
        async with RedditClient() as client, Database() as db:
            service = ScanService(Scanner(client), MentionAggregator(AggregateRepository(db)))
            await service.start()  # Runs until stop() is called
    """

    def __init__(
        self,
        scanner: Scanner,
        aggregator: MentionAggregator | None = None,
        communities: list[str] | None = None,
        limit: int | None = None,
        interval_seconds: float | None = None,
    ):
        """
        Initialize scan service.

        Args:
            scanner: Scanner bound to a Reddit client
            aggregator: Aggregator to persist into; scans are not stored if None
            communities: Communities to scan (defaults from settings)
            limit: Hot posts per community (defaults from settings)
            interval_seconds: Pause between cycles (defaults from settings)
        """
        settings = get_settings()

        self._scanner = scanner
        self._aggregator = aggregator
        self._communities = list(communities or settings.default_communities)
        self._limit = limit or settings.scan_post_limit
        self._interval = (
            settings.scan_interval_seconds if interval_seconds is None else interval_seconds
        )
        self._running = False
        self._stop_event = asyncio.Event()
        self._cycles = 0
        self._last_summary: ScanSummary | None = None

        logger.info(
            "Scan service initialized",
            communities=self._communities,
            limit=self._limit,
            interval=self._interval,
        )

    async def run_once(self) -> ScanSummary:
        """
        Run one scan-and-persist cycle.

        Community failures are folded into the summary. Persistence
        errors propagate.

        Returns:
            Summary of the cycle
        """
        start_time = time.monotonic()
        bind_context(cycle=self._cycles + 1)

        try:
            results = await self._scanner.scan_communities(self._communities, self._limit)
            summary = summarize(results)

            persisted = 0
            if self._aggregator is not None:
                persisted = len(await self._aggregator.persist(results))
        finally:
            clear_context()

        self._cycles += 1
        self._last_summary = summary

        logger.info(
            "Scan cycle completed",
            cycle=self._cycles,
            posts=summary.total_posts,
            comments=summary.total_comments,
            tickers=summary.unique_tickers,
            mentions=summary.total_mentions,
            persisted=persisted,
            failed=list(summary.failed),
            elapsed_seconds=round(time.monotonic() - start_time, 2),
        )
        return summary

    async def start(self) -> None:
        """
        Run cycles until stop() is called.

        Each cycle is followed by a pause of `interval_seconds`, cut short
        by stop().
        """
        self._running = True
        self._stop_event.clear()
        logger.info("Starting scan service")

        try:
            while self._running:
                try:
                    await self.run_once()
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    logger.error(
                        "Scan cycle failed",
                        error=str(e),
                        error_type=type(e).__name__,
                    )

                if not self._running:
                    break
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
                except asyncio.TimeoutError:
                    pass
        except asyncio.CancelledError:
            logger.info("Scan service cancelled")
        finally:
            self._running = False
            logger.info("Scan service stopped", cycles=self._cycles)

    def request_stop(self) -> None:
        """Stop the loop after the current cycle. Safe to call from a signal handler."""
        logger.info("Stopping scan service")
        self._running = False
        self._stop_event.set()

    async def stop(self) -> None:
        self.request_stop()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def cycles(self) -> int:
        return self._cycles

    def status(self) -> dict[str, Any]:
        return {
            "running": self._running,
            "cycles": self._cycles,
            "communities": self._communities,
            "last_summary": self._last_summary.to_dict() if self._last_summary else None,
        }
