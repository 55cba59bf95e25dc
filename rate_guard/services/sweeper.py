"""Periodic cleanup of idle limiter identifiers.

Sweeping only bounds memory: it never changes which requests a limiter admits,
so the cadence is a tuning knob rather than a correctness requirement.
"""

from __future__ import annotations

import asyncio
import logging

from rate_guard.adapters.rate_limit.named import NamedLimiterSet

logger = logging.getLogger(__name__)


class LimiterSweeper:
    """Runs ``cleanup_all`` on a NamedLimiterSet at a fixed interval.

    Attributes:
        interval_seconds: Delay between sweeps; ``<= 0`` disables the
            background task (``sweep_once`` still works).
    """

    def __init__(self, limiters: NamedLimiterSet, interval_seconds: float = 60.0) -> None:
        self._limiters = limiters
        self.interval_seconds = interval_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def sweep_once(self) -> dict[str, int]:
        """Sweep every limiter now.

        Returns:
            Identifiers removed per operation class.
        """
        removed = self._limiters.cleanup_all()
        logger.info(
            "limiter.sweep_completed",
            extra={
                "removed": removed,
                "tracked": {
                    name: stats.tracked_identifiers
                    for name, stats in self._limiters.stats().items()
                },
            },
        )
        return removed

    async def start_background(self) -> None:
        """Start periodic sweeps on the running event loop."""
        if self.interval_seconds <= 0:
            logger.info("limiter.sweeper_disabled", extra={"interval_s": self.interval_seconds})
            return
        if self.running:
            return
        self._task = asyncio.create_task(self._sweep_loop())
        logger.info("limiter.sweeper_started", extra={"interval_s": self.interval_seconds})

    async def stop_background(self) -> None:
        """Cancel the periodic task and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("limiter.sweeper_stopped")

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                self.sweep_once()
            except Exception:
                logger.exception("limiter.sweep_failed")
