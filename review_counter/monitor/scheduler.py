"""Background timer that runs a check cycle at a fixed interval."""

from __future__ import annotations

import asyncio
import time

import structlog

from review_counter.monitor.cycle import CheckCycle

logger = structlog.get_logger(__name__)


class CheckScheduler:
    """Runs :meth:`CheckCycle.run_cycle` immediately, then every ``interval_secs``.

    A failed cycle is logged and counted; the loop only ends on :meth:`stop`.

    Usage::

        scheduler = CheckScheduler(cycle, interval_secs=30)
        await scheduler.start()
        # ...
        await scheduler.stop()
    """

    def __init__(self, cycle: CheckCycle, interval_secs: float = 30.0) -> None:
        self._cycle = cycle
        self._interval_secs = interval_secs
        self._task: asyncio.Task[None] | None = None
        self._running = False
        self._run_count = 0
        self._error_count = 0
        self._last_run_time: float = 0.0

    @property
    def running(self) -> bool:
        return self._running

    @property
    def run_count(self) -> int:
        return self._run_count

    @property
    def error_count(self) -> int:
        return self._error_count

    @property
    def last_run_time(self) -> float:
        return self._last_run_time

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info("check_scheduler_started", interval_secs=self._interval_secs)

    async def stop(self) -> None:
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info(
            "check_scheduler_stopped",
            runs=self._run_count,
            errors=self._error_count,
        )

    async def tick(self) -> None:
        """Run one scheduled cycle, logging instead of raising on failure."""
        self._run_count += 1
        try:
            await self._cycle.run_cycle(trigger="timer")
        except asyncio.CancelledError:
            raise
        except Exception:
            self._error_count += 1
            logger.exception("scheduled_cycle_failed", error_count=self._error_count)
        finally:
            self._last_run_time = time.time()

    # ── Internal loop ───────────────────────────────────────────

    async def _loop(self) -> None:
        while self._running:
            await self.tick()
            try:
                await asyncio.sleep(self._interval_secs)
            except asyncio.CancelledError:
                break
