"""APScheduler-backed tick driver for TaskTimerEngine.

Keeps at most one interval job alive, and only while a timer is running.
"""

import logging
from typing import Awaitable, Callable, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger("task_timers")

TICK_JOB_ID = "task_timer_tick"


class TimerTicker:
    """Registers the engine's tick as an interval job on an AsyncIOScheduler."""

    def __init__(
        self,
        scheduler: AsyncIOScheduler,
        interval_seconds: int = 1,
        after_tick: Optional[Callable[[], Awaitable[None]]] = None,
    ):
        self.scheduler = scheduler
        self.interval_seconds = interval_seconds
        self._after_tick = after_tick
        self._active = False

    @property
    def is_active(self) -> bool:
        return self._active

    def start(self, tick: Callable[[], None]) -> None:
        if self._active:
            return
        # Coroutine jobs run on the event loop instead of the thread pool
        self.scheduler.add_job(
            self._run,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            args=[tick],
            id=TICK_JOB_ID,
            name="Task timer tick",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self._active = True
        logger.info(f"Ticker: started ({self.interval_seconds}s interval)")

    def stop(self) -> None:
        if not self._active:
            return
        self._active = False
        try:
            self.scheduler.remove_job(TICK_JOB_ID)
        except JobLookupError:
            pass
        logger.info("Ticker: stopped")

    async def _run(self, tick: Callable[[], None]) -> None:
        tick()
        if self._after_tick is not None:
            await self._after_tick()
