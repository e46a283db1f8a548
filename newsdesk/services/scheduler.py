"""
Interval driver for the author-mode pipeline.

The scheduler is `running` while any tick is in flight and `idle` otherwise.
Ticks are not mutually exclusive: a manual trigger may overlap a timed one,
and the store's uniqueness constraints settle any item both try to write.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from enum import Enum

from newsdesk.core.config import get_settings
from newsdesk.core.errors import SchedulerTickError
from newsdesk.core.time import now_utc
from newsdesk.services.dedup import DedupCache, get_dedup_cache
from newsdesk.services.pipeline import BatchResult, run_author

logger = logging.getLogger(__name__)

RunAuthorFn = Callable[[str], Awaitable[BatchResult]]


class SchedulerState(str, Enum):
    idle = "idle"
    running = "running"


class PollScheduler:
    def __init__(
        self,
        authors: list[str],
        interval_seconds: float,
        run_author_fn: RunAuthorFn = run_author,
        cache: DedupCache | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.authors = list(authors)
        self.interval_seconds = interval_seconds
        self._run_author = run_author_fn
        self._cache = cache
        self._sleep = sleep
        self._active = 0
        self._task: asyncio.Task | None = None
        self.ticks = 0
        self.last_run_at: datetime | None = None
        self.last_results: list[dict] = []

    @property
    def state(self) -> SchedulerState:
        return SchedulerState.running if self._active else SchedulerState.idle

    @property
    def cache(self) -> DedupCache:
        return self._cache if self._cache is not None else get_dedup_cache()

    async def tick(self) -> list[dict]:
        self._active += 1
        results: list[dict] = []
        try:
            swept = self.cache.sweep()
            if swept:
                logger.info("Swept %d stale dedup entries", swept)
            for author in self.authors:
                results.append(await self._run_one(author))
        finally:
            self._active -= 1
            self.ticks += 1
            self.last_run_at = now_utc()
            self.last_results = results
        return results

    async def _run_one(self, author: str) -> dict:
        logger.info("Scheduled fetch for @%s", author, extra={"event": "poll_author", "author": author})
        try:
            outcome = await self._run_author(author)
            payload = outcome.as_dict()
        except Exception as exc:  # noqa: BLE001
            error = SchedulerTickError(author, exc)
            logger.error(str(error), exc_info=exc, extra={"event": "poll_author_failed", "author": author})
            return {"user": author, "error": str(exc) or exc.__class__.__name__}

        logger.info(
            "Scheduled fetch done for @%s saved=%d",
            author,
            len(payload["succeeded"]),
            extra={"event": "poll_author_done", "author": author},
        )
        return {
            "user": author,
            "success": payload["succeeded"],
            "failed": payload["failed"],
            "skipped": payload["skipped"],
        }

    async def run_forever(self) -> None:
        while True:
            await self._sleep(self.interval_seconds)
            try:
                await self.tick()
            except Exception:  # noqa: BLE001
                logger.exception("Scheduler tick crashed; continuing with the next interval")

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run_forever(), name="poll-scheduler")
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    def status(self) -> dict:
        return {
            "state": self.state.value,
            "authors": self.authors,
            "interval_seconds": self.interval_seconds,
            "last_run_at": self.last_run_at,
            "ticks": self.ticks,
        }


def build_scheduler(**kwargs) -> PollScheduler:
    settings = get_settings()
    return PollScheduler(
        authors=settings.poll_author_list,
        interval_seconds=settings.poll_interval_minutes * 60,
        **kwargs,
    )
