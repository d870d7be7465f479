from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable, Generic

from idea_pilot.realtime.merge import M, newer_than

logger = logging.getLogger(__name__)

Fetch = Callable[[int], Awaitable[list[M]]]
Deliver = Callable[[list[M]], Awaitable[None]]
LatestAt = Callable[[], datetime | None]


class PollingFallback(Generic[M]):
    """Timer-driven fetch of the newest page while push delivery is degraded.

    Each tick fetches ``page_size`` recent messages, keeps those newer than the
    latest shown one and hands them to ``deliver``. The loop stops on its own
    after ``max_failures`` consecutive fetch errors.
    """

    def __init__(
        self,
        fetch: Fetch[M],
        deliver: Deliver[M],
        latest_at: LatestAt,
        *,
        interval: float = 5.0,
        page_size: int = 10,
        max_failures: int = 5,
    ) -> None:
        self._fetch = fetch
        self._deliver = deliver
        self._latest_at = latest_at
        self._interval = interval
        self._page_size = page_size
        self._max_failures = max_failures
        self._task: asyncio.Task[None] | None = None
        self.failures = 0

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.active:
            return
        self.failures = 0
        logger.info("Starting polling fallback (every %.1fs)", self._interval)
        self._task = asyncio.create_task(self._run(), name="realtime-polling-fallback")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Polling fallback stopped")

    async def poll_once(self, limit: int | None = None) -> list[M]:
        latest = self._latest_at()
        try:
            fetched = await self._fetch(limit or self._page_size)
        except Exception:
            self.failures += 1
            logger.warning(
                "Polling fetch failed (%d/%d)", self.failures, self._max_failures, exc_info=True,
            )
            return []
        self.failures = 0
        fresh = newer_than(fetched, latest)
        if fresh:
            logger.debug("Polling found %d new messages", len(fresh))
            await self._deliver(fresh)
        return fresh

    async def _run(self) -> None:
        while self.failures < self._max_failures:
            await asyncio.sleep(self._interval)
            await self.poll_once()
        logger.error("Too many consecutive polling failures, polling stopped")
