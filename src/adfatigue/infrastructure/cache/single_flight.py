"""
Single-flight group for origin fetches.

Concurrent callers asking for the same key share one asyncio.Task. Each
waiter awaits the task through asyncio.shield(), so a caller that is
cancelled (or times out) leaves the shared fetch running for the others.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from adfatigue.core.logging.logger import get_logger

logger = get_logger(__name__)


class SingleFlight:
    """
    Maps key -> in-flight task.

    Usage:
        flights = SingleFlight()
        task, leader = flights.start_or_join(key, lambda: fetch(key))
        data = await asyncio.shield(task)
    """

    def __init__(self):
        self._tasks: dict[str, asyncio.Task] = {}

    def start_or_join(
        self, key: str, factory: Callable[[], Awaitable[Any]]
    ) -> tuple[asyncio.Task, bool]:
        """
        Return the in-flight task for key, starting one if there is none.

        Returns:
            (task, leader) where leader is True when this call started it
        """
        task = self._tasks.get(key)
        if task is not None and not task.done():
            return task, False

        task = asyncio.create_task(factory(), name=f"singleflight:{key}")
        self._tasks[key] = task
        task.add_done_callback(lambda t: self._finish(key, t))
        return task, True

    async def do(self, key: str, factory: Callable[[], Awaitable[Any]]) -> Any:
        """Run factory once per key at a time and await its result."""
        task, _ = self.start_or_join(key, factory)
        return await asyncio.shield(task)

    def _finish(self, key: str, task: asyncio.Task) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]
        # mark the exception retrieved; waiters re-raise it themselves
        if not task.cancelled() and task.exception() is not None:
            logger.debug("Single-flight fetch failed", stage="CACHE.3", cache_key=key)

    def in_flight(self) -> int:
        return len(self._tasks)

    def __contains__(self, key: str) -> bool:
        return key in self._tasks

    async def cancel_all(self) -> None:
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
