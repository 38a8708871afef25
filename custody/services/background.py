"""
In-process background tasks.

Fire-and-forget side effects (ledger writes, contact stats,
notifications) are submitted here instead of being left as bare
unawaited coroutines. Each task runs behind its own error boundary, so a
failure is logged and never reaches the request that scheduled it.
"""

import asyncio
from collections.abc import Coroutine
from typing import Any

from loguru import logger


class BackgroundTaskRunner:
    """
    Tracks detached asyncio tasks.

    Strong references are kept until each task finishes so the event loop
    does not garbage-collect them mid-flight.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()
        self._failed = 0
        self._completed = 0

    def submit(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task:
        """
        Schedule a coroutine in the background.

        Args:
            coro: Coroutine to run
            name: Task name used in logs

        Returns:
            The created task (awaiting it never raises)
        """
        task = asyncio.create_task(self._guarded(coro, name), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _guarded(self, coro: Coroutine[Any, Any, Any], name: str) -> None:
        """Error boundary for one background task."""
        try:
            await coro
            self._completed += 1
        except asyncio.CancelledError:
            logger.warning(f"Background task '{name}' cancelled")
            raise
        except Exception as e:
            self._failed += 1
            logger.opt(exception=True).error(f"Background task '{name}' failed: {e}")

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def get_stats(self) -> dict[str, int]:
        return {
            "pending": self.pending,
            "completed": self._completed,
            "failed": self._failed,
        }

    async def drain(self, timeout: float | None = 10.0) -> None:
        """
        Wait for outstanding tasks, cancelling whatever outlives the timeout.

        Called on application shutdown.
        """
        if not self._tasks:
            return

        tasks = list(self._tasks)
        logger.info(f"Draining {len(tasks)} background tasks...")
        _, still_running = await asyncio.wait(tasks, timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            await asyncio.gather(*still_running, return_exceptions=True)
            logger.warning(f"Cancelled {len(still_running)} background tasks on shutdown")
