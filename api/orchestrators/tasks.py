"""Keyed background task runner.

One task per entity id. Spawning a key that already has a live task is a
no-op, so an entity is never processed twice at the same time.
"""

from __future__ import annotations

import asyncio
from typing import Coroutine

import structlog

logger = structlog.get_logger(__name__)


class TaskRunner:
    """Runs fire-and-forget coroutines keyed by entity id.

    Args:
        max_concurrent: Optional cap on tasks running at once. Extra tasks
            wait for a slot. None means unbounded.
    """

    def __init__(self, max_concurrent: int | None = None):
        self._tasks: dict[str, asyncio.Task] = {}
        self._semaphore = asyncio.Semaphore(max_concurrent) if max_concurrent else None

    def __contains__(self, key: str) -> bool:
        task = self._tasks.get(key)
        return task is not None and not task.done()

    def __len__(self) -> int:
        return sum(1 for task in self._tasks.values() if not task.done())

    def spawn(self, key: str, coro: Coroutine) -> bool:
        """Schedule a coroutine under a key.

        Returns:
            True if scheduled, False if the key already has a live task.
        """
        if key in self:
            coro.close()
            logger.warning("Task already running, ignoring duplicate", task_key=key)
            return False

        task = asyncio.create_task(self._run(key, coro), name=key)
        self._tasks[key] = task
        task.add_done_callback(lambda t, k=key: self._forget(k, t))
        return True

    async def _run(self, key: str, coro: Coroutine) -> None:
        try:
            if self._semaphore is None:
                await coro
            else:
                async with self._semaphore:
                    await coro
        except asyncio.CancelledError:
            logger.info("Task cancelled", task_key=key)
            raise
        except Exception as e:
            logger.error("Background task failed", task_key=key, error=str(e), exc_info=True)

    def _forget(self, key: str, task: asyncio.Task) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]

    async def join(self) -> None:
        """Wait until every scheduled task, including ones spawned meanwhile, has finished."""
        while True:
            pending = [task for task in self._tasks.values() if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel outstanding tasks and wait for them to exit."""
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Task runner stopped", cancelled=len(tasks))
