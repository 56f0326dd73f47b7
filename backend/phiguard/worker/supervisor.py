"""
supervisor.py - Supervised background tasks for accepted webhook events.

Lifecycle:
1. spawn(): schedule one audit run; the task is tracked until it finishes
2. Task failures are captured by a done-callback and logged, never lost
3. close(): stop accepting new work (the webhook answers 503)
4. drain(timeout): wait for outstanding runs, cancel whatever is left
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Coroutine

logger = logging.getLogger(__name__)


class SupervisorClosed(Exception):
    """Raised by spawn() once shutdown has begun."""


class TaskSupervisor:
    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()
        self._accepting = True

    @property
    def accepting(self) -> bool:
        return self._accepting

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task:
        if not self._accepting:
            coro.close()
            raise SupervisorClosed("Supervisor is shutting down")
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning("Task %s cancelled", task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Task %s failed: %s",
                task.get_name(),
                exc,
                exc_info=(type(exc), exc, exc.__traceback__),
            )

    def close(self) -> None:
        self._accepting = False

    async def drain(self, timeout: float) -> int:
        """
        Stop accepting, wait up to ``timeout`` seconds, cancel the rest.

        Returns:
            Number of tasks that had to be cancelled.
        """
        self.close()
        if not self._tasks:
            return 0

        logger.info("Draining %d audit task(s) (timeout=%.1fs)", len(self._tasks), timeout)
        _, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        for task in pending:
            logger.error("Task %s did not finish before shutdown, cancelling", task.get_name())
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        return len(pending)
