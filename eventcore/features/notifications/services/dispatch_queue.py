"""
In-process work queue for fire-and-forget dispatches.

Callers never await a dispatch; the queue only keeps the tasks alive and
lets shutdown (or a test) wait for the backlog to empty.
"""

import asyncio
from collections.abc import Coroutine

from eventcore.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class DispatchQueue:
    def __init__(self):
        self._tasks: set[asyncio.Task] = set()

    def submit(self, work: Coroutine, name: str | None = None) -> asyncio.Task:
        """Schedule work on the running loop and return immediately."""
        task = asyncio.create_task(work, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(
                "Dispatch task failed",
                task=task.get_name(),
                error=str(error),
                error_type=type(error).__name__,
            )

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self, timeout: float | None = None) -> None:
        """Wait until no tasks remain, including ones submitted while draining."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout if timeout is not None else None

        while self._tasks:
            remaining = None if deadline is None else deadline - loop.time()
            if remaining is not None and remaining <= 0:
                logger.warning("Dispatch queue drain timed out", pending=self.pending)
                return
            await asyncio.wait(set(self._tasks), timeout=remaining)


dispatch_queue = DispatchQueue()
