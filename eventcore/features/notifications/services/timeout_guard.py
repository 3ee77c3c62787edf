"""
Bounded wait around outbound provider calls.

On expiry the call is left running (a provider request may already have
been accepted) and the caller gets an indeterminate result instead of an
error. Late completions are only logged.
"""

import asyncio
from collections.abc import Coroutine
from dataclasses import dataclass
from typing import Any

from eventcore.config import settings
from eventcore.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


@dataclass(slots=True)
class GuardedResult:
    value: Any = None
    indeterminate: bool = False


class TimeoutGuard:
    def __init__(self, timeout_s: float | None = None):
        self.timeout_s = timeout_s if timeout_s is not None else settings.PROVIDER_TIMEOUT_SECONDS
        self._stragglers: set[asyncio.Task] = set()

    async def run(self, call: Coroutine, operation: str = "provider_call") -> GuardedResult:
        """Await call for at most timeout_s. Exceptions from the call propagate."""
        task = asyncio.ensure_future(call)
        done, _ = await asyncio.wait({task}, timeout=self.timeout_s)

        if task in done:
            return GuardedResult(value=task.result())

        logger.warning(
            "Provider call exceeded timeout, treating as indeterminate",
            operation=operation,
            timeout_s=self.timeout_s,
        )
        self._stragglers.add(task)
        task.add_done_callback(lambda t: self._on_late_completion(t, operation))
        return GuardedResult(indeterminate=True)

    def _on_late_completion(self, task: asyncio.Task, operation: str) -> None:
        self._stragglers.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        logger.info(
            "Timed-out provider call finished late",
            operation=operation,
            succeeded=error is None,
            error=str(error) if error else None,
        )

    @property
    def in_flight(self) -> int:
        return len(self._stragglers)
