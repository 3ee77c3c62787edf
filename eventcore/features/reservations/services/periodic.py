"""
Fixed-interval loop with a liveness flag.

The tick runs once immediately on start and then every interval_s
seconds. stop() flips the flag and wakes the sleep; a tick that is already
running is allowed to finish.
"""

import asyncio
from collections.abc import Awaitable, Callable

from eventcore.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

STOP_GRACE_SECONDS = 10.0


class PeriodicLoop:
    def __init__(self, name: str, interval_s: float, tick: Callable[[], Awaitable[object]]):
        self.name = name
        self.interval_s = interval_s
        self._tick = tick
        self._alive = False
        self._stopped = False
        self._wake = asyncio.Event()
        self._task: asyncio.Task | None = None

    @property
    def alive(self) -> bool:
        return self._alive

    @property
    def stopped(self) -> bool:
        """True once stop() has been called."""
        return self._stopped

    def start(self) -> asyncio.Task:
        if self._task and not self._task.done():
            return self._task
        self._alive = True
        self._stopped = False
        self._wake = asyncio.Event()
        self._task = asyncio.create_task(self.run_forever(), name=f"loop:{self.name}")
        return self._task

    async def run_forever(self) -> None:
        if self._stopped:
            return
        self._alive = True
        logger.info("Periodic loop started", loop=self.name, interval_s=self.interval_s)

        while self._alive:
            try:
                await self._tick()
            except Exception as e:
                logger.error(
                    "Periodic tick failed",
                    loop=self.name,
                    error=str(e),
                    error_type=type(e).__name__,
                )

            if not self._alive:
                break
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self.interval_s)
            except TimeoutError:
                pass

        logger.info("Periodic loop stopped", loop=self.name)

    async def stop(self) -> None:
        self._stopped = True
        self._alive = False
        self._wake.set()
        if self._task is None:
            return
        try:
            await asyncio.wait_for(asyncio.shield(self._task), timeout=STOP_GRACE_SECONDS)
        except TimeoutError:
            logger.warning("Periodic loop did not stop in time, cancelling", loop=self.name)
            self._task.cancel()
        self._task = None
