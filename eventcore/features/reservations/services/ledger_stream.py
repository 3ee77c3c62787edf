"""
Live stream of reservation ledger changes, scoped per user.

Writers publish a small JSON notice on ledger:user:<user_id> after a
reservation is created or cancelled; subscribers re-read the ledger
rather than trusting the payload.
"""

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Any

from eventcore.infrastructure.observability.logging import get_logger
from eventcore.services.infrastructure.redis_client import fast_redis

logger = get_logger(__name__)

POLL_TIMEOUT_SECONDS = 1.0


def ledger_channel(user_id: str) -> str:
    return f"ledger:user:{user_id}"


async def publish_ledger_change(
    user_id: str,
    reservation_id: str,
    event_id: str,
    status: str,
    redis=None,
) -> int:
    payload = json.dumps(
        {
            "user_id": user_id,
            "reservation_id": reservation_id,
            "event_id": event_id,
            "status": status,
        }
    )
    return await (redis or fast_redis).publish(ledger_channel(user_id), payload)


class LedgerSubscription:
    """One user's subscription. Must be stopped before it is dropped."""

    def __init__(
        self,
        user_id: str,
        on_change: Callable[[dict[str, Any]], Awaitable[None]],
        redis=None,
    ):
        self.user_id = user_id
        self.channel = ledger_channel(user_id)
        self._on_change = on_change
        self._redis = redis or fast_redis
        self._pubsub = None
        self._listening = False
        self._task: asyncio.Task | None = None

    @property
    def active(self) -> bool:
        return self._listening

    async def start(self) -> None:
        self._pubsub = await self._redis.pubsub()
        await self._pubsub.subscribe(self.channel)
        self._listening = True
        self._task = asyncio.create_task(self._listen(), name=f"ledger-stream:{self.user_id}")
        logger.info("Subscribed to ledger stream", user_id=self.user_id)

    async def _listen(self) -> None:
        while self._listening:
            try:
                message = await self._pubsub.get_message(
                    ignore_subscribe_messages=True, timeout=POLL_TIMEOUT_SECONDS
                )
            except Exception as e:
                logger.error("Ledger stream read failed", user_id=self.user_id, error=str(e))
                await asyncio.sleep(POLL_TIMEOUT_SECONDS)
                continue

            if message is None or message.get("type") != "message":
                continue
            if not self._listening:
                break

            try:
                data = json.loads(message["data"])
            except (TypeError, ValueError):
                data = {}
            try:
                await self._on_change(data)
            except Exception as e:
                logger.error("Ledger change handler failed", user_id=self.user_id, error=str(e))

    async def stop(self) -> None:
        self._listening = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._pubsub is not None:
            try:
                await self._pubsub.unsubscribe(self.channel)
                await self._pubsub.aclose()
            except Exception as e:
                logger.warning("Ledger stream unsubscribe failed", user_id=self.user_id, error=str(e))
            self._pubsub = None
        logger.info("Unsubscribed from ledger stream", user_id=self.user_id)
