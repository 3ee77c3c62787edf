"""
Keeps a user's cached set of reserved event ids aligned with the ledger.

The cache lives in Redis under rsvps:<user_id>. It is rewritten only when
the reserved set actually changed, so unchanged notices cause no writes.
"""

from eventcore.features.reservations.domain.models import reserved_event_ids
from eventcore.features.reservations.repository.ledger_repository import ledger_repository
from eventcore.features.reservations.services.ledger_stream import LedgerSubscription
from eventcore.infrastructure.observability.logging import get_logger
from eventcore.services.infrastructure.redis_client import fast_redis

logger = get_logger(__name__)


def rsvp_cache_key(user_id: str) -> str:
    return f"rsvps:{user_id}"


class RsvpLiveMirror:
    def __init__(self, *, ledger=ledger_repository, redis=None):
        self.ledger = ledger
        self.redis = redis or fast_redis
        self.user_id: str | None = None
        self.writes = 0
        self._subscription: LedgerSubscription | None = None

    async def bind(self, user_id: str | None) -> None:
        """Track user_id, tearing down any subscription held for another user."""
        if user_id == self.user_id and self._subscription is not None:
            return
        await self.unbind()
        if not user_id:
            return

        self.user_id = user_id
        self._subscription = LedgerSubscription(user_id, self._on_change, redis=self.redis)
        await self._subscription.start()
        await self.refresh()

    async def unbind(self) -> None:
        if self._subscription is not None:
            await self._subscription.stop()
        self._subscription = None
        self.user_id = None

    async def _on_change(self, notice: dict) -> None:
        # A notice delivered after a rebind belongs to the previous user
        if notice.get("user_id") and notice["user_id"] != self.user_id:
            return
        await self.refresh()

    async def refresh(self) -> bool:
        """Re-read the ledger and write the cache if it differs. True when written."""
        user_id = self.user_id
        if not user_id:
            return False

        records = await self.ledger.list_for_user(user_id)
        current = reserved_event_ids(records)
        if user_id != self.user_id:
            return False

        key = rsvp_cache_key(user_id)
        cached = await self.redis.get_members(key)
        if cached == current or user_id != self.user_id:
            return False

        await self.redis.replace_members(key, current)
        self.writes += 1
        logger.debug("RSVP cache updated", user_id=user_id, reserved_count=len(current))
        return True

    async def reserved_event_ids(self) -> set[str]:
        if not self.user_id:
            return set()
        return await self.redis.get_members(rsvp_cache_key(self.user_id)) or set()
