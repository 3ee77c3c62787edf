"""
"Follow this host?" suggestions after an attended event.

For each event the user reserved that ended between min_hours and
max_hours ago, suggest following the host unless the user already follows
them or was already suggested for that event. The marker append is
claimed first; only the caller that wins it dispatches.
"""

from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta

from eventcore.config import settings
from eventcore.features.notifications.repository.profile_repository import profile_repository
from eventcore.features.notifications.services.triggers import notify_user_of_follow_suggestion
from eventcore.features.reservations.domain.models import EventProjection
from eventcore.features.reservations.repository.event_repository import event_repository
from eventcore.features.reservations.repository.ledger_repository import ledger_repository
from eventcore.features.reservations.services.periodic import PeriodicLoop
from eventcore.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class FollowSuggestionScheduler:
    def __init__(
        self,
        user_id: str,
        *,
        ledger=ledger_repository,
        events=event_repository,
        profiles=profile_repository,
        notify: Callable[..., Awaitable[None]] = notify_user_of_follow_suggestion,
        clock: Callable[[], datetime] = _utcnow,
        min_hours: int | None = None,
        max_hours: int | None = None,
        interval_s: float | None = None,
    ):
        self.user_id = user_id
        self.ledger = ledger
        self.events = events
        self.profiles = profiles
        self.notify = notify
        self.clock = clock
        if min_hours is None:
            min_hours = settings.FOLLOW_SUGGESTION_MIN_HOURS
        if max_hours is None:
            max_hours = settings.FOLLOW_SUGGESTION_MAX_HOURS
        self.min_age = timedelta(hours=min_hours)
        self.max_age = timedelta(hours=max_hours)
        self._loop = PeriodicLoop(
            f"follow_suggestions:{user_id}",
            interval_s if interval_s is not None else settings.FOLLOW_SUGGESTION_INTERVAL_SECONDS,
            self.run_once,
        )

    def _in_window(self, event: EventProjection, now: datetime) -> bool:
        if event.ends_at is None:
            return False
        ends_at = event.ends_at if event.ends_at.tzinfo else event.ends_at.replace(tzinfo=UTC)
        age = now - ends_at
        return self.min_age <= age <= self.max_age

    async def run_once(self) -> int:
        """Returns the number of suggestions dispatched."""
        records = await self.ledger.list_for_user(self.user_id)
        event_ids = sorted({record.event_id for record in records if record.is_reserved})
        if not event_ids:
            return 0

        now = self.clock()
        events = await self.events.get_many(event_ids)
        candidates = [event for event in events if self._in_window(event, now)]

        suggested = 0
        for event in candidates:
            if self._loop.stopped:
                break
            try:
                if await self._suggest(event):
                    suggested += 1
            except Exception as e:
                logger.error(
                    "Follow suggestion failed",
                    user_id=self.user_id,
                    event_id=event.id,
                    error=str(e),
                    error_type=type(e).__name__,
                )

        if suggested:
            logger.info("Follow suggestions sent", user_id=self.user_id, count=suggested)
        return suggested

    async def _suggest(self, event: EventProjection) -> bool:
        host_id = event.host_id
        if not host_id or host_id == self.user_id:
            return False
        if self.user_id in event.follow_suggested_user_ids:
            return False
        if await self.profiles.is_following(self.user_id, host_id):
            return False

        claimed = await self.events.append_follow_suggestion_marker(event.id, self.user_id)
        if not claimed:
            logger.debug("Follow suggestion already claimed", user_id=self.user_id, event_id=event.id)
            return False

        await self.notify(self.user_id, host_id, event.id, event.title)
        return True

    def start(self):
        return self._loop.start()

    async def stop(self) -> None:
        await self._loop.stop()
