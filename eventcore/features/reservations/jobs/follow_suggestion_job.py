"""
Server-side follow-suggestion sweep.

Each run finds users holding a reservation for an event that ended inside
the suggestion window and runs a one-shot scheduler pass for each of
them. Queued notifications are drained before the next sleep.
"""

import asyncio
from datetime import UTC, datetime, timedelta

from eventcore.config import settings
from eventcore.db.pool import db_pool
from eventcore.features.notifications.services.dispatch_queue import dispatch_queue
from eventcore.features.reservations.repository.ledger_repository import ledger_repository
from eventcore.features.reservations.services.follow_suggestions import FollowSuggestionScheduler
from eventcore.features.reservations.services.periodic import PeriodicLoop
from eventcore.infrastructure.observability.logging import get_logger
from eventcore.services.providers.registry import close_providers

logger = get_logger(__name__)


class FollowSuggestionJob:
    def __init__(self, ledger=ledger_repository, queue=dispatch_queue, scheduler_factory=None):
        self.ledger = ledger
        self.queue = queue
        self.scheduler_factory = scheduler_factory or FollowSuggestionScheduler

    async def run_once(self, now: datetime | None = None) -> dict:
        now = now or datetime.now(UTC)
        window_start = now - timedelta(hours=settings.FOLLOW_SUGGESTION_MAX_HOURS)
        window_end = now - timedelta(hours=settings.FOLLOW_SUGGESTION_MIN_HOURS)

        user_ids = await self.ledger.list_users_with_events_ending_between(window_start, window_end)
        users_processed = 0
        suggestions = 0
        failures = 0

        for user_id in user_ids:
            scheduler = self.scheduler_factory(user_id, clock=lambda: now)
            try:
                suggestions += await scheduler.run_once()
                users_processed += 1
            except Exception as e:
                failures += 1
                logger.error("Follow suggestion sweep failed for user", user_id=user_id, error=str(e))

        await self.queue.drain()

        metrics = {
            "candidate_users": len(user_ids),
            "users_processed": users_processed,
            "suggestions_sent": suggestions,
            "failures": failures,
        }
        logger.info("Follow suggestion sweep completed", **metrics)
        return metrics


follow_suggestion_job = FollowSuggestionJob()


async def start_follow_suggestion_scheduler() -> None:
    """Entry point for the follow_suggestions worker job."""
    await db_pool.initialize()
    loop = PeriodicLoop(
        "follow_suggestion_sweep",
        settings.FOLLOW_SUGGESTION_INTERVAL_SECONDS,
        follow_suggestion_job.run_once,
    )
    try:
        await loop.run_forever()
    finally:
        await dispatch_queue.drain(timeout=30)
        await close_providers()
        await db_pool.close()


if __name__ == "__main__":
    asyncio.run(start_follow_suggestion_scheduler())
