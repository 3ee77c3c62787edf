"""
Best-effort duplicate suppression against the delivery log.

This is a read-then-send check, not a lock: two dispatches of the same
intent racing each other can both pass it.
"""

from eventcore.features.notifications.domain.models import Channel
from eventcore.features.notifications.repository.delivery_log_repository import (
    delivery_log_repository,
)
from eventcore.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class IdempotencyGuard:
    def __init__(self, repository=delivery_log_repository):
        self.repository = repository

    async def already_delivered(
        self,
        subject_entity_id: str | None,
        notification_kind: str | None,
        recipient_address: str | None,
        channel: str = Channel.EMAIL,
    ) -> bool:
        """
        True when a prior sent record matches the key.

        Without a subject or kind there is no key, so nothing is suppressed.
        Lookup errors fail open.
        """
        if not subject_entity_id or not notification_kind:
            return False

        try:
            return await self.repository.has_sent(
                subject_entity_id, notification_kind, recipient_address, channel
            )
        except Exception as e:
            logger.warning(
                "Idempotency check failed, allowing send",
                subject_entity_id=subject_entity_id,
                notification_kind=notification_kind,
                channel=channel,
                error=str(e),
            )
            return False
