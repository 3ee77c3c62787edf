"""
DeliveryLogger - audit trail for every attempted delivery.

Each attempt is written to:
1. Structured logs (stdout) - real-time monitoring
2. notification_delivery_logs - immutable, queryable, and the idempotency index

Never fails the dispatch if the log store is unavailable.
"""

from uuid import uuid4

from eventcore.features.notifications.domain.models import (
    Channel,
    DeliveryLogRecord,
    DeliveryOutcome,
    DeliveryStatus,
)
from eventcore.features.notifications.repository.delivery_log_repository import (
    delivery_log_repository,
)
from eventcore.infrastructure.observability.logging import get_logger, mask_email, mask_phone

logger = get_logger(__name__)


def _masked(recipient: str, channel: str) -> str:
    if channel == Channel.SMS:
        return mask_phone(recipient)
    if channel == Channel.EMAIL:
        return mask_email(recipient)
    return recipient


class DeliveryLogger:
    def __init__(self, repository=delivery_log_repository):
        self.repository = repository

    async def log(
        self,
        *,
        recipient: str,
        channel: str,
        outcome: DeliveryOutcome,
        subject_entity_id: str | None = None,
        notification_kind: str | None = None,
    ) -> DeliveryLogRecord:
        """
        Record one channel attempt.

        Returns:
            The record that was (or would have been) persisted; never raises.
        """
        record = DeliveryLogRecord(
            id=str(uuid4()),
            recipient=recipient,
            channel=str(channel),
            status=str(outcome.status),
            subject_entity_id=subject_entity_id,
            notification_kind=str(notification_kind) if notification_kind else None,
            provider_message_id=outcome.provider_message_id,
            error_text=outcome.error_text,
            indeterminate=outcome.indeterminate,
        )

        log_fields = {
            "channel": record.channel,
            "status": record.status,
            "recipient": _masked(recipient, record.channel),
            "subject_entity_id": subject_entity_id,
            "notification_kind": record.notification_kind,
            "provider_message_id": record.provider_message_id,
            "indeterminate": record.indeterminate,
            "reason": record.error_text,
        }
        if record.status == DeliveryStatus.FAILED:
            logger.warning("Notification delivery failed", **log_fields)
        else:
            logger.info("Notification delivery recorded", **log_fields)

        try:
            await self.repository.append(record)
        except Exception as e:
            # Keep enough context to reconstruct the row by hand
            logger.error(
                "Failed to write delivery log",
                error=str(e),
                error_type=type(e).__name__,
                fallback_data={
                    "id": record.id,
                    "channel": record.channel,
                    "status": record.status,
                    "subject_entity_id": subject_entity_id,
                    "notification_kind": record.notification_kind,
                    "timestamp": record.timestamp.isoformat(),
                },
            )

        return record
