"""
Postgres repository for notification_delivery_logs.

Append-only. The same table answers idempotency lookups, so the
(subject_entity_id, notification_kind, recipient, channel, status) index
matters more than anything else here.
"""

from eventcore.db.helpers import execute_query, fetch_all, fetch_val
from eventcore.features.notifications.domain.models import DeliveryLogRecord, DeliveryStatus


class DeliveryLogRepository:
    """Persistence helpers for notification_delivery_logs."""

    @staticmethod
    async def append(record: DeliveryLogRecord) -> None:
        query = """
            INSERT INTO notification_delivery_logs (
                id, recipient, subject_entity_id, notification_kind, channel,
                status, provider_message_id, error_text, indeterminate, created_at
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
        """
        await execute_query(
            query,
            (
                record.id,
                record.recipient,
                record.subject_entity_id,
                record.notification_kind,
                record.channel,
                record.status,
                record.provider_message_id,
                (record.error_text or "")[:500] or None,
                record.indeterminate,
                record.timestamp,
            ),
        )

    @staticmethod
    async def has_sent(
        subject_entity_id: str,
        notification_kind: str,
        recipient: str | None,
        channel: str,
    ) -> bool:
        """True when a sent record exists for the key; recipient narrows when given."""
        query = """
            SELECT EXISTS (
                SELECT 1 FROM notification_delivery_logs
                WHERE subject_entity_id = %s
                  AND notification_kind = %s
                  AND channel = %s
                  AND status = %s
                  AND (%s::text IS NULL OR recipient = %s)
            )
        """
        params = (
            subject_entity_id,
            notification_kind,
            channel,
            DeliveryStatus.SENT.value,
            recipient,
            recipient,
        )
        return bool(await fetch_val(query, params))

    @staticmethod
    async def list_for_recipient(recipient: str, limit: int = 50) -> list[DeliveryLogRecord]:
        query = """
            SELECT id, recipient, subject_entity_id, notification_kind, channel, status,
                   provider_message_id, error_text, indeterminate, created_at
            FROM notification_delivery_logs
            WHERE recipient = %s
            ORDER BY created_at DESC
            LIMIT %s
        """
        rows = await fetch_all(query, (recipient, limit))
        return [
            DeliveryLogRecord(
                id=str(row["id"]),
                recipient=row["recipient"],
                channel=row["channel"],
                status=row["status"],
                subject_entity_id=row["subject_entity_id"],
                notification_kind=row["notification_kind"],
                provider_message_id=row["provider_message_id"],
                error_text=row["error_text"],
                indeterminate=bool(row["indeterminate"]),
                timestamp=row["created_at"],
            )
            for row in rows
        ]


delivery_log_repository = DeliveryLogRepository()
