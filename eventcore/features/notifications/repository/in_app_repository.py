"""
Postgres repository for the in-app notification feed.
"""

import json
from typing import Any
from uuid import uuid4

from eventcore.db.helpers import execute_query, fetch_all, fetch_val

UNREAD_COUNT_CAP = 100


class InAppNotificationRepository:
    """Persistence helpers for in_app_notifications."""

    @staticmethod
    async def create(
        user_id: str,
        kind: str,
        title: str,
        body: str,
        subject_entity_id: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> str:
        notification_id = str(uuid4())
        query = """
            INSERT INTO in_app_notifications (
                id, user_id, kind, title, body, subject_entity_id, context, is_read, created_at
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, false, NOW())
        """
        await execute_query(
            query,
            (
                notification_id,
                user_id,
                kind,
                title,
                body,
                subject_entity_id,
                json.dumps(context or {}, default=str),
            ),
        )
        return notification_id

    @staticmethod
    async def list_for_user(user_id: str, limit: int = 50) -> list[dict[str, Any]]:
        query = """
            SELECT id, kind, title, body, subject_entity_id, is_read, created_at
            FROM in_app_notifications
            WHERE user_id = %s
            ORDER BY created_at DESC
            LIMIT %s
        """
        return await fetch_all(query, (user_id, limit))

    @staticmethod
    async def mark_read(user_id: str, notification_id: str) -> bool:
        query = """
            UPDATE in_app_notifications
            SET is_read = true
            WHERE id = %s AND user_id = %s
        """
        return await execute_query(query, (notification_id, user_id)) > 0

    @staticmethod
    async def mark_all_read(user_id: str) -> int:
        query = """
            UPDATE in_app_notifications
            SET is_read = true
            WHERE user_id = %s AND is_read = false
        """
        return await execute_query(query, (user_id,))

    @staticmethod
    async def unread_count(user_id: str) -> int:
        query = """
            SELECT COUNT(*) FROM (
                SELECT 1 FROM in_app_notifications
                WHERE user_id = %s AND is_read = false
                LIMIT %s
            ) AS unread
        """
        return int(await fetch_val(query, (user_id, UNREAD_COUNT_CAP)) or 0)


in_app_repository = InAppNotificationRepository()
