"""
Postgres repository for the user profile fields the notification core reads.

Read-only: preferences and contact details are edited by profile settings.
"""

from typing import Any

from eventcore.db.helpers import fetch_all, fetch_one, fetch_val, with_db_retry


class ProfileRepository:
    """Persistence helpers for users rows."""

    @staticmethod
    @with_db_retry(max_retries=2, base_delay=0.1)
    async def get_notification_settings(user_id: str) -> dict[str, Any] | None:
        """Return the raw settings blob, preferring the current column over the legacy one."""
        query = """
            SELECT notification_settings, notification_preferences
            FROM users
            WHERE id = %s
        """
        row = await fetch_one(query, (user_id,))
        if not row:
            return None
        return row.get("notification_settings") or row.get("notification_preferences") or {}

    @staticmethod
    @with_db_retry(max_retries=2, base_delay=0.1)
    async def get_contact(user_id: str) -> dict[str, Any] | None:
        query = """
            SELECT email, phone_number, display_name, name
            FROM users
            WHERE id = %s
        """
        return await fetch_one(query, (user_id,))

    @staticmethod
    async def is_following(user_id: str, host_id: str) -> bool:
        query = """
            SELECT %s = ANY(COALESCE(following, '{}')) AS following
            FROM users
            WHERE id = %s
        """
        return bool(await fetch_val(query, (host_id, user_id)))

    @staticmethod
    async def get_followers(host_id: str) -> list[str]:
        query = """
            SELECT u.id
            FROM users u
            WHERE %s = ANY(COALESCE(u.following, '{}'))
        """
        rows = await fetch_all(query, (host_id,))
        return [str(row["id"]) for row in rows]


profile_repository = ProfileRepository()
