"""
Postgres repository for the denormalized event projection.

The reservation-count synchronizer is the reconciling writer of
attendees_count; apply_optimistic_delta is the advisory fast path used
right after a reservation action.
"""

from typing import Any

from eventcore.db.helpers import execute_query, fetch_all, fetch_one
from eventcore.features.reservations.domain.models import EventProjection

_COLUMNS = """
    id, host_id, title, attendees_count, is_demo, ends_at,
    COALESCE(follow_suggested_user_ids, '{}') AS follow_suggested_user_ids
"""


def _to_projection(row: dict[str, Any]) -> EventProjection:
    return EventProjection(
        id=str(row["id"]),
        host_id=str(row["host_id"]) if row.get("host_id") else None,
        title=row.get("title") or "",
        attendees_count=int(row.get("attendees_count") or 0),
        is_demo=bool(row.get("is_demo")),
        ends_at=row.get("ends_at"),
        follow_suggested_user_ids=list(row.get("follow_suggested_user_ids") or []),
    )


class EventRepository:
    """Persistence helpers for events."""

    @staticmethod
    async def list_syncable(event_ids: list[str] | None = None) -> list[EventProjection]:
        """Non-demo events, optionally narrowed to the ids a session can see."""
        if event_ids is not None:
            query = f"SELECT {_COLUMNS} FROM events WHERE is_demo = false AND id = ANY(%s)"
            rows = await fetch_all(query, (list(event_ids),))
        else:
            query = f"SELECT {_COLUMNS} FROM events WHERE is_demo = false"
            rows = await fetch_all(query)
        return [_to_projection(row) for row in rows]

    @staticmethod
    async def get(event_id: str) -> EventProjection | None:
        row = await fetch_one(f"SELECT {_COLUMNS} FROM events WHERE id = %s", (event_id,))
        return _to_projection(row) if row else None

    @staticmethod
    async def get_many(event_ids: list[str]) -> list[EventProjection]:
        if not event_ids:
            return []
        query = f"SELECT {_COLUMNS} FROM events WHERE id = ANY(%s)"
        return [_to_projection(row) for row in await fetch_all(query, (list(event_ids),))]

    @staticmethod
    async def write_attendees_count(event_id: str, count: int) -> None:
        query = """
            UPDATE events
            SET attendees_count = %s, updated_at = NOW()
            WHERE id = %s
        """
        await execute_query(query, (count, event_id))

    @staticmethod
    async def apply_optimistic_delta(event_id: str, delta: int) -> None:
        query = """
            UPDATE events
            SET attendees_count = GREATEST(attendees_count + %s, 0), updated_at = NOW()
            WHERE id = %s
        """
        await execute_query(query, (delta, event_id))

    @staticmethod
    async def append_follow_suggestion_marker(event_id: str, user_id: str) -> bool:
        """
        Atomically add user_id to the event's suggested set.

        Returns False when the user was already present, so only one of
        several concurrent callers wins the append.
        """
        query = """
            UPDATE events
            SET follow_suggested_user_ids =
                array_append(COALESCE(follow_suggested_user_ids, '{}'), %s)
            WHERE id = %s
              AND NOT (%s = ANY(COALESCE(follow_suggested_user_ids, '{}')))
        """
        return await execute_query(query, (user_id, event_id, user_id)) > 0


event_repository = EventRepository()
