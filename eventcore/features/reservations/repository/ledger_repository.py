"""
Read-only access to the reservations ledger.

The reservation workflow owns writes; this core only reads records by
event, by user, or by id.
"""

from typing import Any

from eventcore.db.helpers import fetch_all, fetch_one
from eventcore.features.reservations.domain.models import ReservationRecord

_COLUMNS = """
    id, user_id, event_id, status, attendee_count,
    reserved_at, cancelled_at, checked_in_at
"""


def _to_record(row: dict[str, Any]) -> ReservationRecord:
    return ReservationRecord(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        event_id=str(row["event_id"]),
        status=row["status"],
        attendee_count=row.get("attendee_count"),
        reserved_at=row.get("reserved_at"),
        cancelled_at=row.get("cancelled_at"),
        checked_in_at=row.get("checked_in_at"),
    )


class LedgerRepository:
    """Persistence helpers for reservations."""

    @staticmethod
    async def list_for_event(event_id: str) -> list[ReservationRecord]:
        query = f"SELECT {_COLUMNS} FROM reservations WHERE event_id = %s"
        return [_to_record(row) for row in await fetch_all(query, (event_id,))]

    @staticmethod
    async def list_for_user(user_id: str) -> list[ReservationRecord]:
        query = f"SELECT {_COLUMNS} FROM reservations WHERE user_id = %s ORDER BY reserved_at"
        return [_to_record(row) for row in await fetch_all(query, (user_id,))]

    @staticmethod
    async def get(reservation_id: str) -> ReservationRecord | None:
        query = f"SELECT {_COLUMNS} FROM reservations WHERE id = %s"
        row = await fetch_one(query, (reservation_id,))
        return _to_record(row) if row else None

    @staticmethod
    async def list_users_with_events_ending_between(start, end) -> list[str]:
        """Users holding a reservation for an event that ended inside [start, end]."""
        query = """
            SELECT DISTINCT r.user_id
            FROM reservations r
            JOIN events e ON e.id = r.event_id
            WHERE r.status = 'reserved'
              AND e.ends_at BETWEEN %s AND %s
        """
        rows = await fetch_all(query, (start, end))
        return [str(row["user_id"]) for row in rows]


ledger_repository = LedgerRepository()
