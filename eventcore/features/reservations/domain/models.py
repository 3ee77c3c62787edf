"""
Domain models for the reservation ledger and the denormalized event projection.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum


class ReservationStatus(StrEnum):
    RESERVED = "reserved"
    CANCELLED = "cancelled"


@dataclass(slots=True)
class ReservationRecord:
    """Authoritative ledger row. Status flips to cancelled; rows are never deleted."""

    id: str
    user_id: str
    event_id: str
    status: str
    attendee_count: int | None = 1
    reserved_at: datetime | None = None
    cancelled_at: datetime | None = None
    checked_in_at: datetime | None = None

    @property
    def is_reserved(self) -> bool:
        return self.status == ReservationStatus.RESERVED


@dataclass(slots=True)
class EventProjection:
    """Event row carrying the cached attendees_count derived from the ledger."""

    id: str
    host_id: str | None = None
    title: str = ""
    attendees_count: int = 0
    is_demo: bool = False
    ends_at: datetime | None = None
    follow_suggested_user_ids: list[str] = field(default_factory=list)


@dataclass(slots=True)
class SyncCircuitState:
    """Per-session latch; once tripped it stays tripped until the session is rebuilt."""

    tripped: bool = False
    tripped_at: datetime | None = None
    reason: str | None = None

    def trip(self, reason: str, at: datetime) -> None:
        if self.tripped:
            return
        self.tripped = True
        self.tripped_at = at
        self.reason = reason


def authoritative_count(records: Iterable[ReservationRecord]) -> int:
    """Sum attendee_count over reserved records; a missing count means one seat."""
    total = 0
    for record in records:
        if not record.is_reserved:
            continue
        total += record.attendee_count if record.attendee_count is not None else 1
    return total


def reserved_event_ids(records: Iterable[ReservationRecord]) -> set[str]:
    return {record.event_id for record in records if record.is_reserved}
