"""
Reservations feature package.

Keeps each event's cached attendee count consistent with the reservation
ledger, mirrors a user's reservations into a local cache and schedules
follow-the-host suggestions.
"""

# Re-export the primary building blocks for easy access.
from .domain.models import ReservationRecord, SyncCircuitState, authoritative_count  # noqa: F401
from .services.session import ReservationSession  # noqa: F401
