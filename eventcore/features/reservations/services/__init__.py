"""
Service layer for reservation-count reconciliation and per-user sessions.
"""

from .count_synchronizer import ReservationCountSynchronizer
from .follow_suggestions import FollowSuggestionScheduler
from .hooks import handle_reservation_cancelled, handle_reservation_created
from .rsvp_mirror import RsvpLiveMirror
from .session import ReservationSession

__all__ = [
    "ReservationCountSynchronizer",
    "FollowSuggestionScheduler",
    "handle_reservation_cancelled",
    "handle_reservation_created",
    "RsvpLiveMirror",
    "ReservationSession",
]
