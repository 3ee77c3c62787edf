"""
Job runners for the reservations feature.
"""

from .follow_suggestion_job import start_follow_suggestion_scheduler
from .reservation_sync_job import start_reservation_sync_scheduler

__all__ = ["start_follow_suggestion_scheduler", "start_reservation_sync_scheduler"]
