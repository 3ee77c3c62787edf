"""
Service layer for notification fan-out.
"""

from .contact_resolver import ContactResolver
from .delivery_logger import DeliveryLogger
from .dispatch_queue import DispatchQueue, dispatch_queue
from .dispatcher import NotificationDispatcher, notification_dispatcher
from .idempotency_guard import IdempotencyGuard
from .preference_resolver import PreferenceResolver
from .timeout_guard import GuardedResult, TimeoutGuard

__all__ = [
    "ContactResolver",
    "DeliveryLogger",
    "DispatchQueue",
    "dispatch_queue",
    "NotificationDispatcher",
    "notification_dispatcher",
    "IdempotencyGuard",
    "PreferenceResolver",
    "GuardedResult",
    "TimeoutGuard",
]
