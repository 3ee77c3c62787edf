"""
Notifications feature package.

Turns domain events into in-app, email and SMS deliveries under each
recipient's preferences. Domain models, repositories, channel senders,
services and the HTTP router live together in this slice.
"""

# Re-export the primary building blocks for easy access.
from .domain.models import NotificationIntent, NotificationKind  # noqa: F401
from .services.dispatcher import NotificationDispatcher, notification_dispatcher  # noqa: F401
from .services.dispatch_queue import dispatch_queue  # noqa: F401
