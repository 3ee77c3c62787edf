from .models import (
    Channel,
    ContactInfo,
    DeliveryLogRecord,
    DeliveryOutcome,
    DeliveryPreference,
    DeliveryStatus,
    EmailContent,
    NotificationIntent,
    NotificationKind,
    SmsContent,
)

__all__ = [
    "Channel",
    "ContactInfo",
    "DeliveryLogRecord",
    "DeliveryOutcome",
    "DeliveryPreference",
    "DeliveryStatus",
    "EmailContent",
    "NotificationIntent",
    "NotificationKind",
    "SmsContent",
]
