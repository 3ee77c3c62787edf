"""
Domain models for notification fan-out.

Lightweight dataclasses shared by the resolvers, channel senders, the
dispatcher and the delivery log repository.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any


class NotificationKind(StrEnum):
    NEW_RSVP = "new-rsvp"
    RESERVATION_CONFIRMATION = "reservation_confirmation"
    ANNOUNCEMENT = "announcement_created"
    POLL = "poll_created"
    NEW_MESSAGE = "new-message"
    FOLLOWED_HOST_EVENT = "follow_new_event"
    NEW_FOLLOWER = "new-follower"
    FOLLOW_SUGGESTION = "follow-suggestion"


class Channel(StrEnum):
    IN_APP = "in_app"
    EMAIL = "email"
    SMS = "sms"


class DeliveryStatus(StrEnum):
    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"


# Reasons recorded on skipped/indeterminate records
SKIP_PREFERENCE = "skipped by user preference"
SKIP_NO_ADDRESS = "no deliverable address"
SKIP_DUPLICATE = "duplicate: already sent"
SKIP_NOT_CONFIGURED = "provider not configured"
TIMEOUT_MARKER = "timeout, may have been sent"


@dataclass(slots=True)
class NotificationIntent:
    """Who should be told what. Built per trigger, never persisted."""

    kind: str
    subject_entity_id: str | None
    title: str
    body: str
    recipient_ids: list[str]
    context: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class EmailContent:
    subject: str
    html: str | None = None


@dataclass(slots=True)
class SmsContent:
    message: str


@dataclass(slots=True, frozen=True)
class DeliveryPreference:
    """Per-user channel opt-ins; SMS is opt-in, everything else opt-out."""

    in_app_opt_in: bool = True
    email_opt_in: bool = True
    sms_opt_in: bool = False


@dataclass(slots=True, frozen=True)
class ContactInfo:
    email: str | None = None
    phone_e164: str | None = None
    display_name: str | None = None


@dataclass(slots=True)
class DeliveryLogRecord:
    """Append-only audit row; also the idempotency index."""

    id: str
    recipient: str
    channel: str
    status: str
    subject_entity_id: str | None = None
    notification_kind: str | None = None
    provider_message_id: str | None = None
    error_text: str | None = None
    indeterminate: bool = False
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(slots=True)
class DeliveryOutcome:
    """Result of a single channel attempt, before it is logged."""

    status: str
    provider_message_id: str | None = None
    error_text: str | None = None
    indeterminate: bool = False

    @classmethod
    def sent(cls, provider_message_id: str | None = None) -> "DeliveryOutcome":
        return cls(DeliveryStatus.SENT, provider_message_id=provider_message_id)

    @classmethod
    def failed(cls, error_text: str) -> "DeliveryOutcome":
        return cls(DeliveryStatus.FAILED, error_text=error_text)

    @classmethod
    def skipped(cls, reason: str) -> "DeliveryOutcome":
        return cls(DeliveryStatus.SKIPPED, error_text=reason)

    @classmethod
    def timed_out(cls) -> "DeliveryOutcome":
        return cls(DeliveryStatus.SENT, error_text=TIMEOUT_MARKER, indeterminate=True)
