"""
Entry points called by domain actions.

Each helper builds a NotificationIntent and hands it to the dispatcher.
Helpers that need profile lookups (display names, followers) run those
lookups inside the queued work, so every helper returns as soon as the
work is queued and never raises into the calling action.
"""

from collections.abc import Awaitable, Callable

from eventcore.config import settings
from eventcore.features.notifications.domain.models import (
    EmailContent,
    NotificationIntent,
    NotificationKind,
    SmsContent,
)
from eventcore.features.notifications.repository.profile_repository import profile_repository
from eventcore.features.notifications.services.dispatcher import (
    NotificationDispatcher,
    notification_dispatcher,
)
from eventcore.features.notifications.templates import parse_poll_options
from eventcore.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

MESSAGE_SNIPPET_LENGTH = 120


async def _display_name(user_id: str | None, fallback: str) -> str:
    if not user_id:
        return fallback
    try:
        row = await profile_repository.get_contact(user_id)
    except Exception as e:
        logger.warning("Display name lookup failed", user_id=user_id, error=str(e))
        return fallback
    if not row:
        return fallback
    return row.get("display_name") or row.get("name") or fallback


def _dispatch(
    intent: NotificationIntent,
    dispatcher: NotificationDispatcher | None,
    email_content: EmailContent | None = None,
    sms_content: SmsContent | None = None,
) -> None:
    try:
        (dispatcher or notification_dispatcher).dispatch(intent, email_content, sms_content)
    except Exception as e:
        logger.error(
            "Failed to queue notification",
            notification_kind=str(intent.kind),
            subject_entity_id=intent.subject_entity_id,
            error=str(e),
        )


BuiltNotification = tuple[NotificationIntent, EmailContent | None, SmsContent | None]


def _queue(
    build: Callable[[], Awaitable[BuiltNotification | None]],
    dispatcher: NotificationDispatcher | None,
    name: str,
) -> None:
    """Queue build() plus delivery. A None build result means nothing to send."""
    target = dispatcher or notification_dispatcher

    async def work() -> None:
        built = await build()
        if built is None:
            return
        intent, email_content, sms_content = built
        await target.deliver(intent, email_content, sms_content)

    pending = work()
    try:
        target.queue.submit(pending, name=name)
    except Exception as e:
        pending.close()
        logger.error("Failed to queue notification", task=name, error=str(e))


async def notify_host_of_rsvp(
    host_id: str,
    attendee_id: str,
    event_id: str,
    event_title: str,
    attendee_count: int = 1,
    reservation_id: str | None = None,
    dispatcher: NotificationDispatcher | None = None,
) -> None:
    if host_id == attendee_id:
        return

    async def build() -> BuiltNotification:
        attendee_name = await _display_name(attendee_id, "Someone")
        event_url = settings.event_url(event_id)
        intent = NotificationIntent(
            kind=NotificationKind.NEW_RSVP,
            subject_entity_id=reservation_id or event_id,
            title="New RSVP",
            body=f"{attendee_name} RSVP'd to {event_title}",
            recipient_ids=[host_id],
            context={
                "event_id": event_id,
                "event_title": event_title,
                "attendee_name": attendee_name,
                "attendee_count": attendee_count,
            },
        )
        return (
            intent,
            EmailContent(subject=f"New RSVP: {event_title}"),
            SmsContent(message=f"New RSVP: {attendee_name} joined {event_title}. {event_url}"),
        )

    _queue(build, dispatcher, name=f"notify:new-rsvp:{reservation_id or event_id}")


async def notify_user_of_reservation_confirmation(
    user_id: str,
    event_id: str,
    event_title: str,
    reservation_id: str,
    event_date: str | None = None,
    event_time: str | None = None,
    location: str | None = None,
    attendee_count: int = 1,
    total_amount: str | None = None,
    dispatcher: NotificationDispatcher | None = None,
) -> None:
    event_url = settings.event_url(event_id)
    intent = NotificationIntent(
        kind=NotificationKind.RESERVATION_CONFIRMATION,
        subject_entity_id=reservation_id,
        title="Reservation Confirmed!",
        body=f"Your reservation for {event_title} has been confirmed",
        recipient_ids=[user_id],
        context={
            "event_id": event_id,
            "event_title": event_title,
            "event_date": event_date,
            "event_time": event_time,
            "location": location,
            "attendee_count": attendee_count,
            "total_amount": total_amount,
            "order_id": reservation_id,
        },
    )
    when = " ".join(part for part in (event_date, event_time) if part)
    sms = f"Reservation confirmed! {event_title}"
    if when:
        sms += f" on {when}"
    sms += f". Order ID: {reservation_id}. View details: {event_url}"
    _dispatch(
        intent,
        dispatcher,
        EmailContent(subject=f"Reservation Confirmed: {event_title}"),
        SmsContent(message=sms),
    )


async def notify_attendees_of_announcement(
    attendee_ids: list[str],
    event_id: str,
    event_title: str,
    announcement_id: str,
    announcement_title: str,
    announcement_message: str,
    dispatcher: NotificationDispatcher | None = None,
) -> None:
    intent = NotificationIntent(
        kind=NotificationKind.ANNOUNCEMENT,
        subject_entity_id=announcement_id,
        title=announcement_title,
        body=announcement_message,
        recipient_ids=list(attendee_ids),
        context={"event_id": event_id, "event_title": event_title},
    )
    _dispatch(
        intent,
        dispatcher,
        EmailContent(subject=f"Update: {announcement_title} - {event_title}"),
        SmsContent(message=f"{event_title}: {announcement_title}. {announcement_message}"),
    )


async def notify_attendees_of_poll(
    attendee_ids: list[str],
    event_id: str,
    event_title: str,
    poll_id: str,
    poll_title: str,
    poll_message: str,
    dispatcher: NotificationDispatcher | None = None,
) -> None:
    intent = NotificationIntent(
        kind=NotificationKind.POLL,
        subject_entity_id=poll_id,
        title=poll_title,
        body=poll_message,
        recipient_ids=list(attendee_ids),
        context={
            "event_id": event_id,
            "event_title": event_title,
            "poll_options": parse_poll_options(poll_message),
        },
    )
    _dispatch(
        intent,
        dispatcher,
        EmailContent(subject=f"New Poll: {poll_title} - {event_title}"),
        SmsContent(message=f"New poll in {event_title}: {poll_title}. {settings.event_url(event_id)}"),
    )


async def notify_attendees_of_new_message(
    attendee_ids: list[str],
    sender_id: str,
    event_id: str,
    event_title: str,
    message_id: str,
    message: str,
    dispatcher: NotificationDispatcher | None = None,
) -> None:
    recipients = [user_id for user_id in attendee_ids if user_id != sender_id]
    if not recipients:
        return
    snippet = message if len(message) <= MESSAGE_SNIPPET_LENGTH else message[:MESSAGE_SNIPPET_LENGTH] + "..."

    async def build() -> BuiltNotification:
        sender_name = await _display_name(sender_id, "Someone")
        intent = NotificationIntent(
            kind=NotificationKind.NEW_MESSAGE,
            subject_entity_id=message_id,
            title=f"New message in {event_title}",
            body=f"{sender_name}: {snippet}",
            recipient_ids=recipients,
            context={
                "event_id": event_id,
                "event_title": event_title,
                "sender_name": sender_name,
                "message_snippet": snippet,
            },
        )
        return intent, EmailContent(subject=f"New message in {event_title}"), None

    _queue(build, dispatcher, name=f"notify:new-message:{message_id}")


async def notify_followers_of_new_event(
    host_id: str,
    event_id: str,
    event_title: str,
    event_description: str | None = None,
    dispatcher: NotificationDispatcher | None = None,
) -> None:
    async def build() -> BuiltNotification | None:
        try:
            followers = await profile_repository.get_followers(host_id)
        except Exception as e:
            logger.error("Follower lookup failed", host_id=host_id, error=str(e))
            return None
        followers = [user_id for user_id in followers if user_id != host_id]
        if not followers:
            return None

        host_name = await _display_name(host_id, "Host")
        intent = NotificationIntent(
            kind=NotificationKind.FOLLOWED_HOST_EVENT,
            subject_entity_id=event_id,
            title="New Event from Host You Follow",
            body=f"{event_title} - Check it out!",
            recipient_ids=followers,
            context={
                "event_id": event_id,
                "event_title": event_title,
                "host_id": host_id,
                "host_name": host_name,
                "event_description": event_description,
            },
        )
        return (
            intent,
            EmailContent(subject=f"New Pop-up from {host_name}"),
            SmsContent(message=f"{host_name} just posted {event_title}. {settings.event_url(event_id)}"),
        )

    _queue(build, dispatcher, name=f"notify:follow-new-event:{event_id}")


async def notify_host_of_new_follower(
    host_id: str,
    follower_id: str,
    dispatcher: NotificationDispatcher | None = None,
) -> None:
    if host_id == follower_id:
        return

    async def build() -> BuiltNotification:
        follower_name = await _display_name(follower_id, "Someone")
        intent = NotificationIntent(
            kind=NotificationKind.NEW_FOLLOWER,
            subject_entity_id=f"{host_id}:{follower_id}",
            title="New follower",
            body=f"{follower_name} started following you",
            recipient_ids=[host_id],
            context={"follower_id": follower_id, "follower_name": follower_name},
        )
        return intent, EmailContent(subject=f"{follower_name} is now following you"), None

    _queue(build, dispatcher, name=f"notify:new-follower:{host_id}:{follower_id}")


async def notify_user_of_follow_suggestion(
    user_id: str,
    host_id: str,
    event_id: str,
    event_title: str,
    dispatcher: NotificationDispatcher | None = None,
) -> None:
    async def build() -> BuiltNotification:
        host_name = await _display_name(host_id, "the host")
        intent = NotificationIntent(
            kind=NotificationKind.FOLLOW_SUGGESTION,
            subject_entity_id=event_id,
            title=f"Follow {host_name}?",
            body=f"Enjoyed {event_title}? Follow {host_name} to hear about their next event.",
            recipient_ids=[user_id],
            context={
                "event_id": event_id,
                "event_title": event_title,
                "host_id": host_id,
                "host_name": host_name,
            },
        )
        return intent, EmailContent(subject=f"Follow {host_name} for more events"), None

    _queue(build, dispatcher, name=f"notify:follow-suggestion:{event_id}:{user_id}")
