"""
Post-commit hooks for the reservation workflow.

Called after a reservation row has been written. Every step is
best-effort: the reservation itself has already succeeded and nothing
here may undo or block it.
"""

from eventcore.features.notifications.services.dispatcher import (
    NotificationDispatcher,
    notification_dispatcher,
)
from eventcore.features.notifications.services.triggers import (
    notify_host_of_rsvp,
    notify_user_of_reservation_confirmation,
)
from eventcore.features.reservations.domain.models import ReservationRecord, ReservationStatus
from eventcore.features.reservations.repository.event_repository import event_repository
from eventcore.features.reservations.services.ledger_stream import publish_ledger_change
from eventcore.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


def _seats(reservation: ReservationRecord) -> int:
    return reservation.attendee_count if reservation.attendee_count is not None else 1


async def _apply_optimistic_count(event_id: str, delta: int, events) -> None:
    # Advisory only; the synchronizer corrects any drift on its next tick
    try:
        await events.apply_optimistic_delta(event_id, delta)
    except Exception as e:
        logger.warning("Optimistic attendee count write failed", event_id=event_id, error=str(e))


async def _publish(reservation: ReservationRecord, status: str, redis) -> None:
    try:
        await publish_ledger_change(
            reservation.user_id, reservation.id, reservation.event_id, status, redis=redis
        )
    except Exception as e:
        logger.warning(
            "Ledger change publish failed",
            reservation_id=reservation.id,
            user_id=reservation.user_id,
            error=str(e),
        )


async def _notify_reservation_created(
    reservation: ReservationRecord, events, dispatcher: NotificationDispatcher | None
) -> None:
    try:
        event = await events.get(reservation.event_id)
    except Exception as e:
        logger.error(
            "Event lookup failed, skipping RSVP notifications",
            event_id=reservation.event_id,
            error=str(e),
        )
        return
    if event is None:
        logger.warning("Reserved event not found", event_id=reservation.event_id)
        return

    if event.host_id:
        await notify_host_of_rsvp(
            event.host_id,
            reservation.user_id,
            event.id,
            event.title,
            attendee_count=_seats(reservation),
            reservation_id=reservation.id,
            dispatcher=dispatcher,
        )
    await notify_user_of_reservation_confirmation(
        reservation.user_id,
        event.id,
        event.title,
        reservation.id,
        attendee_count=_seats(reservation),
        dispatcher=dispatcher,
    )


async def handle_reservation_created(
    reservation: ReservationRecord,
    *,
    events=event_repository,
    redis=None,
    dispatcher: NotificationDispatcher | None = None,
) -> None:
    await _apply_optimistic_count(reservation.event_id, _seats(reservation), events)
    await _publish(reservation, ReservationStatus.RESERVED, redis)

    # Event lookup and notices run on the dispatch queue
    queue = (dispatcher or notification_dispatcher).queue
    pending = _notify_reservation_created(reservation, events, dispatcher)
    try:
        queue.submit(pending, name=f"reservation-created:{reservation.id}")
    except Exception as e:
        pending.close()
        logger.error("Failed to queue RSVP notifications", reservation_id=reservation.id, error=str(e))


async def handle_reservation_cancelled(
    reservation: ReservationRecord,
    *,
    events=event_repository,
    redis=None,
) -> None:
    await _apply_optimistic_count(reservation.event_id, -_seats(reservation), events)
    await _publish(reservation, ReservationStatus.CANCELLED, redis)
