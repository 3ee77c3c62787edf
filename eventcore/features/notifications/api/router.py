"""
Notification routes.

host-rsvp is the server-side path for telling a host about a new
reservation; the feed routes back the in-app notification list. All of
them are internal and require X-Internal-Key.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from eventcore.auth.internal_key import internal_key_dependency
from eventcore.features.notifications.repository.in_app_repository import in_app_repository
from eventcore.features.notifications.services.dispatch_queue import dispatch_queue
from eventcore.features.notifications.services.triggers import notify_host_of_rsvp
from eventcore.features.reservations.repository.event_repository import event_repository
from eventcore.features.reservations.repository.ledger_repository import ledger_repository
from eventcore.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(
    prefix="/notifications",
    tags=["notifications"],
    dependencies=[Depends(internal_key_dependency)],
)


class HostRsvpRequest(BaseModel):
    reservation_id: str = Field(min_length=1)


class HostRsvpResponse(BaseModel):
    accepted: bool
    reason: str | None = None


async def _notify_host_for_reservation(reservation) -> None:
    event = await event_repository.get(reservation.event_id)
    if event is None or not event.host_id:
        logger.warning(
            "Cannot notify host, event or host missing",
            reservation_id=reservation.id,
            event_id=reservation.event_id,
        )
        return
    await notify_host_of_rsvp(
        event.host_id,
        reservation.user_id,
        event.id,
        event.title,
        attendee_count=reservation.attendee_count or 1,
        reservation_id=reservation.id,
    )


@router.post("/host-rsvp", status_code=status.HTTP_202_ACCEPTED, response_model=HostRsvpResponse)
async def host_rsvp(body: HostRsvpRequest) -> HostRsvpResponse:
    """Queue the host's new-RSVP notification for an active reservation."""
    reservation = await ledger_repository.get(body.reservation_id)
    if reservation is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Reservation not found")

    if not reservation.is_reserved:
        logger.info(
            "Host RSVP notification ignored for inactive reservation",
            reservation_id=reservation.id,
            status=reservation.status,
        )
        return HostRsvpResponse(accepted=False, reason=f"reservation is {reservation.status}")

    dispatch_queue.submit(
        _notify_host_for_reservation(reservation), name=f"host-rsvp:{reservation.id}"
    )
    return HostRsvpResponse(accepted=True)


@router.get("/{user_id}")
async def list_notifications(user_id: str, limit: int = 50) -> dict:
    items = await in_app_repository.list_for_user(user_id, limit=min(max(limit, 1), 50))
    return {"notifications": items, "count": len(items)}


@router.get("/{user_id}/unread-count")
async def unread_count(user_id: str) -> dict:
    return {"unread": await in_app_repository.unread_count(user_id)}


@router.post("/{user_id}/read-all")
async def mark_all_read(user_id: str) -> dict:
    updated = await in_app_repository.mark_all_read(user_id)
    return {"updated": updated}


@router.post("/{user_id}/{notification_id}/read")
async def mark_read(user_id: str, notification_id: str) -> dict:
    if not await in_app_repository.mark_read(user_id, notification_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    return {"read": True}
