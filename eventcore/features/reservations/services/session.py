"""
Per-user session wiring.

A session owns its own circuit state, so a permission failure seen while
serving one user never disables reconciliation for another. Rebuilding
the session is the only way to reset the circuit.
"""

from eventcore.features.reservations.domain.models import SyncCircuitState
from eventcore.features.reservations.services.count_synchronizer import (
    ReservationCountSynchronizer,
)
from eventcore.features.reservations.services.follow_suggestions import FollowSuggestionScheduler
from eventcore.features.reservations.services.rsvp_mirror import RsvpLiveMirror
from eventcore.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class ReservationSession:
    def __init__(
        self,
        user_id: str,
        *,
        visible_event_ids: list[str] | None = None,
        synchronizer: ReservationCountSynchronizer | None = None,
        follow_scheduler: FollowSuggestionScheduler | None = None,
        mirror: RsvpLiveMirror | None = None,
    ):
        self.user_id = user_id
        self.synchronizer = synchronizer or ReservationCountSynchronizer(
            SyncCircuitState(), event_ids=visible_event_ids
        )
        self.circuit = self.synchronizer.circuit
        self.follow_scheduler = follow_scheduler or FollowSuggestionScheduler(user_id)
        self.mirror = mirror or RsvpLiveMirror()
        self.started = False

    async def start(self) -> None:
        if self.started:
            return
        self.started = True
        self.synchronizer.start()
        self.follow_scheduler.start()
        await self.mirror.bind(self.user_id)
        logger.info("Reservation session started", user_id=self.user_id)

    async def stop(self) -> None:
        if not self.started:
            return
        self.started = False
        await self.mirror.unbind()
        await self.synchronizer.stop()
        await self.follow_scheduler.stop()
        logger.info(
            "Reservation session stopped",
            user_id=self.user_id,
            circuit_tripped=self.circuit.tripped,
        )

    async def __aenter__(self) -> "ReservationSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()
