"""
Reservation-count reconciliation.

Recomputes each non-demo event's attendees_count from the reservations
ledger and writes it back only when the cached value differs. The first
permission-denied error from either side trips the session's circuit;
after that every tick returns without touching the ledger.
"""

from datetime import UTC, datetime

from eventcore.config import settings
from eventcore.db.helpers import PermissionDeniedError
from eventcore.features.reservations.domain.models import SyncCircuitState, authoritative_count
from eventcore.features.reservations.repository.event_repository import event_repository
from eventcore.features.reservations.repository.ledger_repository import ledger_repository
from eventcore.features.reservations.services.periodic import PeriodicLoop
from eventcore.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class SyncMetrics:
    """Per-tick counters."""

    def __init__(self):
        self.reset()

    def reset(self):
        self.start_time = datetime.now(UTC)
        self.events_checked = 0
        self.counts_written = 0
        self.unchanged = 0
        self.write_failures = 0
        self.read_failures = 0
        self.errors: list[dict] = []

    def record_error(self, event_id: str, operation: str, error: str):
        self.errors.append({"event_id": event_id, "operation": operation, "error": error})

    def to_dict(self) -> dict:
        return {
            "events_checked": self.events_checked,
            "counts_written": self.counts_written,
            "unchanged": self.unchanged,
            "write_failures": self.write_failures,
            "read_failures": self.read_failures,
            "duration_seconds": (datetime.now(UTC) - self.start_time).total_seconds(),
            "errors": self.errors,
        }


class ReservationCountSynchronizer:
    def __init__(
        self,
        circuit: SyncCircuitState,
        *,
        event_ids: list[str] | None = None,
        ledger=ledger_repository,
        events=event_repository,
        interval_s: float | None = None,
    ):
        self.circuit = circuit
        self.event_ids = event_ids
        self.ledger = ledger
        self.events = events
        self.metrics = SyncMetrics()
        self.is_running = False
        self._loop = PeriodicLoop(
            "reservation_sync",
            interval_s if interval_s is not None else settings.RESERVATION_SYNC_INTERVAL_SECONDS,
            self.run_once,
        )

    def _trip(self, error: PermissionDeniedError) -> None:
        self.circuit.trip(str(error), datetime.now(UTC))
        logger.warning(
            "Reservation sync disabled for this session after permission error",
            operation=error.operation,
            error=str(error),
        )

    async def run_once(self) -> dict:
        """
        One reconciliation pass.

        Returns:
            Dict: tick metrics, or a skip marker when the circuit is tripped
        """
        if self.circuit.tripped:
            return {"skipped": True, "reason": "circuit_tripped"}
        if self.is_running:
            return {"skipped": True, "reason": "already_running"}

        self.is_running = True
        self.metrics.reset()
        try:
            await self._reconcile()
        finally:
            self.is_running = False

        result = self.metrics.to_dict()
        if result["counts_written"] or result["write_failures"] or result["read_failures"]:
            logger.info(
                "Reservation sync tick completed",
                **{k: v for k, v in result.items() if k != "errors"},
            )
        return result

    async def _reconcile(self) -> None:
        try:
            projections = await self.events.list_syncable(self.event_ids)
        except PermissionDeniedError as e:
            self._trip(e)
            return

        for projection in projections:
            if projection.is_demo:
                continue
            # Results are dropped once the owning session has shut down
            if self._loop.stopped:
                return

            self.metrics.events_checked += 1
            try:
                records = await self.ledger.list_for_event(projection.id)
            except PermissionDeniedError as e:
                self._trip(e)
                return
            except Exception as e:
                self.metrics.read_failures += 1
                self.metrics.record_error(projection.id, "ledger_read", str(e))
                logger.warning("Ledger read failed", event_id=projection.id, error=str(e))
                continue

            count = authoritative_count(records)
            if count == projection.attendees_count:
                self.metrics.unchanged += 1
                continue

            try:
                await self.events.write_attendees_count(projection.id, count)
            except PermissionDeniedError as e:
                self._trip(e)
                return
            except Exception as e:
                self.metrics.write_failures += 1
                self.metrics.record_error(projection.id, "projection_write", str(e))
                logger.warning("Attendee count write failed", event_id=projection.id, error=str(e))
                continue

            self.metrics.counts_written += 1
            logger.debug(
                "Attendee count reconciled",
                event_id=projection.id,
                previous=projection.attendees_count,
                count=count,
            )

    def start(self):
        return self._loop.start()

    async def run_forever(self) -> None:
        await self._loop.run_forever()

    async def stop(self) -> None:
        await self._loop.stop()
