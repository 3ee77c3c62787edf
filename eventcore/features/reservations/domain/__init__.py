from .models import (
    EventProjection,
    ReservationRecord,
    ReservationStatus,
    SyncCircuitState,
    authoritative_count,
    reserved_event_ids,
)

__all__ = [
    "EventProjection",
    "ReservationRecord",
    "ReservationStatus",
    "SyncCircuitState",
    "authoritative_count",
    "reserved_event_ids",
]
