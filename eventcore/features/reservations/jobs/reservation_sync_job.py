"""
Reservation-count sync runner for the worker service.

Reconciles every non-demo event on the configured interval. The worker
process is one session: its circuit trips on the first permission error
and stays tripped until the process restarts.
"""

import asyncio

from eventcore.db.pool import db_pool
from eventcore.features.reservations.domain.models import SyncCircuitState
from eventcore.features.reservations.services.count_synchronizer import (
    ReservationCountSynchronizer,
)
from eventcore.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


async def start_reservation_sync_scheduler() -> None:
    """Entry point for the reservation_sync worker job."""
    await db_pool.initialize()
    synchronizer = ReservationCountSynchronizer(SyncCircuitState())
    try:
        await synchronizer.run_forever()
    finally:
        await db_pool.close()


if __name__ == "__main__":
    asyncio.run(start_reservation_sync_scheduler())
