"""
Post-reservation hooks against in-memory stores.
"""

import json
from unittest.mock import AsyncMock

import pytest

from eventcore.features.notifications.domain.models import NotificationKind
from eventcore.features.reservations.domain.models import SyncCircuitState
from eventcore.features.reservations.services.count_synchronizer import ReservationCountSynchronizer
from eventcore.features.reservations.services.hooks import (
    handle_reservation_cancelled,
    handle_reservation_created,
)


@pytest.fixture(autouse=True)
def profiles_for_triggers(monkeypatch, fake_profiles):
    monkeypatch.setattr(
        "eventcore.features.notifications.services.triggers.profile_repository", fake_profiles
    )


@pytest.mark.asyncio
async def test_created_hook_bumps_count_publishes_and_notifies(
    fake_ledger, fake_events, fake_redis, fake_profiles, fake_in_app, build_dispatcher, fake_email
):
    fake_events.add("evt1", host_id="host-1", count=3)
    fake_profiles.add_user("host-1", email="host@x.com")
    fake_profiles.add_user("u1", email="u1@x.com", name="Sam")
    reservation = fake_ledger.add("r1", "u1", "evt1", attendee_count=2)
    dispatcher = build_dispatcher(fake_email)

    await handle_reservation_created(reservation, events=fake_events, redis=fake_redis, dispatcher=dispatcher)
    await dispatcher.queue.drain()

    assert fake_events.deltas == [("evt1", 2)]
    assert fake_events.projections["evt1"].attendees_count == 5
    ((channel, payload),) = fake_redis.published
    assert channel == "ledger:user:u1"
    assert json.loads(payload)["status"] == "reserved"

    kinds = {(row["user_id"], row["kind"]) for row in fake_in_app.rows}
    assert kinds == {
        ("host-1", NotificationKind.NEW_RSVP),
        ("u1", NotificationKind.RESERVATION_CONFIRMATION),
    }
    host_email = next(m for m in fake_email.sent if m["to"] == "host@x.com")
    assert host_email["subject"] == "New RSVP: Rooftop Jazz"
    assert "Sam" in host_email["html"]


@pytest.mark.asyncio
async def test_created_hook_returns_before_event_lookup(
    fake_ledger, fake_events, fake_redis, fake_profiles, fake_in_app, build_dispatcher
):
    fake_events.add("evt1", host_id="host-1")
    fake_profiles.add_user("host-1")
    fake_profiles.add_user("u1")
    fake_events.get = AsyncMock(side_effect=fake_events.get)
    reservation = fake_ledger.add("r1", "u1", "evt1")
    dispatcher = build_dispatcher()

    await handle_reservation_created(reservation, events=fake_events, redis=fake_redis, dispatcher=dispatcher)

    fake_events.get.assert_not_awaited()
    assert len(fake_redis.published) == 1
    assert dispatcher.queue.pending == 1

    await dispatcher.queue.drain()
    fake_events.get.assert_awaited_once_with("evt1")
    assert len(fake_in_app.rows) == 2


@pytest.mark.asyncio
async def test_host_reserving_own_event_gets_no_rsvp_notice(
    fake_ledger, fake_events, fake_redis, fake_profiles, fake_in_app, build_dispatcher
):
    fake_events.add("evt1", host_id="host-1")
    fake_profiles.add_user("host-1")
    reservation = fake_ledger.add("r1", "host-1", "evt1")
    dispatcher = build_dispatcher()

    await handle_reservation_created(reservation, events=fake_events, redis=fake_redis, dispatcher=dispatcher)
    await dispatcher.queue.drain()

    assert [row["kind"] for row in fake_in_app.rows] == [NotificationKind.RESERVATION_CONFIRMATION]


@pytest.mark.asyncio
async def test_missing_event_still_publishes(fake_ledger, fake_events, fake_redis, fake_in_app, build_dispatcher):
    reservation = fake_ledger.add("r1", "u1", "gone")
    dispatcher = build_dispatcher()

    await handle_reservation_created(reservation, events=fake_events, redis=fake_redis, dispatcher=dispatcher)
    await dispatcher.queue.drain()

    assert len(fake_redis.published) == 1
    assert fake_in_app.rows == []


@pytest.mark.asyncio
async def test_cancelled_hook_applies_negative_delta(fake_ledger, fake_events, fake_redis):
    fake_events.add("evt1", count=4)
    reservation = fake_ledger.add("r1", "u1", "evt1", status="cancelled", attendee_count=3)

    await handle_reservation_cancelled(reservation, events=fake_events, redis=fake_redis)

    assert fake_events.deltas == [("evt1", -3)]
    assert fake_events.projections["evt1"].attendees_count == 1
    assert json.loads(fake_redis.published[0][1])["status"] == "cancelled"


@pytest.mark.asyncio
async def test_failed_optimistic_write_is_corrected_by_sync(fake_ledger, fake_events, fake_redis, build_dispatcher):
    async def broken_delta(event_id, delta):
        raise RuntimeError("write rejected")

    fake_events.add("evt1", count=0)
    fake_events.apply_optimistic_delta = broken_delta
    reservation = fake_ledger.add("r1", "u1", "evt1", attendee_count=2)

    dispatcher = build_dispatcher()
    await handle_reservation_created(reservation, events=fake_events, redis=fake_redis, dispatcher=dispatcher)
    await dispatcher.queue.drain()
    await ReservationCountSynchronizer(SyncCircuitState(), ledger=fake_ledger, events=fake_events).run_once()

    assert fake_events.projections["evt1"].attendees_count == 2
    assert len(fake_redis.published) == 1
