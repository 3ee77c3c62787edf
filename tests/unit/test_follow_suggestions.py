from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from eventcore.features.notifications.services.dispatch_queue import DispatchQueue
from eventcore.features.reservations.jobs.follow_suggestion_job import FollowSuggestionJob
from eventcore.features.reservations.services.follow_suggestions import FollowSuggestionScheduler

NOW = datetime(2026, 5, 2, 18, 0, tzinfo=UTC)


@pytest.fixture
def notify():
    return AsyncMock()


@pytest.fixture
def make_scheduler(fake_ledger, fake_events, fake_profiles, notify):
    def _make(user_id="u1", **overrides):
        kwargs = {
            "ledger": fake_ledger,
            "events": fake_events,
            "profiles": fake_profiles,
            "notify": notify,
            "clock": lambda: NOW,
            "min_hours": 24,
            "max_hours": 48,
        }
        kwargs.update(overrides)
        return FollowSuggestionScheduler(user_id, **kwargs)

    return _make


def _attended(fake_ledger, fake_events, hours_ago, event_id="evt1", host_id="host-1"):
    fake_events.add(event_id, host_id=host_id, ends_at=NOW - timedelta(hours=hours_ago))
    fake_ledger.add(f"r-{event_id}", "u1", event_id)


@pytest.mark.asyncio
async def test_suggests_host_once_inside_window(make_scheduler, fake_ledger, fake_events, notify):
    _attended(fake_ledger, fake_events, hours_ago=30)

    sent = await make_scheduler().run_once()

    assert sent == 1
    notify.assert_awaited_once_with("u1", "host-1", "evt1", "Rooftop Jazz")
    assert fake_events.projections["evt1"].follow_suggested_user_ids == ["u1"]


@pytest.mark.asyncio
async def test_second_run_does_not_repeat(make_scheduler, fake_ledger, fake_events, notify):
    _attended(fake_ledger, fake_events, hours_ago=30)
    scheduler = make_scheduler()

    await scheduler.run_once()
    second = await scheduler.run_once()

    assert second == 0
    assert notify.await_count == 1


@pytest.mark.asyncio
async def test_existing_follower_gets_no_suggestion(make_scheduler, fake_ledger, fake_events, fake_profiles, notify):
    _attended(fake_ledger, fake_events, hours_ago=30)
    fake_profiles.following["u1"] = {"host-1"}

    assert await make_scheduler().run_once() == 0
    notify.assert_not_awaited()
    assert fake_events.projections["evt1"].follow_suggested_user_ids == []


@pytest.mark.asyncio
@pytest.mark.parametrize("hours_ago", [2, 23, 49, 120])
async def test_events_outside_window_are_ignored(make_scheduler, fake_ledger, fake_events, notify, hours_ago):
    _attended(fake_ledger, fake_events, hours_ago=hours_ago)

    assert await make_scheduler().run_once() == 0
    notify.assert_not_awaited()


@pytest.mark.asyncio
async def test_host_is_never_suggested_to_themselves(make_scheduler, fake_ledger, fake_events, notify):
    _attended(fake_ledger, fake_events, hours_ago=30, host_id="u1")

    assert await make_scheduler().run_once() == 0
    notify.assert_not_awaited()


@pytest.mark.asyncio
async def test_already_marked_user_is_skipped(make_scheduler, fake_ledger, fake_events, notify):
    _attended(fake_ledger, fake_events, hours_ago=30)
    fake_events.projections["evt1"].follow_suggested_user_ids.append("u1")

    assert await make_scheduler().run_once() == 0
    notify.assert_not_awaited()


@pytest.mark.asyncio
async def test_user_without_reservations_does_nothing(make_scheduler, fake_events, notify):
    fake_events.add("evt1", ends_at=NOW - timedelta(hours=30))

    assert await make_scheduler().run_once() == 0
    notify.assert_not_awaited()


@pytest.mark.asyncio
async def test_cancelled_reservation_is_not_attendance(make_scheduler, fake_ledger, fake_events, notify):
    fake_events.add("evt1", ends_at=NOW - timedelta(hours=30))
    fake_ledger.add("r1", "u1", "evt1", status="cancelled")

    assert await make_scheduler().run_once() == 0
    notify.assert_not_awaited()


@pytest.mark.asyncio
async def test_naive_end_time_is_treated_as_utc(make_scheduler, fake_ledger, fake_events, notify):
    fake_events.add("evt1", ends_at=(NOW - timedelta(hours=30)).replace(tzinfo=None))
    fake_ledger.add("r1", "u1", "evt1")

    assert await make_scheduler().run_once() == 1


@pytest.mark.asyncio
async def test_notify_failure_is_contained(make_scheduler, fake_ledger, fake_events):
    _attended(fake_ledger, fake_events, hours_ago=30, event_id="evt1")
    _attended(fake_ledger, fake_events, hours_ago=40, event_id="evt2", host_id="host-2")
    notify = AsyncMock(side_effect=[RuntimeError("queue closed"), None])

    sent = await make_scheduler(notify=notify).run_once()

    assert sent == 1
    assert notify.await_count == 2


@pytest.mark.asyncio
async def test_sweep_runs_a_pass_per_candidate_user(make_scheduler, fake_ledger, fake_events, notify):
    _attended(fake_ledger, fake_events, hours_ago=30)
    fake_events.add("evt-old", host_id="host-2", ends_at=NOW - timedelta(hours=100))
    fake_ledger.add("r-old", "u2", "evt-old")
    fake_ledger.event_ends = {event_id: p.ends_at for event_id, p in fake_events.projections.items()}

    job = FollowSuggestionJob(
        ledger=fake_ledger,
        queue=DispatchQueue(),
        scheduler_factory=lambda user_id, clock: make_scheduler(user_id, clock=clock),
    )
    metrics = await job.run_once(now=NOW)

    assert metrics["candidate_users"] == 1
    assert metrics["suggestions_sent"] == 1
    notify.assert_awaited_once_with("u1", "host-1", "evt1", "Rooftop Jazz")
