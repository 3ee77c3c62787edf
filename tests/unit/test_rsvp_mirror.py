import asyncio
import json

import pytest

from eventcore.features.reservations.services.ledger_stream import (
    LedgerSubscription,
    ledger_channel,
    publish_ledger_change,
)
from eventcore.features.reservations.services.rsvp_mirror import RsvpLiveMirror, rsvp_cache_key


async def _wait_for(predicate, attempts=50):
    for _ in range(attempts):
        if predicate():
            return True
        await asyncio.sleep(0.01)
    return predicate()


@pytest.mark.asyncio
async def test_bind_writes_reserved_set(fake_ledger, fake_redis):
    fake_ledger.add("r1", "u1", "evt1")
    fake_ledger.add("r2", "u1", "evt2", status="cancelled")
    mirror = RsvpLiveMirror(ledger=fake_ledger, redis=fake_redis)

    await mirror.bind("u1")

    assert fake_redis.sets[rsvp_cache_key("u1")] == {"evt1"}
    assert await mirror.reserved_event_ids() == {"evt1"}
    await mirror.unbind()


@pytest.mark.asyncio
async def test_refresh_without_change_writes_nothing(fake_ledger, fake_redis):
    fake_ledger.add("r1", "u1", "evt1")
    mirror = RsvpLiveMirror(ledger=fake_ledger, redis=fake_redis)
    await mirror.bind("u1")

    assert await mirror.refresh() is False
    assert await mirror.refresh() is False
    assert fake_redis.set_writes == 1
    await mirror.unbind()


@pytest.mark.asyncio
async def test_rebinding_releases_previous_subscription(fake_ledger, fake_redis):
    mirror = RsvpLiveMirror(ledger=fake_ledger, redis=fake_redis)

    await mirror.bind("u1")
    await mirror.bind("u2")

    assert fake_redis.subscribers[ledger_channel("u1")] == []
    assert len(fake_redis.subscribers[ledger_channel("u2")]) == 1
    assert mirror.user_id == "u2"

    await mirror.unbind()
    assert fake_redis.subscribers[ledger_channel("u2")] == []
    assert mirror.user_id is None


@pytest.mark.asyncio
async def test_binding_same_user_twice_keeps_one_subscription(fake_ledger, fake_redis):
    mirror = RsvpLiveMirror(ledger=fake_ledger, redis=fake_redis)

    await mirror.bind("u1")
    await mirror.bind("u1")

    assert len(fake_redis.subscribers[ledger_channel("u1")]) == 1
    await mirror.unbind()


@pytest.mark.asyncio
async def test_ledger_change_notice_triggers_refresh(fake_ledger, fake_redis):
    mirror = RsvpLiveMirror(ledger=fake_ledger, redis=fake_redis)
    await mirror.bind("u1")

    fake_ledger.add("r1", "u1", "evt7")
    await publish_ledger_change("u1", "r1", "evt7", "reserved", redis=fake_redis)

    assert await _wait_for(lambda: fake_redis.sets.get(rsvp_cache_key("u1")) == {"evt7"})
    await mirror.unbind()


@pytest.mark.asyncio
async def test_notice_for_other_user_is_ignored(fake_ledger, fake_redis):
    mirror = RsvpLiveMirror(ledger=fake_ledger, redis=fake_redis)
    await mirror.bind("u1")
    writes = fake_redis.set_writes

    await mirror._on_change({"user_id": "u2"})

    assert fake_redis.set_writes == writes
    await mirror.unbind()


@pytest.mark.asyncio
async def test_rebind_during_cache_read_skips_write(fake_ledger, fake_redis):
    fake_ledger.add("r1", "u1", "evt1")
    mirror = RsvpLiveMirror(ledger=fake_ledger, redis=fake_redis)
    read_members = fake_redis.get_members

    async def get_members_then_rebind(key):
        members = await read_members(key)
        mirror.user_id = "u2"
        return members

    fake_redis.get_members = get_members_then_rebind
    mirror.user_id = "u1"

    assert await mirror.refresh() is False
    assert rsvp_cache_key("u1") not in fake_redis.sets
    assert fake_redis.set_writes == 0
    assert mirror.writes == 0


@pytest.mark.asyncio
async def test_publish_payload_shape(fake_redis):
    await publish_ledger_change("u1", "r1", "evt1", "cancelled", redis=fake_redis)

    ((channel, payload),) = fake_redis.published
    assert channel == "ledger:user:u1"
    assert json.loads(payload) == {
        "user_id": "u1",
        "reservation_id": "r1",
        "event_id": "evt1",
        "status": "cancelled",
    }


@pytest.mark.asyncio
async def test_handler_errors_keep_subscription_alive(fake_redis):
    seen = []

    async def on_change(notice):
        seen.append(notice)
        if len(seen) == 1:
            raise RuntimeError("handler broke")

    subscription = LedgerSubscription("u1", on_change, redis=fake_redis)
    await subscription.start()
    await publish_ledger_change("u1", "r1", "evt1", "reserved", redis=fake_redis)
    await publish_ledger_change("u1", "r2", "evt2", "reserved", redis=fake_redis)

    assert await _wait_for(lambda: len(seen) == 2)
    assert subscription.active is True

    await subscription.stop()
    assert subscription.active is False
