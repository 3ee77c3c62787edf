import asyncio
from datetime import UTC, datetime

import pytest

from eventcore.db.helpers import PermissionDeniedError
from eventcore.features.notifications.channels.email import EmailSender
from eventcore.features.notifications.channels.in_app import InAppSender
from eventcore.features.notifications.channels.sms import SmsSender
from eventcore.features.notifications.domain.models import DeliveryStatus
from eventcore.features.notifications.services.contact_resolver import ContactResolver
from eventcore.features.notifications.services.delivery_logger import DeliveryLogger
from eventcore.features.notifications.services.dispatch_queue import DispatchQueue
from eventcore.features.notifications.services.dispatcher import NotificationDispatcher
from eventcore.features.notifications.services.idempotency_guard import IdempotencyGuard
from eventcore.features.notifications.services.preference_resolver import PreferenceResolver
from eventcore.features.notifications.services.timeout_guard import TimeoutGuard
from eventcore.features.reservations.domain.models import EventProjection, ReservationRecord
from eventcore.services.providers.errors import ProviderNotConfiguredError


class FakeProfiles:
    def __init__(self):
        self.settings: dict[str, dict] = {}
        self.contacts: dict[str, dict] = {}
        self.following: dict[str, set[str]] = {}
        self.fail = False

    def add_user(self, user_id, *, email=None, phone=None, name=None, settings=None):
        self.contacts[user_id] = {
            "email": email,
            "phone_number": phone,
            "display_name": name,
            "name": None,
        }
        if settings is not None:
            self.settings[user_id] = settings

    async def get_notification_settings(self, user_id):
        if self.fail:
            raise RuntimeError("profile store unavailable")
        if user_id not in self.contacts:
            return None
        return self.settings.get(user_id, {})

    async def get_contact(self, user_id):
        if self.fail:
            raise RuntimeError("profile store unavailable")
        return self.contacts.get(user_id)

    async def is_following(self, user_id, host_id):
        return host_id in self.following.get(user_id, set())

    async def get_followers(self, host_id):
        return [user_id for user_id, hosts in self.following.items() if host_id in hosts]


class FakeDeliveryLog:
    def __init__(self):
        self.records = []
        self.fail_reads = False
        self.fail_writes = False

    async def append(self, record):
        if self.fail_writes:
            raise RuntimeError("log store unavailable")
        self.records.append(record)

    async def has_sent(self, subject_entity_id, notification_kind, recipient, channel):
        if self.fail_reads:
            raise RuntimeError("log store unavailable")
        return any(
            r.subject_entity_id == subject_entity_id
            and r.notification_kind == str(notification_kind)
            and r.channel == str(channel)
            and (recipient is None or r.recipient == recipient)
            and r.status == DeliveryStatus.SENT
            for r in self.records
        )

    async def list_for_recipient(self, recipient, limit=50):
        return [r for r in self.records if r.recipient == recipient][:limit]

    def by_channel(self, channel):
        return [r for r in self.records if r.channel == channel]


class FakeInApp:
    def __init__(self):
        self.rows: list[dict] = []
        self.fail = False

    async def create(self, user_id, kind, title, body, subject_entity_id=None, context=None):
        if self.fail:
            raise RuntimeError("inbox write failed")
        notification_id = f"n-{len(self.rows) + 1}"
        self.rows.append(
            {
                "id": notification_id,
                "user_id": user_id,
                "kind": kind,
                "title": title,
                "body": body,
                "subject_entity_id": subject_entity_id,
                "is_read": False,
            }
        )
        return notification_id

    async def list_for_user(self, user_id, limit=50):
        return [row for row in reversed(self.rows) if row["user_id"] == user_id][:limit]

    async def mark_read(self, user_id, notification_id):
        for row in self.rows:
            if row["id"] == notification_id and row["user_id"] == user_id:
                row["is_read"] = True
                return True
        return False

    async def mark_all_read(self, user_id):
        updated = 0
        for row in self.rows:
            if row["user_id"] == user_id and not row["is_read"]:
                row["is_read"] = True
                updated += 1
        return updated

    async def unread_count(self, user_id):
        return min(sum(1 for r in self.rows if r["user_id"] == user_id and not r["is_read"]), 100)


class FakeLedger:
    def __init__(self):
        self.records: list[ReservationRecord] = []
        self.event_ends: dict[str, datetime] = {}
        self.reads = 0
        self.permission_denied = False

    def add(self, record_id, user_id, event_id, status="reserved", attendee_count=1):
        record = ReservationRecord(
            id=record_id,
            user_id=user_id,
            event_id=event_id,
            status=status,
            attendee_count=attendee_count,
            reserved_at=datetime.now(UTC),
        )
        self.records.append(record)
        return record

    def _check(self):
        self.reads += 1
        if self.permission_denied:
            raise PermissionDeniedError("permission denied for table reservations", operation="fetch_all")

    async def list_for_event(self, event_id):
        self._check()
        return [r for r in self.records if r.event_id == event_id]

    async def list_for_user(self, user_id):
        self._check()
        return [r for r in self.records if r.user_id == user_id]

    async def get(self, reservation_id):
        self._check()
        return next((r for r in self.records if r.id == reservation_id), None)

    async def list_users_with_events_ending_between(self, start, end):
        self._check()
        users = []
        for record in self.records:
            ends_at = self.event_ends.get(record.event_id)
            if record.is_reserved and ends_at and start <= ends_at <= end and record.user_id not in users:
                users.append(record.user_id)
        return users


class FakeEvents:
    def __init__(self):
        self.projections: dict[str, EventProjection] = {}
        self.writes: list[tuple[str, int]] = []
        self.deltas: list[tuple[str, int]] = []
        self.fail_writes_for: set[str] = set()
        self.deny_writes = False

    def add(self, event_id, *, host_id="host-1", title="Rooftop Jazz", count=0, is_demo=False, ends_at=None):
        projection = EventProjection(
            id=event_id,
            host_id=host_id,
            title=title,
            attendees_count=count,
            is_demo=is_demo,
            ends_at=ends_at,
        )
        self.projections[event_id] = projection
        return projection

    def _copy(self, p):
        return EventProjection(
            id=p.id,
            host_id=p.host_id,
            title=p.title,
            attendees_count=p.attendees_count,
            is_demo=p.is_demo,
            ends_at=p.ends_at,
            follow_suggested_user_ids=list(p.follow_suggested_user_ids),
        )

    async def list_syncable(self, event_ids=None):
        return [
            self._copy(p)
            for p in self.projections.values()
            if not p.is_demo and (event_ids is None or p.id in event_ids)
        ]

    async def get(self, event_id):
        p = self.projections.get(event_id)
        return self._copy(p) if p else None

    async def get_many(self, event_ids):
        return [self._copy(self.projections[e]) for e in event_ids if e in self.projections]

    async def write_attendees_count(self, event_id, count):
        if self.deny_writes:
            raise PermissionDeniedError("permission denied for table events", operation="execute")
        if event_id in self.fail_writes_for:
            raise RuntimeError("write failed")
        self.writes.append((event_id, count))
        self.projections[event_id].attendees_count = count

    async def apply_optimistic_delta(self, event_id, delta):
        self.deltas.append((event_id, delta))
        p = self.projections.get(event_id)
        if p:
            p.attendees_count = max(p.attendees_count + delta, 0)

    async def append_follow_suggestion_marker(self, event_id, user_id):
        markers = self.projections[event_id].follow_suggested_user_ids
        if user_id in markers:
            return False
        markers.append(user_id)
        return True


class FakeEmailProvider:
    def __init__(self, delay: float = 0, error: Exception | None = None):
        self.sent: list[dict] = []
        self.delay = delay
        self.error = error

    async def send(self, to, subject, html):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        self.sent.append({"to": to, "subject": subject, "html": html})
        return f"email-{len(self.sent)}"


class FakeSmsProvider:
    def __init__(self, delay: float = 0, error: Exception | None = None):
        self.sent: list[dict] = []
        self.delay = delay
        self.error = error

    async def send(self, to, body):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        self.sent.append({"to": to, "body": body})
        return f"SM{len(self.sent)}"


class FakePubSub:
    def __init__(self, redis):
        self.redis = redis
        self.channels: set[str] = set()
        self.queue: asyncio.Queue = asyncio.Queue()
        self.closed = False

    async def subscribe(self, channel):
        self.channels.add(channel)
        self.redis.subscribers.setdefault(channel, []).append(self)

    async def unsubscribe(self, channel):
        self.channels.discard(channel)
        subscribers = self.redis.subscribers.get(channel, [])
        if self in subscribers:
            subscribers.remove(self)

    async def get_message(self, ignore_subscribe_messages=True, timeout=1.0):
        try:
            return await asyncio.wait_for(self.queue.get(), timeout=timeout)
        except TimeoutError:
            return None

    async def aclose(self):
        self.closed = True


class FakeRedis:
    def __init__(self):
        self.sets: dict[str, set[str]] = {}
        self.subscribers: dict[str, list[FakePubSub]] = {}
        self.published: list[tuple[str, str]] = []
        self.set_writes = 0

    async def ping(self):
        return True

    async def get_members(self, key):
        members = self.sets.get(key)
        return set(members) if members is not None else None

    async def replace_members(self, key, members):
        self.set_writes += 1
        self.sets[key] = set(members)

    async def publish(self, channel, message):
        self.published.append((channel, message))
        subscribers = list(self.subscribers.get(channel, []))
        for pubsub in subscribers:
            pubsub.queue.put_nowait({"type": "message", "channel": channel, "data": message})
        return len(subscribers)

    async def pubsub(self):
        return FakePubSub(self)


@pytest.fixture
def fake_profiles():
    return FakeProfiles()


@pytest.fixture
def fake_delivery_log():
    return FakeDeliveryLog()


@pytest.fixture
def fake_in_app():
    return FakeInApp()


@pytest.fixture
def fake_ledger():
    return FakeLedger()


@pytest.fixture
def fake_events():
    return FakeEvents()


@pytest.fixture
def fake_email():
    return FakeEmailProvider()


@pytest.fixture
def fake_sms():
    return FakeSmsProvider()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def build_dispatcher(fake_profiles, fake_delivery_log, fake_in_app):
    """Dispatcher wired to in-memory stores; providers and timeout are per test."""

    def _build(email_provider=None, sms_provider=None, timeout_s=1.0, queue=None):
        guard = TimeoutGuard(timeout_s=timeout_s)

        def email_factory():
            if email_provider is None:
                raise ProviderNotConfiguredError("email")
            return email_provider

        def sms_factory():
            if sms_provider is None:
                raise ProviderNotConfiguredError("sms")
            return sms_provider

        return NotificationDispatcher(
            preference_resolver=PreferenceResolver(fake_profiles),
            contact_resolver=ContactResolver(fake_profiles),
            idempotency_guard=IdempotencyGuard(fake_delivery_log),
            delivery_logger=DeliveryLogger(fake_delivery_log),
            in_app_sender=InAppSender(fake_in_app),
            email_sender=EmailSender(email_factory, guard),
            sms_sender=SmsSender(sms_factory, guard),
            timeout_guard=guard,
            queue=queue or DispatchQueue(),
        )

    return _build


@pytest.fixture
def email_provider_cls():
    return FakeEmailProvider


@pytest.fixture
def sms_provider_cls():
    return FakeSmsProvider
