"""
Notification fan-out.

One intent becomes up to three independent channel attempts per recipient
(in-app, email, SMS). Every attempt that reaches a channel decision is
written to the delivery log; nothing here raises into the caller.
"""

import asyncio

from eventcore.features.notifications.channels.email import EmailSender
from eventcore.features.notifications.channels.in_app import InAppSender
from eventcore.features.notifications.channels.sms import SmsSender
from eventcore.features.notifications.domain.models import (
    SKIP_DUPLICATE,
    SKIP_NO_ADDRESS,
    SKIP_PREFERENCE,
    Channel,
    ContactInfo,
    DeliveryOutcome,
    DeliveryPreference,
    EmailContent,
    NotificationIntent,
    NotificationKind,
    SmsContent,
)
from eventcore.features.notifications.services.contact_resolver import ContactResolver
from eventcore.features.notifications.services.delivery_logger import DeliveryLogger
from eventcore.features.notifications.services.dispatch_queue import (
    DispatchQueue,
    dispatch_queue,
)
from eventcore.features.notifications.services.idempotency_guard import IdempotencyGuard
from eventcore.features.notifications.services.preference_resolver import PreferenceResolver
from eventcore.features.notifications.services.timeout_guard import TimeoutGuard
from eventcore.features.notifications.templates import default_sms_text, render_email
from eventcore.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

# Kinds that send no SMS unless the caller passes explicit content
SMS_SUPPRESSED_KINDS = frozenset({NotificationKind.NEW_MESSAGE})


class NotificationDispatcher:
    def __init__(
        self,
        *,
        preference_resolver: PreferenceResolver | None = None,
        contact_resolver: ContactResolver | None = None,
        idempotency_guard: IdempotencyGuard | None = None,
        delivery_logger: DeliveryLogger | None = None,
        in_app_sender: InAppSender | None = None,
        email_sender: EmailSender | None = None,
        sms_sender: SmsSender | None = None,
        timeout_guard: TimeoutGuard | None = None,
        queue: DispatchQueue | None = None,
    ):
        guard = timeout_guard or TimeoutGuard()
        self.preference_resolver = preference_resolver or PreferenceResolver()
        self.contact_resolver = contact_resolver or ContactResolver()
        self.idempotency_guard = idempotency_guard or IdempotencyGuard()
        self.delivery_logger = delivery_logger or DeliveryLogger()
        self.in_app_sender = in_app_sender or InAppSender()
        self.email_sender = email_sender or EmailSender(timeout_guard=guard)
        self.sms_sender = sms_sender or SmsSender(timeout_guard=guard)
        self.queue = queue or dispatch_queue

    def dispatch(
        self,
        intent: NotificationIntent,
        email_content: EmailContent | None = None,
        sms_content: SmsContent | None = None,
    ) -> None:
        """Queue delivery and return immediately. Needs a running event loop."""
        if not intent.recipient_ids:
            logger.debug("Intent has no recipients", notification_kind=str(intent.kind))
            return
        self.queue.submit(
            self.deliver(intent, email_content, sms_content),
            name=f"dispatch:{intent.kind}:{intent.subject_entity_id}",
        )

    async def deliver(
        self,
        intent: NotificationIntent,
        email_content: EmailContent | None = None,
        sms_content: SmsContent | None = None,
    ) -> None:
        """Run every recipient's pipeline concurrently. No aggregate result."""
        recipients = list(dict.fromkeys(intent.recipient_ids))
        logger.info(
            "Dispatching notification",
            notification_kind=str(intent.kind),
            subject_entity_id=intent.subject_entity_id,
            recipient_count=len(recipients),
        )

        results = await asyncio.gather(
            *(
                self._deliver_to_recipient(recipient_id, intent, email_content, sms_content)
                for recipient_id in recipients
            ),
            return_exceptions=True,
        )
        for recipient_id, result in zip(recipients, results, strict=True):
            if isinstance(result, Exception):
                logger.error(
                    "Recipient pipeline crashed",
                    user_id=recipient_id,
                    notification_kind=str(intent.kind),
                    error=str(result),
                    error_type=type(result).__name__,
                )

    async def _deliver_to_recipient(
        self,
        recipient_id: str,
        intent: NotificationIntent,
        email_content: EmailContent | None,
        sms_content: SmsContent | None,
    ) -> None:
        preference, contact = await asyncio.gather(
            self.preference_resolver.resolve(recipient_id),
            self.contact_resolver.resolve(recipient_id),
        )

        branches = (
            ("in_app", self._in_app_branch(recipient_id, intent, preference)),
            ("email", self._email_branch(recipient_id, intent, preference, contact, email_content)),
            ("sms", self._sms_branch(intent, preference, contact, sms_content)),
        )
        results = await asyncio.gather(*(branch for _, branch in branches), return_exceptions=True)
        for (channel, _), result in zip(branches, results, strict=True):
            if isinstance(result, Exception):
                logger.error(
                    "Channel branch crashed",
                    user_id=recipient_id,
                    channel=channel,
                    error=str(result),
                    error_type=type(result).__name__,
                )

    async def _record(
        self, intent: NotificationIntent, recipient: str, channel: str, outcome: DeliveryOutcome
    ) -> None:
        await self.delivery_logger.log(
            recipient=recipient,
            channel=channel,
            outcome=outcome,
            subject_entity_id=intent.subject_entity_id,
            notification_kind=intent.kind,
        )

    async def _in_app_branch(
        self, recipient_id: str, intent: NotificationIntent, preference: DeliveryPreference
    ) -> None:
        if not preference.in_app_opt_in:
            logger.debug("In-app disabled by preference", user_id=recipient_id)
            return
        if await self.idempotency_guard.already_delivered(
            intent.subject_entity_id, intent.kind, recipient_id, Channel.IN_APP
        ):
            await self._record(intent, recipient_id, Channel.IN_APP, DeliveryOutcome.skipped(SKIP_DUPLICATE))
            return
        outcome = await self.in_app_sender.send(recipient_id, intent)
        await self._record(intent, recipient_id, Channel.IN_APP, outcome)

    async def _email_branch(
        self,
        recipient_id: str,
        intent: NotificationIntent,
        preference: DeliveryPreference,
        contact: ContactInfo,
        email_content: EmailContent | None,
    ) -> None:
        # Email skips are always recorded; SMS records only duplicates
        if not preference.email_opt_in:
            await self._record(
                intent, contact.email or recipient_id, Channel.EMAIL, DeliveryOutcome.skipped(SKIP_PREFERENCE)
            )
            return
        if not contact.email:
            await self._record(intent, recipient_id, Channel.EMAIL, DeliveryOutcome.skipped(SKIP_NO_ADDRESS))
            return

        if await self.idempotency_guard.already_delivered(
            intent.subject_entity_id, intent.kind, contact.email, Channel.EMAIL
        ):
            await self._record(intent, contact.email, Channel.EMAIL, DeliveryOutcome.skipped(SKIP_DUPLICATE))
            return

        subject = email_content.subject if email_content else intent.title
        html = email_content.html if email_content and email_content.html else None
        if html is None:
            html = render_email(
                intent.kind,
                subject=subject,
                title=intent.title,
                body=intent.body,
                recipient_name=contact.display_name,
                context=intent.context,
            )

        outcome = await self.email_sender.send(contact.email, subject, html)
        await self._record(intent, contact.email, Channel.EMAIL, outcome)

    async def _sms_branch(
        self,
        intent: NotificationIntent,
        preference: DeliveryPreference,
        contact: ContactInfo,
        sms_content: SmsContent | None,
    ) -> None:
        # Opted out, no phone or suppressed kind: no log record
        if not preference.sms_opt_in or not contact.phone_e164:
            return
        if sms_content is None and intent.kind in SMS_SUPPRESSED_KINDS:
            return
        if await self.idempotency_guard.already_delivered(
            intent.subject_entity_id, intent.kind, contact.phone_e164, Channel.SMS
        ):
            await self._record(intent, contact.phone_e164, Channel.SMS, DeliveryOutcome.skipped(SKIP_DUPLICATE))
            return

        message = sms_content.message if sms_content else default_sms_text(intent.title, intent.body)
        outcome = await self.sms_sender.send(contact.phone_e164, message)
        await self._record(intent, contact.phone_e164, Channel.SMS, outcome)


notification_dispatcher = NotificationDispatcher()
