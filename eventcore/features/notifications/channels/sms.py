from collections.abc import Callable

from eventcore.features.notifications.channels.phone import normalize_e164
from eventcore.features.notifications.domain.models import (
    SKIP_NOT_CONFIGURED,
    DeliveryOutcome,
)
from eventcore.features.notifications.services.timeout_guard import TimeoutGuard
from eventcore.infrastructure.observability.logging import get_logger, mask_phone
from eventcore.services.providers.errors import ProviderError, ProviderNotConfiguredError
from eventcore.services.providers.registry import SmsProvider, get_sms_provider

logger = get_logger(__name__)

INVALID_PHONE_ERROR = "invalid phone number (expected E.164)"


class SmsSender:
    def __init__(
        self,
        provider_factory: Callable[[], SmsProvider] = get_sms_provider,
        timeout_guard: TimeoutGuard | None = None,
    ):
        self.provider_factory = provider_factory
        self.timeout_guard = timeout_guard or TimeoutGuard()

    async def send(self, to: str, body: str) -> DeliveryOutcome:
        # Validate before touching the provider
        phone = normalize_e164(to)
        if phone is None:
            logger.warning("Rejected non-E.164 phone number", to=mask_phone(to))
            return DeliveryOutcome.failed(INVALID_PHONE_ERROR)

        try:
            provider = self.provider_factory()
        except ProviderNotConfiguredError:
            logger.info("SMS provider not configured, skipping send", to=mask_phone(phone))
            return DeliveryOutcome.skipped(SKIP_NOT_CONFIGURED)

        try:
            result = await self.timeout_guard.run(provider.send(phone, body), operation="sms_send")
        except ProviderError as e:
            return DeliveryOutcome.failed(str(e))
        except Exception as e:
            logger.error(
                "Unexpected SMS send error",
                to=mask_phone(phone),
                error=str(e),
                error_type=type(e).__name__,
            )
            return DeliveryOutcome.failed(str(e))

        if result.indeterminate:
            return DeliveryOutcome.timed_out()
        return DeliveryOutcome.sent(result.value)
