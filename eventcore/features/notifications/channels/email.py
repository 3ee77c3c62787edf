from collections.abc import Callable

from eventcore.features.notifications.domain.models import (
    SKIP_NOT_CONFIGURED,
    DeliveryOutcome,
)
from eventcore.features.notifications.services.timeout_guard import TimeoutGuard
from eventcore.infrastructure.observability.logging import get_logger, mask_email
from eventcore.services.providers.errors import ProviderError, ProviderNotConfiguredError
from eventcore.services.providers.registry import EmailProvider, get_email_provider

logger = get_logger(__name__)


class EmailSender:
    def __init__(
        self,
        provider_factory: Callable[[], EmailProvider] = get_email_provider,
        timeout_guard: TimeoutGuard | None = None,
    ):
        self.provider_factory = provider_factory
        self.timeout_guard = timeout_guard or TimeoutGuard()

    async def send(self, to: str, subject: str, html: str) -> DeliveryOutcome:
        try:
            provider = self.provider_factory()
        except ProviderNotConfiguredError:
            logger.info("Email provider not configured, skipping send", to=mask_email(to))
            return DeliveryOutcome.skipped(SKIP_NOT_CONFIGURED)

        try:
            result = await self.timeout_guard.run(
                provider.send(to, subject, html), operation="email_send"
            )
        except ProviderError as e:
            return DeliveryOutcome.failed(str(e))
        except Exception as e:
            logger.error(
                "Unexpected email send error",
                to=mask_email(to),
                error=str(e),
                error_type=type(e).__name__,
            )
            return DeliveryOutcome.failed(str(e))

        if result.indeterminate:
            return DeliveryOutcome.timed_out()
        return DeliveryOutcome.sent(result.value)
