"""
Lazily initialized provider handles.

get_email_provider() / get_sms_provider() build the client on first use
and cache it. When credentials are missing they raise
ProviderNotConfiguredError; callers must handle that and record a skip.
"""

from typing import Protocol

from eventcore.config import settings
from eventcore.infrastructure.observability.logging import get_logger
from eventcore.services.providers.email_provider import ResendEmailProvider
from eventcore.services.providers.errors import ProviderNotConfiguredError
from eventcore.services.providers.sms_provider import TwilioSmsProvider

logger = get_logger(__name__)


class EmailProvider(Protocol):
    async def send(self, to: str, subject: str, html: str) -> str: ...


class SmsProvider(Protocol):
    async def send(self, to: str, body: str) -> str: ...


_instances: dict[str, object] = {}


def get_email_provider() -> EmailProvider:
    if "email" not in _instances:
        if not settings.email_configured():
            raise ProviderNotConfiguredError("email")
        _instances["email"] = ResendEmailProvider(settings.RESEND_API_KEY, settings.EMAIL_FROM)
        logger.info("Email provider initialized", provider="resend")
    return _instances["email"]


def get_sms_provider() -> SmsProvider:
    if "sms" not in _instances:
        if not settings.sms_configured():
            raise ProviderNotConfiguredError("sms")
        _instances["sms"] = TwilioSmsProvider(
            settings.TWILIO_ACCOUNT_SID,
            settings.TWILIO_AUTH_TOKEN,
            from_number=settings.TWILIO_PHONE_NUMBER,
            messaging_service_sid=settings.TWILIO_MESSAGING_SERVICE_SID,
        )
        logger.info(
            "SMS provider initialized",
            provider="twilio",
            mode="messaging_service" if settings.TWILIO_MESSAGING_SERVICE_SID else "from_number",
        )
    return _instances["sms"]


async def close_providers() -> None:
    for name, provider in list(_instances.items()):
        try:
            await provider.close()
        except Exception as e:
            logger.error("Error closing provider", provider=name, error=str(e))
    _instances.clear()


def reset_providers() -> None:
    """Drop cached handles without closing them (tests)."""
    _instances.clear()
