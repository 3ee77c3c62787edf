"""
Resolves a user's per-channel opt-ins.

Users created before notification settings existed have no blob at all;
they get the defaults. Lookup failures also fall back to the defaults:
open for in-app and email, closed for SMS.
"""

from typing import Any

from eventcore.features.notifications.domain.models import DeliveryPreference
from eventcore.features.notifications.repository.profile_repository import profile_repository
from eventcore.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

DEFAULT_PREFERENCE = DeliveryPreference()


def _pick(settings: dict[str, Any], keys: tuple[str, ...], default: bool) -> bool:
    for key in keys:
        value = settings.get(key)
        if value is not None:
            return bool(value)
    return default


def preference_from_settings(settings: dict[str, Any] | None) -> DeliveryPreference:
    if not settings:
        return DEFAULT_PREFERENCE
    return DeliveryPreference(
        in_app_opt_in=_pick(settings, ("notification_opt_in", "in_app_opt_in"), True),
        email_opt_in=_pick(settings, ("email_opt_in", "email"), True),
        sms_opt_in=_pick(settings, ("sms_opt_in", "sms"), False),
    )


class PreferenceResolver:
    def __init__(self, repository=profile_repository):
        self.repository = repository

    async def resolve(self, user_id: str) -> DeliveryPreference:
        """Never raises."""
        try:
            settings = await self.repository.get_notification_settings(user_id)
        except Exception as e:
            logger.warning(
                "Preference lookup failed, using defaults",
                user_id=user_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return DEFAULT_PREFERENCE
        return preference_from_settings(settings)
