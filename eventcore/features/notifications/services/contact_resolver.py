from eventcore.features.notifications.domain.models import ContactInfo
from eventcore.features.notifications.repository.profile_repository import profile_repository
from eventcore.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


def _clean(value) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class ContactResolver:
    """Loads deliverable addresses. A missing field just disables its channel."""

    def __init__(self, repository=profile_repository):
        self.repository = repository

    async def resolve(self, user_id: str) -> ContactInfo:
        try:
            row = await self.repository.get_contact(user_id)
        except Exception as e:
            logger.warning("Contact lookup failed", user_id=user_id, error=str(e))
            return ContactInfo()

        if not row:
            logger.info("No profile found for recipient", user_id=user_id)
            return ContactInfo()

        return ContactInfo(
            email=_clean(row.get("email")),
            phone_e164=_clean(row.get("phone_number")),
            display_name=_clean(row.get("display_name")) or _clean(row.get("name")),
        )
