from eventcore.features.notifications.domain.models import DeliveryOutcome, NotificationIntent
from eventcore.features.notifications.repository.in_app_repository import in_app_repository
from eventcore.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class InAppSender:
    """Writes the inbox row that backs the in-app feed."""

    def __init__(self, repository=in_app_repository):
        self.repository = repository

    async def send(self, user_id: str, intent: NotificationIntent) -> DeliveryOutcome:
        try:
            notification_id = await self.repository.create(
                user_id=user_id,
                kind=str(intent.kind),
                title=intent.title,
                body=intent.body,
                subject_entity_id=intent.subject_entity_id,
                context=intent.context,
            )
        except Exception as e:
            logger.error(
                "In-app notification write failed",
                user_id=user_id,
                notification_kind=str(intent.kind),
                error=str(e),
            )
            return DeliveryOutcome.failed(str(e))
        return DeliveryOutcome.sent(notification_id)
