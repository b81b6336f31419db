from app.config import settings
from app.infrastructure.observability.logging import get_logger
from app.models.domain.gmail_domain import INBOX_LABEL_ID, GmailMessage
from app.services.gmail_account_client import GmailAccountClient

from ..repository.newsletter_repository import NewsletterRepository

logger = get_logger(__name__)

UNSUBSCRIBED_LABEL = "Unsubscribed"


class NewsletterUnsubscribeBlocker:
    """Moves mail from senders the user unsubscribed from out of the inbox."""

    def __init__(self, newsletters: type[NewsletterRepository] = NewsletterRepository):
        self._newsletters = newsletters

    async def block_if_unsubscribed(
        self, gmail: GmailAccountClient, user_id: str, message: GmailMessage
    ) -> bool:
        sender = message.sender_email
        if not sender:
            return False

        if not await self._newsletters.is_unsubscribed(user_id, sender):
            return False

        label_id = await gmail.get_or_create_label(settings.automation_label(UNSUBSCRIBED_LABEL))
        await gmail.modify_message(
            message.id, add_label_ids=[label_id], remove_label_ids=[INBOX_LABEL_ID]
        )
        logger.info("Blocked email from unsubscribed sender", message_id=message.id, sender=sender)
        return True


# Singleton instance for application use
unsubscribe_blocker = NewsletterUnsubscribeBlocker()
