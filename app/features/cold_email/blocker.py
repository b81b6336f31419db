"""
Cold email blocker.

Classifies first-contact mail from unknown senders and, depending on the
user's setting, labels and/or archives it.
"""

from app.config import settings
from app.infrastructure.observability.logging import get_logger
from app.models.domain.gmail_domain import INBOX_LABEL_ID, extract_email_address
from app.models.domain.user_domain import ColdEmailSetting, WebhookUser
from app.services.gmail_account_client import GmailAccountClient
from app.services.openai_service import OpenAIService, openai_service, resolve_ai_config

from .models import ColdEmailInput, ColdEmailResult
from .repository import ColdEmailRepository

logger = get_logger(__name__)

COLD_EMAIL_LABEL = "Cold Email"

DEFAULT_COLD_EMAIL_PROMPT = """Examples of cold emails:
- Sales outreach pitching a product or service
- Recruiters or agencies offering services nobody asked for
- Link building, SEO and "quick question" partnership requests

Not cold emails:
- Newsletters the user subscribed to
- Receipts, notifications and account mail from services the user uses
- Personal mail and replies to conversations the user started"""

SYSTEM_PROMPT = """You decide whether an email is a cold email: unsolicited outreach \
from someone the user has no prior relationship with.

{instructions}

Respond with a JSON object only:
{{"cold": <true or false>, "reason": "<one short sentence>"}}"""


class AIColdEmailBlocker:
    def __init__(
        self,
        ai: OpenAIService | None = None,
        repository: type[ColdEmailRepository] = ColdEmailRepository,
    ):
        self._ai = ai or openai_service
        self._repository = repository

    async def classify(self, user: WebhookUser, email: ColdEmailInput) -> tuple[bool, str | None]:
        system = SYSTEM_PROMPT.format(instructions=user.cold_email_prompt or DEFAULT_COLD_EMAIL_PROMPT)
        prompt = f"From: {email.from_header}\nSubject: {email.subject}\nBody:\n{email.content}"

        answer = await self._ai.complete_json(
            resolve_ai_config(user), system, prompt, operation="classify_cold_email"
        )
        return bool(answer.get("cold")), answer.get("reason")

    async def run(
        self,
        gmail: GmailAccountClient,
        user: WebhookUser,
        email: ColdEmailInput,
        has_previous_email: bool,
    ) -> ColdEmailResult:
        """
        Classify and apply the user's cold email setting.

        Raises:
            OpenAIServiceError: model call failed
            GoogleGmailError: labelling/archiving failed
        """
        if has_previous_email:
            return ColdEmailResult(is_cold_email=False, reason="Sender domain has emailed before")

        is_cold, reason = await self.classify(user, email)
        if not is_cold:
            logger.debug("Not a cold email", message_id=email.message_id, reason=reason)
            return ColdEmailResult(is_cold_email=False, reason=reason)

        await self._repository.upsert_cold_email(
            user.id,
            extract_email_address(email.from_header),
            email.message_id,
            email.thread_id,
            reason,
        )

        setting = user.cold_email_blocker
        action_taken = "LIST"
        if setting in (ColdEmailSetting.LABEL, ColdEmailSetting.ARCHIVE_AND_LABEL):
            label_id = await gmail.get_or_create_label(settings.automation_label(COLD_EMAIL_LABEL))
            remove = [INBOX_LABEL_ID] if setting == ColdEmailSetting.ARCHIVE_AND_LABEL else None
            await gmail.modify_message(email.message_id, add_label_ids=[label_id], remove_label_ids=remove)
            action_taken = setting.value

        logger.info(
            "Cold email blocked",
            message_id=email.message_id,
            action_taken=action_taken,
            reason=reason,
        )
        return ColdEmailResult(is_cold_email=True, reason=reason, action_taken=action_taken)


# Singleton instance for application use
ai_cold_email_blocker = AIColdEmailBlocker()
