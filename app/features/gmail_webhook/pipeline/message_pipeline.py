"""
Per-message decision pipeline.

For one candidate message: fetch it, block unsubscribed senders, skip
messages the ledger already holds, run automation rules, run the cold
email blocker, then record the message in the ledger.
"""

import asyncio

from app.config import settings
from app.features.cold_email.models import ColdEmailInput
from app.infrastructure.observability.logging import get_logger
from app.services.gmail_account_client import GmailAccountClient
from app.services.google_gmail_service import GoogleGmailError
from app.utils.email_content import email_to_content

from ..domain.capabilities import (
    ColdEmailBlocker,
    DedupLedger,
    MessageClaims,
    RuleEngine,
    UnsubscribeBlocker,
)
from ..domain.models import CandidateMessage, PipelineResult, PipelineStatus, ProcessingContext

logger = get_logger(__name__)


def _is_not_found(error: BaseException) -> bool:
    return isinstance(error, GoogleGmailError) and error.is_not_found


class MessagePipeline:
    def __init__(
        self,
        ledger: DedupLedger,
        unsubscribe_blocker: UnsubscribeBlocker,
        rule_engine: RuleEngine,
        cold_email_blocker: ColdEmailBlocker,
        claims: MessageClaims | None = None,
    ):
        self.ledger = ledger
        self.unsubscribe_blocker = unsubscribe_blocker
        self.rule_engine = rule_engine
        self.cold_email_blocker = cold_email_blocker
        self.claims = claims

    async def process(
        self,
        candidate: CandidateMessage,
        context: ProcessingContext,
        gmail: GmailAccountClient,
    ) -> PipelineResult:
        """
        Run the pipeline for one message.

        A message deleted or snoozed at any point of the run yields
        NOT_FOUND; every other error propagates to the caller.
        """
        message_id = candidate.message_id
        thread_id = candidate.thread_id

        fetched = await asyncio.gather(
            gmail.get_message(message_id),
            gmail.get_thread(thread_id),
            self.ledger.exists(context.user_id, thread_id, message_id),
            return_exceptions=True,
        )
        errors = [r for r in fetched if isinstance(r, BaseException)]
        if errors:
            if len(errors) > 1:
                logger.warning(
                    "Several message reads failed",
                    message_id=message_id,
                    errors=[f"{type(e).__name__}: {e}" for e in errors[1:]],
                )
            if _is_not_found(errors[0]):
                return self._not_found(message_id, thread_id)
            raise errors[0]
        message, thread, already_processed = fetched

        try:
            blocked = await self.unsubscribe_blocker.block_if_unsubscribed(
                gmail, context.user_id, message
            )
        except GoogleGmailError as e:
            if not e.is_not_found:
                raise
            return self._not_found(message_id, thread_id)
        if blocked:
            logger.info("Skipping message from unsubscribed sender", message_id=message_id)
            return PipelineResult(message_id=message_id, status=PipelineStatus.BLOCKED)

        if already_processed:
            logger.info("Skipping. Rule already exists.", message_id=message_id, thread_id=thread_id)
            return PipelineResult(message_id=message_id, status=PipelineStatus.ALREADY_PROCESSED)

        if self.claims and not await self.claims.claim(context.user_id, thread_id, message_id):
            logger.info("Message is being processed elsewhere", message_id=message_id)
            return PipelineResult(message_id=message_id, status=PipelineStatus.IN_FLIGHT)

        result = PipelineResult(message_id=message_id, status=PipelineStatus.COMPLETED)
        is_thread = thread.is_conversation()

        try:
            if context.has_automation_rules and context.has_ai_access:
                logger.info("Running rules", message_id=message_id, is_thread=is_thread)
                rule_result = await self.rule_engine.run(
                    gmail, message, context.rules, context.user, is_thread
                )
                result.rule_id = rule_result.rule_id
                result.rule_reason = rule_result.reason
                result.steps.append("rules")

            if (
                context.should_block_cold_emails
                and context.has_cold_email_access
                and not is_thread
            ):
                logger.info("Running cold email blocker", message_id=message_id)
                has_previous_email = await gmail.has_previous_emails_from_domain(
                    message.from_header,
                    message.get_received_datetime(),
                    thread_id,
                )
                cold_result = await self.cold_email_blocker.run(
                    gmail,
                    context.user,
                    ColdEmailInput(
                        from_header=message.from_header,
                        subject=message.subject,
                        content=email_to_content(
                            message.text_plain,
                            message.text_html,
                            message.snippet,
                            settings.EMAIL_CONTENT_MAX_LENGTH,
                        ),
                        message_id=message_id,
                        thread_id=thread_id,
                    ),
                    has_previous_email,
                )
                result.is_cold_email = cold_result.is_cold_email
                result.steps.append("cold_email")

            await self.ledger.create(
                context.user_id, thread_id, message_id, result.rule_id, result.rule_reason
            )
        except BaseException as e:
            if self.claims:
                await self.claims.release(context.user_id, thread_id, message_id)
            if _is_not_found(e):
                return self._not_found(message_id, thread_id)
            raise

        logger.info(
            "Message processed",
            message_id=message_id,
            rule_id=result.rule_id,
            is_cold_email=result.is_cold_email,
            steps=result.steps,
        )
        return result

    @staticmethod
    def _not_found(message_id: str, thread_id: str) -> PipelineResult:
        logger.info("Message no longer exists, skipping", message_id=message_id, thread_id=thread_id)
        return PipelineResult(message_id=message_id, status=PipelineStatus.NOT_FOUND)
