"""
Gmail webhook orchestration service.

Resolves the mailbox owner from a push notification, applies the
entitlement gates, fetches the change feed from the stored cursor, runs
the message pipeline over each candidate and advances the cursor.
"""

import asyncio
from collections.abc import Awaitable, Callable

from app.config import settings
from app.features.automation import ai_rule_engine
from app.features.cold_email import ai_cold_email_blocker
from app.infrastructure.observability.errors import capture_exception
from app.infrastructure.observability.logging import (
    bind_webhook_context,
    clear_webhook_context,
    get_logger,
)
from app.models.domain.user_domain import WebhookAccount
from app.repositories.account_repository import AccountRepository
from app.services.gmail_account_client import GmailAccountClient, get_gmail_client_with_refresh
from app.services.google_gmail_service import GoogleGmailError

from ..domain.capabilities import CursorStore
from ..domain.models import HistoryNotification, ProcessingContext, WebhookOutcome
from ..pipeline.message_pipeline import MessagePipeline
from ..pipeline.normalizer import normalize_history
from ..repository.cursor_repository import CursorRepository
from ..repository.executed_rule_repository import ExecutedRuleRepository
from ..repository.in_flight_claims import in_flight_claims
from .entitlements import (
    compute_start_history_id,
    has_ai_access,
    has_cold_email_access,
    is_premium,
)
from .unsubscribe_blocker import unsubscribe_blocker

logger = get_logger(__name__)


class WebhookConfigurationError(Exception):
    """Account is connected but cannot be processed until its data is fixed."""

    def __init__(self, message: str):
        super().__init__(message)
        self.recoverable = False


class GmailWebhookService:
    def __init__(
        self,
        accounts: type[AccountRepository] = AccountRepository,
        cursor_store: CursorStore = CursorRepository,
        pipeline: MessagePipeline | None = None,
        gmail_client_factory: Callable[
            [WebhookAccount], Awaitable[GmailAccountClient]
        ] = get_gmail_client_with_refresh,
    ):
        self.accounts = accounts
        self.cursor_store = cursor_store
        self.pipeline = pipeline or MessagePipeline(
            ledger=ExecutedRuleRepository,
            unsubscribe_blocker=unsubscribe_blocker,
            rule_engine=ai_rule_engine,
            cold_email_blocker=ai_cold_email_blocker,
            claims=in_flight_claims,
        )
        self.gmail_client_factory = gmail_client_factory

    async def handle(self, notification: HistoryNotification) -> dict:
        """
        Process one notification. Always returns {"ok": True} so the push
        sender never retries: failures are captured, not surfaced.
        """
        bind_webhook_context(
            user_email=notification.email_address,
            history_id=notification.history_id,
        )
        try:
            outcome = await asyncio.wait_for(
                self.process_history_for_user(notification),
                timeout=settings.WEBHOOK_PROCESSING_TIMEOUT_SECONDS,
            )
            logger.info("Webhook notification handled", outcome=outcome.value)
        except asyncio.TimeoutError as e:
            capture_exception(
                e,
                extra={
                    "history_id": notification.history_id,
                    "timeout_seconds": settings.WEBHOOK_PROCESSING_TIMEOUT_SECONDS,
                },
                user_email=notification.email_address,
            )
        except Exception as e:
            capture_exception(
                e,
                extra={"history_id": notification.history_id},
                user_email=notification.email_address,
            )
        finally:
            clear_webhook_context()

        return {"ok": True}

    async def process_history_for_user(
        self,
        notification: HistoryNotification,
        start_history_id: int | None = None,
    ) -> WebhookOutcome:
        """
        Run the gates, fetch history and process every candidate message.

        Args:
            notification: Mailbox address and its latest history id
            start_history_id: Explicit lower bound; bypasses the stored cursor
        """
        email = notification.email_address

        account = await self.accounts.find_by_email(email)
        if not account:
            logger.info("Account not found", email=email)
            return WebhookOutcome.ACCOUNT_NOT_FOUND

        user = account.user
        premium = account.premium

        if not premium or not is_premium(premium.renews_at):
            logger.info("Account not premium", email=email)
            return WebhookOutcome.NOT_PREMIUM

        ai_access = has_ai_access(premium.ai_automation_access, user.ai_api_key)
        cold_email_access = has_cold_email_access(premium.cold_email_blocker_access, user.ai_api_key)
        if not ai_access and not cold_email_access:
            logger.info("Does not have AI or cold email access", email=email)
            return WebhookOutcome.NO_AI_ACCESS

        context = ProcessingContext(
            user_id=account.user_id,
            user_email=user.email or email,
            user=user,
            rules=account.rules,
            has_automation_rules=len(account.rules) > 0,
            has_ai_access=ai_access,
            has_cold_email_access=cold_email_access,
        )

        if not context.has_automation_rules and not context.should_block_cold_emails:
            logger.info("Has no rules set and cold email blocker disabled", email=email)
            return WebhookOutcome.NOTHING_CONFIGURED

        if not account.credential.is_usable() or not user.email:
            capture_exception(
                WebhookConfigurationError("Missing access token, refresh token or email"),
                extra={"user_id": account.user_id},
                user_email=email,
            )
            return WebhookOutcome.MISSING_CREDENTIALS

        if start_history_id is None:
            cursor = await self.cursor_store.get(account.user_id)
            start_history_id = compute_start_history_id(
                cursor, notification.history_id, settings.HISTORY_MAX_LOOKBACK
            )

        try:
            return await self._process_history(notification, context, account, start_history_id)
        except Exception as e:
            capture_exception(
                e,
                extra={
                    "user_id": account.user_id,
                    "history_id": notification.history_id,
                    "start_history_id": start_history_id,
                },
                user_email=email,
            )
            return WebhookOutcome.FAILED

    async def _process_history(
        self,
        notification: HistoryNotification,
        context: ProcessingContext,
        account: WebhookAccount,
        start_history_id: int,
    ) -> WebhookOutcome:
        notified_id = str(notification.history_id)
        gmail = await self.gmail_client_factory(account)

        logger.info(
            "Listing history",
            start_history_id=start_history_id,
            last_synced_history_id=notified_id,
        )

        try:
            page = await gmail.list_history(str(start_history_id))
        except GoogleGmailError as e:
            if not e.is_not_found:
                raise
            logger.warning(
                "Start history id expired, resetting cursor to notified id",
                start_history_id=start_history_id,
                history_id=notified_id,
            )
            await self.cursor_store.advance(context.user_id, notified_id)
            return WebhookOutcome.HISTORY_EXPIRED

        if not page.records:
            logger.info("No history", start_history_id=start_history_id)
            await self.cursor_store.advance(context.user_id, notified_id)
            return WebhookOutcome.NO_HISTORY

        candidates = normalize_history(page.records)
        logger.info(
            "Processing history",
            record_count=len(page.records),
            candidate_count=len(candidates),
        )

        failed = 0
        for candidate in candidates:
            try:
                await self.pipeline.process(candidate, context, gmail)
            except Exception as e:
                failed += 1
                capture_exception(
                    e,
                    extra={
                        "user_id": context.user_id,
                        "message_id": candidate.message_id,
                        "thread_id": candidate.thread_id,
                    },
                    user_email=context.user_email,
                )

        last_history_id = page.records[-1].id
        await self.cursor_store.advance(context.user_id, last_history_id)

        logger.info(
            "History batch completed",
            cursor=last_history_id,
            candidate_count=len(candidates),
            candidates_failed=failed,
        )
        return WebhookOutcome.PROCESSED


# Singleton instance for application use
gmail_webhook_service = GmailWebhookService()
