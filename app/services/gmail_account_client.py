"""
Gmail client bound to one connected mailbox.

Wraps the low-level GoogleGmailService with the account's access token
(refreshed and persisted when expired) and adds the mailbox-level helpers
the webhook pipeline and its capabilities need.
"""

from datetime import datetime

from app.config import settings
from app.infrastructure.observability.logging import get_logger
from app.models.domain.gmail_domain import (
    HISTORY_LABEL_ADDED,
    HISTORY_MESSAGE_ADDED,
    INBOX_LABEL_ID,
    GmailHistoryPage,
    GmailMessage,
    GmailThread,
    extract_domain,
)
from app.models.domain.user_domain import WebhookAccount
from app.repositories.account_repository import AccountRepository
from app.services.google_gmail_service import (
    GoogleGmailError,
    GoogleGmailService,
    google_gmail_service,
)
from app.services.google_oauth_service import google_oauth_service

logger = get_logger(__name__)


class GmailAccountClient:
    """Gmail operations for a single mailbox."""

    def __init__(
        self,
        access_token: str,
        email: str,
        service: GoogleGmailService | None = None,
    ):
        self._access_token = access_token
        self.email = email
        self._service = service or google_gmail_service
        self._label_ids: dict[str, str] | None = None

    async def list_history(self, start_history_id: str) -> GmailHistoryPage:
        return await self._service.list_history(
            self._access_token,
            start_history_id,
            label_id=INBOX_LABEL_ID,
            history_types=[HISTORY_MESSAGE_ADDED, HISTORY_LABEL_ADDED],
            max_results=settings.HISTORY_MAX_RESULTS,
        )

    async def get_message(self, message_id: str) -> GmailMessage:
        return await self._service.get_message(self._access_token, message_id, format="full")

    async def get_thread(self, thread_id: str) -> GmailThread:
        return await self._service.get_thread(self._access_token, thread_id)

    async def has_previous_emails_from_domain(
        self, from_header: str, before: datetime | None, thread_id: str
    ) -> bool:
        """
        True if the mailbox holds mail from the sender's domain, received
        before `before`, outside the current thread.
        """
        domain = extract_domain(from_header)
        if not domain:
            return False

        query = f"from:{domain}"
        if before:
            query += f" before:{int(before.timestamp())}"

        messages = await self._service.list_message_ids(self._access_token, query, max_results=2)
        return any(m.get("threadId") != thread_id for m in messages)

    async def modify_message(
        self,
        message_id: str,
        add_label_ids: list[str] | None = None,
        remove_label_ids: list[str] | None = None,
    ) -> None:
        await self._service.modify_message(
            self._access_token, message_id, add_label_ids, remove_label_ids
        )

    async def modify_thread(
        self,
        thread_id: str,
        add_label_ids: list[str] | None = None,
        remove_label_ids: list[str] | None = None,
    ) -> None:
        await self._service.modify_thread(
            self._access_token, thread_id, add_label_ids, remove_label_ids
        )

    async def get_or_create_label(self, name: str) -> str:
        """Label id for `name`, creating the label on first use."""
        key = name.lower()
        if self._label_ids is None:
            labels = await self._service.list_labels(self._access_token)
            self._label_ids = {label.name.lower(): label.id for label in labels}

        if key in self._label_ids:
            return self._label_ids[key]

        try:
            label = await self._service.create_label(self._access_token, name)
        except GoogleGmailError as e:
            # 409: created concurrently by another worker
            if e.status_code != 409:
                raise
            labels = await self._service.list_labels(self._access_token)
            self._label_ids = {lbl.name.lower(): lbl.id for lbl in labels}
            if key not in self._label_ids:
                raise
            return self._label_ids[key]

        self._label_ids[key] = label.id
        return label.id

    async def send_message(
        self,
        to: list[str],
        subject: str,
        body: str,
        cc: list[str] | None = None,
        bcc: list[str] | None = None,
        thread_id: str | None = None,
        in_reply_to: str | None = None,
        references: str | None = None,
    ) -> dict:
        return await self._service.send_message(
            self._access_token,
            to,
            subject,
            body,
            cc=cc,
            bcc=bcc,
            thread_id=thread_id,
            in_reply_to=in_reply_to,
            references=references,
        )

    async def create_draft(
        self,
        to: list[str],
        subject: str,
        body: str,
        thread_id: str | None = None,
        in_reply_to: str | None = None,
        references: str | None = None,
    ) -> dict:
        return await self._service.create_draft(
            self._access_token,
            to,
            subject,
            body,
            thread_id=thread_id,
            in_reply_to=in_reply_to,
            references=references,
        )


async def get_gmail_client_with_refresh(account: WebhookAccount) -> GmailAccountClient:
    """
    Build a client for the account, refreshing the access token first when
    it is expired (or about to be) and saving the new token.

    Raises:
        GoogleOAuthError: refresh rejected or unreachable
    """
    credential = account.credential
    access_token = credential.access_token

    if credential.needs_refresh():
        logger.info("Refreshing expired Gmail access token", user_id=account.user_id)
        token = await google_oauth_service.refresh_access_token(credential.refresh_token)
        await AccountRepository.save_refreshed_tokens(
            account.user_id,
            credential.provider_account_id,
            token.access_token,
            token.expires_at,
            refresh_token=token.refresh_token
            if token.refresh_token != credential.refresh_token
            else None,
        )
        access_token = token.access_token

    return GmailAccountClient(access_token, account.user.email or "")
