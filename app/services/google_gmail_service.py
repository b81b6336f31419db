"""
Google Gmail API Service.
Low-level Gmail REST client: raw API calls, error mapping and response
parsing into domain models. Knows nothing about users or accounts; every
call takes an already-valid access token.
"""

import asyncio
import base64
from email.mime.text import MIMEText
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from app.infrastructure.observability.logging import get_logger
from app.models.domain.gmail_domain import (
    GmailHistoryPage,
    GmailHistoryRecord,
    GmailLabel,
    GmailMessage,
    GmailThread,
)

logger = get_logger(__name__)

# Google Gmail API configuration
GMAIL_API_BASE_URL = "https://gmail.googleapis.com/gmail/v1"
GMAIL_USER_ID = "me"

# Request timeouts and retry configuration
REQUEST_TIMEOUT = 30  # seconds
MAX_RETRIES = 3
BACKOFF_FACTOR = 2

NOT_FOUND_MESSAGE = "Requested entity was not found."


class GoogleGmailError(Exception):
    """Custom exception for Google Gmail API errors."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        status_code: int | None = None,
        response_data: dict | None = None,
    ):
        super().__init__(message)
        self.error_code = error_code
        self.status_code = status_code
        self.response_data = response_data or {}

    @property
    def is_not_found(self) -> bool:
        """Message/thread vanished (snoozed, deleted) or history id too old."""
        if self.status_code == 404:
            return True
        api_message = self.response_data.get("error", {}).get("message")
        return api_message == NOT_FOUND_MESSAGE

    @property
    def recoverable(self) -> bool:
        return self.status_code is None or self.status_code >= 429


class GoogleGmailService:
    """
    Service for Google Gmail API operations.

    Pure API client that handles HTTP requests, authentication, error handling,
    and retry logic. Blocking requests run in a worker thread so callers can
    fan out concurrently.
    """

    def __init__(self):
        self._session = self._create_session()

    def _create_session(self) -> requests.Session:
        """Create requests session with retry strategy for Gmail API."""
        session = requests.Session()

        retry_strategy = Retry(
            total=MAX_RETRIES,
            backoff_factor=BACKOFF_FACTOR,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET", "POST"],
            raise_on_status=False,
        )

        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("https://", adapter)

        return session

    def _get_auth_headers(self, access_token: str) -> dict:
        return {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def _request(
        self,
        method: str,
        path: str,
        access_token: str,
        operation: str,
        params: dict | None = None,
        json_body: dict | None = None,
    ) -> dict:
        url = f"{GMAIL_API_BASE_URL}/users/{GMAIL_USER_ID}/{path}"
        try:
            response = await asyncio.to_thread(
                self._session.request,
                method,
                url,
                headers=self._get_auth_headers(access_token),
                params=params,
                json=json_body,
                timeout=REQUEST_TIMEOUT,
            )
        except requests.RequestException as e:
            logger.error(f"Gmail API {operation} request error", error=str(e))
            raise GoogleGmailError(f"Gmail request failed: {e}") from e

        return self._handle_api_response(response, operation)

    def _handle_api_response(self, response: requests.Response, operation: str) -> dict:
        """
        Handle and validate Gmail API response.

        Args:
            response: HTTP response from Gmail API
            operation: Operation name for logging

        Returns:
            dict: Parsed response data

        Raises:
            GoogleGmailError: If response contains errors
        """
        if response.ok:
            try:
                return response.json() if response.text else {}
            except ValueError as e:
                logger.error(f"Failed to parse Gmail API {operation} response", error=str(e))
                raise GoogleGmailError(f"Invalid response format: {e}") from e

        try:
            error_data = response.json() if response.text else {}
        except ValueError:
            logger.error(
                f"Gmail API {operation} failed with non-JSON response",
                status_code=response.status_code,
                response_text=response.text[:200] if response.text else "",
            )
            raise GoogleGmailError(
                f"Gmail API error (HTTP {response.status_code})",
                status_code=response.status_code,
            ) from None

        error_info = error_data.get("error", {})
        error_code = str(error_info.get("code", response.status_code))
        error_message = error_info.get("message", "Unknown Gmail API error")

        log = logger.info if response.status_code == 404 else logger.error
        log(
            f"Gmail API {operation} failed",
            status_code=response.status_code,
            error_code=error_code,
            error_message=error_message,
        )

        raise GoogleGmailError(
            error_message,
            error_code=error_code,
            status_code=response.status_code,
            response_data=error_data,
        )

    async def list_history(
        self,
        access_token: str,
        start_history_id: str,
        label_id: str | None = None,
        history_types: list[str] | None = None,
        max_results: int = 500,
    ) -> GmailHistoryPage:
        """
        List mailbox changes after start_history_id (exclusive).

        Raises:
            GoogleGmailError: status 404 when start_history_id is too old
        """
        params: dict[str, Any] = {
            "startHistoryId": start_history_id,
            "maxResults": min(max_results, 500),
        }
        if label_id:
            params["labelId"] = label_id
        if history_types:
            params["historyTypes"] = history_types

        data = await self._request("GET", "history", access_token, "list_history", params=params)

        records = [GmailHistoryRecord.from_api(h) for h in data.get("history", [])]
        logger.debug(
            "History listed",
            start_history_id=start_history_id,
            record_count=len(records),
            history_id=data.get("historyId"),
        )
        return GmailHistoryPage(
            records=records,
            history_id=data.get("historyId"),
            next_page_token=data.get("nextPageToken"),
        )

    async def get_message(
        self, access_token: str, message_id: str, format: str = "full"
    ) -> GmailMessage:
        """Get a specific message by ID."""
        data = await self._request(
            "GET", f"messages/{message_id}", access_token, "get_message", params={"format": format}
        )
        return GmailMessage(data)

    async def get_thread(
        self, access_token: str, thread_id: str, format: str = "minimal"
    ) -> GmailThread:
        """Get a specific thread by ID."""
        data = await self._request(
            "GET", f"threads/{thread_id}", access_token, "get_thread", params={"format": format}
        )
        return GmailThread(data)

    async def list_message_ids(
        self, access_token: str, query: str, max_results: int = 10
    ) -> list[dict[str, str]]:
        """Search messages and return bare {id, threadId} references."""
        data = await self._request(
            "GET",
            "messages",
            access_token,
            "list_messages",
            params={"q": query, "maxResults": min(max_results, 500)},
        )
        return data.get("messages", [])

    async def modify_message(
        self,
        access_token: str,
        message_id: str,
        add_label_ids: list[str] | None = None,
        remove_label_ids: list[str] | None = None,
    ) -> dict:
        """Add/remove labels on a single message."""
        logger.info(
            "Modifying Gmail message",
            message_id=message_id,
            add_labels=add_label_ids,
            remove_labels=remove_label_ids,
        )
        return await self._request(
            "POST",
            f"messages/{message_id}/modify",
            access_token,
            "modify_message",
            json_body={
                "addLabelIds": add_label_ids or [],
                "removeLabelIds": remove_label_ids or [],
            },
        )

    async def modify_thread(
        self,
        access_token: str,
        thread_id: str,
        add_label_ids: list[str] | None = None,
        remove_label_ids: list[str] | None = None,
    ) -> dict:
        """Add/remove labels on every message of a thread."""
        logger.info(
            "Modifying Gmail thread",
            thread_id=thread_id,
            add_labels=add_label_ids,
            remove_labels=remove_label_ids,
        )
        return await self._request(
            "POST",
            f"threads/{thread_id}/modify",
            access_token,
            "modify_thread",
            json_body={
                "addLabelIds": add_label_ids or [],
                "removeLabelIds": remove_label_ids or [],
            },
        )

    async def list_labels(self, access_token: str) -> list[GmailLabel]:
        data = await self._request("GET", "labels", access_token, "list_labels")
        return [GmailLabel(label) for label in data.get("labels", [])]

    async def create_label(self, access_token: str, name: str) -> GmailLabel:
        data = await self._request(
            "POST",
            "labels",
            access_token,
            "create_label",
            json_body={
                "name": name,
                "labelListVisibility": "labelShow",
                "messageListVisibility": "show",
            },
        )
        logger.info("Gmail label created", label_name=name, label_id=data.get("id"))
        return GmailLabel(data)

    def _build_raw_message(
        self,
        to: list[str],
        subject: str,
        body: str,
        cc: list[str] | None = None,
        bcc: list[str] | None = None,
        in_reply_to: str | None = None,
        references: str | None = None,
    ) -> str:
        msg = MIMEText(body, "plain")
        msg["To"] = ", ".join(to)
        msg["Subject"] = subject
        if cc:
            msg["Cc"] = ", ".join(cc)
        if bcc:
            msg["Bcc"] = ", ".join(bcc)
        if in_reply_to:
            msg["In-Reply-To"] = in_reply_to
            msg["References"] = f"{references} {in_reply_to}".strip() if references else in_reply_to

        return base64.urlsafe_b64encode(msg.as_bytes()).decode("utf-8")

    async def send_message(
        self,
        access_token: str,
        to: list[str],
        subject: str,
        body: str,
        cc: list[str] | None = None,
        bcc: list[str] | None = None,
        thread_id: str | None = None,
        in_reply_to: str | None = None,
        references: str | None = None,
    ) -> dict:
        """Send a plain-text email, threaded when thread_id is given."""
        send_data: dict[str, Any] = {
            "raw": self._build_raw_message(to, subject, body, cc, bcc, in_reply_to, references)
        }
        if thread_id:
            send_data["threadId"] = thread_id

        logger.info(
            "Sending Gmail message",
            recipient_count=len(to),
            has_cc=bool(cc),
            has_bcc=bool(bcc),
            is_reply=bool(thread_id),
        )
        data = await self._request(
            "POST", "messages/send", access_token, "send_message", json_body=send_data
        )
        logger.info("Message sent successfully", message_id=data.get("id"))
        return data

    async def create_draft(
        self,
        access_token: str,
        to: list[str],
        subject: str,
        body: str,
        thread_id: str | None = None,
        in_reply_to: str | None = None,
        references: str | None = None,
    ) -> dict:
        """Create a plain-text draft, attached to thread_id when given."""
        message: dict[str, Any] = {
            "raw": self._build_raw_message(
                to, subject, body, in_reply_to=in_reply_to, references=references
            )
        }
        if thread_id:
            message["threadId"] = thread_id

        data = await self._request(
            "POST", "drafts", access_token, "create_draft", json_body={"message": message}
        )
        logger.info("Draft created successfully", draft_id=data.get("id"))
        return data


# Singleton instance for application use
google_gmail_service = GoogleGmailService()
