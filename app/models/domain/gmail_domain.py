# app/models/domain/gmail_domain.py
"""
Gmail Domain Models
Domain models built from raw Gmail API payloads: messages, threads,
labels and history records.
"""

import base64
from dataclasses import dataclass, field
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime

# System label ids
INBOX_LABEL_ID = "INBOX"
SENT_LABEL_ID = "SENT"
DRAFT_LABEL_ID = "DRAFT"
SPAM_LABEL_ID = "SPAM"
UNREAD_LABEL_ID = "UNREAD"

# History types the webhook processor subscribes to
HISTORY_MESSAGE_ADDED = "messageAdded"
HISTORY_LABEL_ADDED = "labelAdded"


def parse_email_address(address_str: str) -> dict[str, str]:
    """Parse 'John Doe <john@example.com>' or 'john@example.com' into name and email."""
    if not address_str:
        return {"name": "", "email": ""}

    if "<" in address_str and ">" in address_str:
        name_part = address_str.split("<")[0].strip().strip('"')
        email_part = address_str.split("<")[1].split(">")[0].strip()
        return {"name": name_part, "email": email_part}
    return {"name": "", "email": address_str.strip()}


def extract_email_address(address_str: str) -> str:
    return parse_email_address(address_str)["email"].lower()


def extract_domain(address_str: str) -> str:
    """Domain part of an address header, '' when there is none."""
    email = extract_email_address(address_str)
    return email.rsplit("@", 1)[1] if "@" in email else ""


class GmailMessage:
    """Domain model for Gmail messages."""

    def __init__(self, data: dict):
        self.id = data.get("id")
        self.thread_id = data.get("threadId")
        self.label_ids = data.get("labelIds", [])
        self.snippet = data.get("snippet", "")
        self.history_id = data.get("historyId")
        self.internal_date = data.get("internalDate")
        self.payload = data.get("payload", {})
        self.raw_data = data

        self._parse_headers()
        self._parse_body()

    def _parse_headers(self):
        """Parse email headers from payload."""
        headers = self.payload.get("headers", [])
        self.headers = {h["name"].lower(): h["value"] for h in headers}

        self.from_header = self.headers.get("from", "")
        self.to_header = self.headers.get("to", "")
        self.subject = self.headers.get("subject", "")
        self.sender = parse_email_address(self.from_header)
        self.date = self.headers.get("date", "")
        self.message_id_header = self.headers.get("message-id", "")
        self.references = self.headers.get("references", "")

    def _parse_body(self):
        """Parse text/plain and text/html bodies from payload."""
        self.text_plain = ""
        self.text_html = ""

        if not self.payload:
            return

        if self.payload.get("body", {}).get("data"):
            decoded = self._decode_base64_data(self.payload["body"]["data"])
            if self.payload.get("mimeType") == "text/html":
                self.text_html = decoded
            else:
                self.text_plain = decoded
        elif self.payload.get("parts"):
            self._parse_multipart_body(self.payload["parts"])

    def _parse_multipart_body(self, parts: list):
        for part in parts:
            mime_type = part.get("mimeType", "")
            body_data = part.get("body", {}).get("data")

            if mime_type == "text/plain" and body_data and not self.text_plain:
                self.text_plain = self._decode_base64_data(body_data)
            elif mime_type == "text/html" and body_data and not self.text_html:
                self.text_html = self._decode_base64_data(body_data)
            elif mime_type.startswith("multipart/"):
                self._parse_multipart_body(part.get("parts", []))

    def _decode_base64_data(self, data: str) -> str:
        """Decode base64 URL-safe encoded data."""
        try:
            decoded_bytes = base64.urlsafe_b64decode(data + "=" * (-len(data) % 4))
            return decoded_bytes.decode("utf-8", errors="ignore")
        except (ValueError, TypeError):
            return ""

    @property
    def sender_email(self) -> str:
        return self.sender["email"].lower()

    def get_received_datetime(self) -> datetime | None:
        """Date header if parseable, else Gmail's internal date (milliseconds)."""
        if self.date:
            try:
                parsed = parsedate_to_datetime(self.date)
                return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
            except (TypeError, ValueError):
                pass

        if self.internal_date:
            try:
                return datetime.fromtimestamp(int(self.internal_date) / 1000, tz=UTC)
            except (ValueError, OSError):
                pass
        return None


class GmailThread:
    """Domain model for Gmail threads."""

    def __init__(self, data: dict):
        self.id = data.get("id")
        self.snippet = data.get("snippet", "")
        self.history_id = data.get("historyId")
        self.messages = [GmailMessage(msg) for msg in data.get("messages", [])]
        self.raw_data = data

    def get_message_count(self) -> int:
        return len(self.messages)

    def is_conversation(self) -> bool:
        """A thread with more than one message is an ongoing conversation, not first contact."""
        return self.get_message_count() > 1


class GmailLabel:
    """Domain model for Gmail labels."""

    def __init__(self, data: dict):
        self.id = data.get("id")
        self.name = data.get("name", "")
        self.type = data.get("type", "user")  # "system" or "user"
        self.raw_data = data


@dataclass(slots=True)
class HistoryMessageSummary:
    """Message summary embedded in a messageAdded / labelAdded history entry."""

    message_id: str | None
    thread_id: str | None
    label_ids: list[str] = field(default_factory=list)

    @classmethod
    def from_api(cls, entry: dict) -> "HistoryMessageSummary":
        message = entry.get("message") or {}
        return cls(
            message_id=message.get("id"),
            thread_id=message.get("threadId"),
            label_ids=list(message.get("labelIds") or []),
        )


@dataclass(slots=True)
class GmailHistoryRecord:
    """One entry of users.history.list."""

    id: str
    messages_added: list[HistoryMessageSummary] = field(default_factory=list)
    labels_added: list[HistoryMessageSummary] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: dict) -> "GmailHistoryRecord":
        return cls(
            id=str(data.get("id")),
            messages_added=[
                HistoryMessageSummary.from_api(m) for m in data.get("messagesAdded") or []
            ],
            labels_added=[HistoryMessageSummary.from_api(m) for m in data.get("labelsAdded") or []],
        )


@dataclass(slots=True)
class GmailHistoryPage:
    """Result of a history fetch: ordered records plus the mailbox's current history id."""

    records: list[GmailHistoryRecord]
    history_id: str | None = None
    next_page_token: str | None = None
