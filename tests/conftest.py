import base64
from datetime import UTC, datetime, timedelta

import pytest

from app.features.automation.models import RuleRunResult
from app.features.cold_email.models import ColdEmailResult
from app.models.domain.gmail_domain import (
    GmailHistoryPage,
    GmailHistoryRecord,
    GmailMessage,
    GmailThread,
)
from app.models.domain.user_domain import (
    AccountCredential,
    ColdEmailSetting,
    PremiumSnapshot,
    Rule,
    RuleAction,
    WebhookAccount,
    WebhookUser,
)
from app.services.google_gmail_service import NOT_FOUND_MESSAGE, GoogleGmailError


def make_gmail_message(
    message_id: str,
    thread_id: str,
    sender: str = "Jane Sender <jane@acme.com>",
    subject: str = "Hello",
    body: str = "Hi there",
    labels: list[str] | None = None,
    date: str = "Mon, 05 Oct 2026 10:00:00 +0000",
) -> dict:
    """Raw Gmail API message payload."""
    return {
        "id": message_id,
        "threadId": thread_id,
        "labelIds": labels or ["INBOX", "UNREAD"],
        "snippet": body[:50],
        "payload": {
            "mimeType": "text/plain",
            "headers": [
                {"name": "From", "value": sender},
                {"name": "To", "value": "owner@example.com"},
                {"name": "Subject", "value": subject},
                {"name": "Date", "value": date},
                {"name": "Message-ID", "value": f"<{message_id}@mail.acme.com>"},
            ],
            "body": {"data": base64.urlsafe_b64encode(body.encode()).decode()},
        },
    }


def history_record(
    history_id: str,
    added: list[tuple[str, str, list[str]]] | None = None,
    labelled: list[tuple[str, str, list[str]]] | None = None,
) -> GmailHistoryRecord:
    """Build a history record from (message_id, thread_id, label_ids) tuples."""

    def _entries(items):
        return [
            {"message": {"id": mid, "threadId": tid, "labelIds": labels}}
            for mid, tid, labels in items or []
        ]

    return GmailHistoryRecord.from_api(
        {"id": history_id, "messagesAdded": _entries(added), "labelsAdded": _entries(labelled)}
    )


def not_found_error() -> GoogleGmailError:
    return GoogleGmailError(
        NOT_FOUND_MESSAGE,
        error_code="404",
        status_code=404,
        response_data={"error": {"code": 404, "message": NOT_FOUND_MESSAGE}},
    )


class FakeGmail:
    """In-memory stand-in for GmailAccountClient."""

    def __init__(self):
        self.email = "owner@example.com"
        self.messages: dict[str, dict] = {}
        self.threads: dict[str, list[str]] = {}
        self.history: list[GmailHistoryRecord] = []
        self.history_error: Exception | None = None
        self.previous_email_from_domain = False
        self.history_calls: list[str] = []
        self.message_fetches: list[str] = []
        self.modified_messages: list[tuple] = []
        self.modified_threads: list[tuple] = []
        self.sent: list[dict] = []
        self.drafts: list[dict] = []
        self.labels: dict[str, str] = {}

    def add_message(self, message_id: str, thread_id: str, **kwargs) -> None:
        self.messages[message_id] = make_gmail_message(message_id, thread_id, **kwargs)
        self.threads.setdefault(thread_id, []).append(message_id)

    async def list_history(self, start_history_id: str) -> GmailHistoryPage:
        self.history_calls.append(start_history_id)
        if self.history_error:
            raise self.history_error
        return GmailHistoryPage(records=list(self.history))

    async def get_message(self, message_id: str) -> GmailMessage:
        self.message_fetches.append(message_id)
        if message_id not in self.messages:
            raise not_found_error()
        return GmailMessage(self.messages[message_id])

    async def get_thread(self, thread_id: str) -> GmailThread:
        if thread_id not in self.threads:
            raise not_found_error()
        return GmailThread(
            {
                "id": thread_id,
                "messages": [{"id": mid, "threadId": thread_id} for mid in self.threads[thread_id]],
            }
        )

    async def has_previous_emails_from_domain(self, from_header, before, thread_id) -> bool:
        return self.previous_email_from_domain

    async def modify_message(self, message_id, add_label_ids=None, remove_label_ids=None) -> None:
        self.modified_messages.append((message_id, add_label_ids, remove_label_ids))

    async def modify_thread(self, thread_id, add_label_ids=None, remove_label_ids=None) -> None:
        self.modified_threads.append((thread_id, add_label_ids, remove_label_ids))

    async def get_or_create_label(self, name: str) -> str:
        return self.labels.setdefault(name, f"Label_{len(self.labels) + 1}")

    async def send_message(self, to, subject, body, **kwargs) -> dict:
        self.sent.append({"to": to, "subject": subject, "body": body, **kwargs})
        return {"id": f"sent-{len(self.sent)}"}

    async def create_draft(self, to, subject, body, **kwargs) -> dict:
        self.drafts.append({"to": to, "subject": subject, "body": body, **kwargs})
        return {"id": f"draft-{len(self.drafts)}"}


class FakeLedger:
    def __init__(self, existing: set[tuple[str, str, str]] | None = None):
        self.rows: set[tuple[str, str, str]] = set(existing or set())
        self.created: list[dict] = []

    async def exists(self, user_id, thread_id, message_id) -> bool:
        return (user_id, thread_id, message_id) in self.rows

    async def create(self, user_id, thread_id, message_id, rule_id, reason) -> bool:
        key = (user_id, thread_id, message_id)
        if key in self.rows:
            return False
        self.rows.add(key)
        self.created.append({"message_id": message_id, "rule_id": rule_id, "reason": reason})
        return True


class FakeCursorStore:
    def __init__(self, value: str | None = None):
        self.value = value
        self.advances: list[str] = []

    async def get(self, user_id) -> str | None:
        return self.value

    async def advance(self, user_id, history_id) -> bool:
        self.advances.append(str(history_id))
        if self.value is not None and int(self.value) >= int(history_id):
            return False
        self.value = str(history_id)
        return True


class FakeClaims:
    def __init__(self):
        self.held: set[tuple[str, str, str]] = set()
        self.released: list[str] = []

    async def claim(self, user_id, thread_id, message_id) -> bool:
        key = (user_id, thread_id, message_id)
        if key in self.held:
            return False
        self.held.add(key)
        return True

    async def release(self, user_id, thread_id, message_id) -> None:
        self.held.discard((user_id, thread_id, message_id))
        self.released.append(message_id)


class FakeUnsubscribeBlocker:
    def __init__(self, blocked_senders: set[str] | None = None):
        self.blocked_senders = blocked_senders or set()
        self.checked: list[str] = []

    async def block_if_unsubscribed(self, gmail, user_id, message) -> bool:
        self.checked.append(message.id)
        return message.sender_email in self.blocked_senders


class FakeRuleEngine:
    def __init__(self, result: RuleRunResult | None = None, error: Exception | None = None):
        self.result = result or RuleRunResult(rule_id="rule-1", reason="matched")
        self.error = error
        self.calls: list[dict] = []

    async def run(self, gmail, message, rules, user, is_thread) -> RuleRunResult:
        self.calls.append({"message_id": message.id, "is_thread": is_thread})
        if self.error:
            raise self.error
        return self.result


class FakeColdEmailBlocker:
    def __init__(self, result: ColdEmailResult | None = None):
        self.result = result or ColdEmailResult(is_cold_email=False, reason="known sender")
        self.calls: list[dict] = []

    async def run(self, gmail, user, email, has_previous_email) -> ColdEmailResult:
        self.calls.append({"message_id": email.message_id, "has_previous_email": has_previous_email})
        return self.result


class FakeAccounts:
    def __init__(self, account: WebhookAccount | None = None):
        self.account = account
        self.lookups: list[str] = []

    async def find_by_email(self, email: str) -> WebhookAccount | None:
        self.lookups.append(email)
        return self.account


class FakeRedis:
    """Minimal stand-in for FastRedisClient claim helpers."""

    def __init__(self, available: bool = True):
        self.available = available
        self.store: dict[str, str] = {}

    async def set_if_absent(self, key: str, value: str, ttl_s: int) -> bool | None:
        if not self.available:
            return None
        if key in self.store:
            return False
        self.store[key] = value
        return True

    async def delete(self, key: str) -> bool:
        return self.store.pop(key, None) is not None


def make_account(
    rules: tuple[Rule, ...] | None = None,
    renews_at: datetime | None = None,
    ai_automation_access: bool = True,
    cold_email_blocker_access: bool = True,
    cold_email_blocker: ColdEmailSetting | None = ColdEmailSetting.LABEL,
    ai_api_key: str | None = None,
    access_token: str | None = "access-token",
    refresh_token: str | None = "refresh-token",
    email: str | None = "owner@example.com",
    premium: bool = True,
) -> WebhookAccount:
    if rules is None:
        rules = (
            Rule(
                id="rule-1",
                name="Newsletters",
                instructions="Archive newsletters",
                actions=(RuleAction(type="ARCHIVE"),),
            ),
        )
    return WebhookAccount(
        user_id="user-1",
        credential=AccountCredential(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=datetime.now(UTC) + timedelta(hours=1),
            provider_account_id="google-123",
        ),
        user=WebhookUser(
            id="user-1",
            email=email,
            ai_api_key=ai_api_key,
            cold_email_blocker=cold_email_blocker,
        ),
        premium=PremiumSnapshot(
            renews_at=renews_at or datetime.now(UTC) + timedelta(days=30),
            ai_automation_access=ai_automation_access,
            cold_email_blocker_access=cold_email_blocker_access,
        )
        if premium
        else None,
        rules=rules,
    )


@pytest.fixture
def fake_gmail():
    return FakeGmail()


@pytest.fixture
def fake_ledger():
    return FakeLedger()


@pytest.fixture
def fake_cursor():
    return FakeCursorStore()


@pytest.fixture
def fake_claims():
    return FakeClaims()


@pytest.fixture
def fake_rule_engine():
    return FakeRuleEngine()


@pytest.fixture
def fake_cold_email():
    return FakeColdEmailBlocker()


@pytest.fixture
def fake_unsubscribe():
    return FakeUnsubscribeBlocker()


@pytest.fixture
def fake_redis():
    return FakeRedis()
