"""
Collaborator interfaces the message pipeline depends on.

Production implementations live in the repository/services subpackages
and in the automation and cold_email features; tests swap in fakes.
"""

from collections.abc import Sequence
from typing import Protocol

from app.features.automation.models import RuleRunResult
from app.features.cold_email.models import ColdEmailInput, ColdEmailResult
from app.models.domain.gmail_domain import GmailMessage
from app.models.domain.user_domain import Rule, WebhookUser
from app.services.gmail_account_client import GmailAccountClient


class DedupLedger(Protocol):
    async def exists(self, user_id: str, thread_id: str, message_id: str) -> bool: ...

    async def create(
        self,
        user_id: str,
        thread_id: str,
        message_id: str,
        rule_id: str | None,
        reason: str | None,
    ) -> bool: ...


class CursorStore(Protocol):
    async def get(self, user_id: str) -> str | None: ...

    async def advance(self, user_id: str, history_id: str) -> bool: ...


class MessageClaims(Protocol):
    async def claim(self, user_id: str, thread_id: str, message_id: str) -> bool: ...

    async def release(self, user_id: str, thread_id: str, message_id: str) -> None: ...


class UnsubscribeBlocker(Protocol):
    async def block_if_unsubscribed(
        self, gmail: GmailAccountClient, user_id: str, message: GmailMessage
    ) -> bool: ...


class RuleEngine(Protocol):
    async def run(
        self,
        gmail: GmailAccountClient,
        message: GmailMessage,
        rules: Sequence[Rule],
        user: WebhookUser,
        is_thread: bool,
    ) -> RuleRunResult: ...


class ColdEmailBlocker(Protocol):
    async def run(
        self,
        gmail: GmailAccountClient,
        user: WebhookUser,
        email: ColdEmailInput,
        has_previous_email: bool,
    ) -> ColdEmailResult: ...
