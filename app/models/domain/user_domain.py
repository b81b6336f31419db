"""
User, account and automation-rule domain models.
Snapshots loaded once per webhook notification; never mutated mid-pipeline.
"""

from datetime import UTC, datetime, timedelta
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ColdEmailSetting(str, Enum):
    DISABLED = "DISABLED"
    LIST = "LIST"
    LABEL = "LABEL"
    ARCHIVE_AND_LABEL = "ARCHIVE_AND_LABEL"


class RuleType(str, Enum):
    AI = "AI"
    STATIC = "STATIC"


class ActionType(str, Enum):
    ARCHIVE = "ARCHIVE"
    LABEL = "LABEL"
    REPLY = "REPLY"
    FORWARD = "FORWARD"
    DRAFT_EMAIL = "DRAFT_EMAIL"
    MARK_SPAM = "MARK_SPAM"


class RuleAction(BaseModel):
    """One step of a rule's ordered action list."""

    model_config = ConfigDict(frozen=True)

    type: ActionType
    label: str | None = None
    subject: str | None = None
    content: str | None = None
    to: str | None = None
    cc: str | None = None
    bcc: str | None = None


class Rule(BaseModel):
    """User-owned automation rule. Only enabled rules are ever loaded."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    enabled: bool = True
    type: RuleType = RuleType.AI
    instructions: str | None = None
    from_pattern: str | None = None
    to_pattern: str | None = None
    subject_pattern: str | None = None
    body_pattern: str | None = None
    run_on_threads: bool = False
    actions: tuple[RuleAction, ...] = ()


class PremiumSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    renews_at: datetime | None = None
    ai_automation_access: bool = False
    cold_email_blocker_access: bool = False


class WebhookUser(BaseModel):
    """The slice of the user row the webhook pipeline needs."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str | None
    about: str = ""
    ai_provider: str | None = None
    ai_model: str | None = None
    ai_api_key: str | None = Field(default=None, repr=False)
    cold_email_blocker: ColdEmailSetting | None = None
    cold_email_prompt: str | None = None


class AccountCredential(BaseModel):
    """Decrypted Google OAuth tokens for one connected mailbox."""

    access_token: str | None = Field(default=None, repr=False)
    refresh_token: str | None = Field(default=None, repr=False)
    expires_at: datetime | None = None
    provider_account_id: str

    def needs_refresh(self, buffer_minutes: int = 5) -> bool:
        """Check if token should be refreshed before use."""
        if not self.expires_at:
            return False
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=UTC)
        buffer_time = datetime.now(UTC) + timedelta(minutes=buffer_minutes)
        return buffer_time >= expires_at

    def is_usable(self) -> bool:
        return bool(self.access_token and self.refresh_token)


class WebhookAccount(BaseModel):
    """Account + user + premium snapshot resolved from a mailbox address."""

    user_id: str
    credential: AccountCredential
    user: WebhookUser
    premium: PremiumSnapshot | None = None
    rules: tuple[Rule, ...] = ()
