"""
Domain models for the Gmail webhook feature.

Plain dataclasses passed between the orchestrator, the normalizer and the
message pipeline. ProcessingContext is resolved once per notification and
never mutated afterwards.
"""

from dataclasses import dataclass, field
from enum import Enum

from app.models.domain.user_domain import ColdEmailSetting, Rule, WebhookUser


@dataclass(frozen=True, slots=True)
class HistoryNotification:
    """Decoded Pub/Sub payload: which mailbox changed and its new history id."""

    email_address: str
    history_id: int


@dataclass(frozen=True, slots=True)
class CandidateMessage:
    """An inbound message surfaced by the change feed, eligible for the pipeline."""

    message_id: str
    thread_id: str
    history_id: str | None = None


@dataclass(frozen=True, slots=True)
class ProcessingContext:
    user_id: str
    user_email: str
    user: WebhookUser
    rules: tuple[Rule, ...]
    has_automation_rules: bool
    has_ai_access: bool
    has_cold_email_access: bool

    @property
    def cold_email_setting(self) -> ColdEmailSetting | None:
        return self.user.cold_email_blocker

    @property
    def should_block_cold_emails(self) -> bool:
        return self.cold_email_setting not in (None, ColdEmailSetting.DISABLED)


class PipelineStatus(str, Enum):
    NOT_FOUND = "not_found"
    BLOCKED = "blocked"
    ALREADY_PROCESSED = "already_processed"
    IN_FLIGHT = "in_flight"
    COMPLETED = "completed"


@dataclass(slots=True)
class PipelineResult:
    message_id: str
    status: PipelineStatus
    rule_id: str | None = None
    rule_reason: str | None = None
    is_cold_email: bool = False
    steps: list[str] = field(default_factory=list)


class WebhookOutcome(str, Enum):
    ACCOUNT_NOT_FOUND = "account_not_found"
    NOT_PREMIUM = "not_premium"
    NO_AI_ACCESS = "no_ai_access"
    NOTHING_CONFIGURED = "nothing_configured"
    MISSING_CREDENTIALS = "missing_credentials"
    NO_HISTORY = "no_history"
    HISTORY_EXPIRED = "history_expired"
    PROCESSED = "processed"
    FAILED = "failed"
