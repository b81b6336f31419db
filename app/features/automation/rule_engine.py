"""
AI rule engine: picks at most one rule for a message and runs its actions.
"""

from collections.abc import Sequence

from app.infrastructure.observability.logging import get_logger
from app.models.domain.gmail_domain import GmailMessage
from app.models.domain.user_domain import Rule, WebhookUser
from app.services.gmail_account_client import GmailAccountClient
from app.services.openai_service import OpenAIService, openai_service

from .actions import execute_actions
from .matching import candidate_rules, choose_rule_with_ai, match_static_rule
from .models import RuleRunResult

logger = get_logger(__name__)


class AIRuleEngine:
    def __init__(self, ai: OpenAIService | None = None):
        self._ai = ai or openai_service

    async def run(
        self,
        gmail: GmailAccountClient,
        message: GmailMessage,
        rules: Sequence[Rule],
        user: WebhookUser,
        is_thread: bool,
    ) -> RuleRunResult:
        """
        Choose a rule (static patterns win over the model) and execute it.

        Raises:
            OpenAIServiceError: model call failed
            GoogleGmailError: an action failed
        """
        candidates = candidate_rules(rules, is_thread)
        if not candidates:
            logger.debug("No candidate rules", message_id=message.id, is_thread=is_thread)
            return RuleRunResult(rule_id=None, reason="No rules apply to this message")

        rule = match_static_rule(message, candidates)
        reason = "Matched static conditions" if rule else None

        if rule is None:
            rule, reason = await choose_rule_with_ai(self._ai, message, candidates, user)

        if rule is None:
            logger.info("No rule matched", message_id=message.id, reason=reason)
            return RuleRunResult(rule_id=None, reason=reason)

        logger.info("Rule matched", message_id=message.id, rule_id=rule.id, rule_name=rule.name)
        applied = await execute_actions(gmail, message, rule.actions, rule.name)
        return RuleRunResult(rule_id=rule.id, reason=reason, actions_applied=applied)


# Singleton instance for application use
ai_rule_engine = AIRuleEngine()
