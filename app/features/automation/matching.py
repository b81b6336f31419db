"""
Rule selection: static pattern rules first, then a model call over the
natural-language rules.
"""

from collections.abc import Sequence

from app.infrastructure.observability.logging import get_logger
from app.models.domain.gmail_domain import GmailMessage
from app.models.domain.user_domain import Rule, RuleType, WebhookUser
from app.services.openai_service import OpenAIService, resolve_ai_config
from app.utils.email_content import email_to_content

logger = get_logger(__name__)

RULE_CONTENT_MAX_LENGTH = 3000

SYSTEM_PROMPT = """You are an email automation assistant. You receive a numbered list of \
rules written by the user and one email. Pick the single rule that best applies to the email, \
or none if no rule clearly applies.

Respond with a JSON object only:
{"rule_number": <number of the chosen rule or null>, "reason": "<one short sentence>"}"""


def candidate_rules(rules: Sequence[Rule], is_thread: bool) -> list[Rule]:
    """Rules allowed to run; replies inside a conversation only see run_on_threads rules."""
    return [r for r in rules if r.enabled and (r.run_on_threads or not is_thread)]


def _contains(pattern: str | None, value: str) -> bool | None:
    if not pattern:
        return None
    return pattern.strip().lower() in (value or "").lower()


def match_static_rule(message: GmailMessage, rules: Sequence[Rule]) -> Rule | None:
    """
    First STATIC rule whose every non-empty pattern is a case-insensitive
    substring of the matching field. A rule with no patterns never matches.
    """
    body = message.text_plain or message.snippet
    for rule in rules:
        if rule.type != RuleType.STATIC:
            continue

        checks = [
            _contains(rule.from_pattern, message.from_header),
            _contains(rule.to_pattern, message.to_header),
            _contains(rule.subject_pattern, message.subject),
            _contains(rule.body_pattern, body),
        ]
        applied = [c for c in checks if c is not None]
        if applied and all(applied):
            return rule
    return None


def build_rule_prompt(message: GmailMessage, rules: Sequence[Rule], user: WebhookUser) -> str:
    rule_lines = "\n".join(
        f"{number}. {rule.instructions or rule.name}" for number, rule in enumerate(rules, start=1)
    )
    content = email_to_content(
        message.text_plain, message.text_html, message.snippet, RULE_CONTENT_MAX_LENGTH
    )

    about = f"About the user:\n{user.about}\n\n" if user.about else ""
    return (
        f"{about}"
        f"Rules:\n{rule_lines}\n\n"
        f"Email:\n"
        f"From: {message.from_header}\n"
        f"To: {message.to_header}\n"
        f"Subject: {message.subject}\n"
        f"Body:\n{content}"
    )


async def choose_rule_with_ai(
    ai: OpenAIService,
    message: GmailMessage,
    rules: Sequence[Rule],
    user: WebhookUser,
) -> tuple[Rule | None, str | None]:
    """Ask the model to pick among AI rules. Returns (rule or None, reason)."""
    ai_rules = [r for r in rules if r.type == RuleType.AI]
    if not ai_rules:
        return None, "No AI rules to evaluate"

    answer = await ai.complete_json(
        resolve_ai_config(user),
        SYSTEM_PROMPT,
        build_rule_prompt(message, ai_rules, user),
        operation="choose_rule",
    )

    reason = answer.get("reason")
    rule_number = answer.get("rule_number")
    if rule_number is None:
        return None, reason

    if isinstance(rule_number, bool):
        logger.warning("Model returned boolean rule number", rule_number=rule_number)
        return None, reason

    try:
        index = int(rule_number) - 1
    except (TypeError, ValueError):
        logger.warning("Model returned non-numeric rule number", rule_number=rule_number)
        return None, reason

    if not 0 <= index < len(ai_rules):
        logger.warning(
            "Model returned out-of-range rule number",
            rule_number=rule_number,
            rule_count=len(ai_rules),
        )
        return None, reason

    return ai_rules[index], reason
