"""
Executes a rule's ordered action list against one message.
"""

from app.config import settings
from app.infrastructure.observability.logging import get_logger
from app.models.domain.gmail_domain import INBOX_LABEL_ID, SPAM_LABEL_ID, GmailMessage
from app.models.domain.user_domain import ActionType, RuleAction
from app.services.gmail_account_client import GmailAccountClient

logger = get_logger(__name__)


def _split_addresses(value: str | None) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def _prefixed_subject(prefix: str, subject: str) -> str:
    if subject.lower().startswith(prefix.lower()):
        return subject
    return f"{prefix} {subject}".strip()


async def _archive(gmail: GmailAccountClient, message: GmailMessage, action: RuleAction) -> None:
    await gmail.modify_thread(message.thread_id, remove_label_ids=[INBOX_LABEL_ID])


async def _label(gmail: GmailAccountClient, message: GmailMessage, action: RuleAction) -> None:
    if not action.label:
        logger.warning("LABEL action without label name skipped", message_id=message.id)
        return
    label_id = await gmail.get_or_create_label(action.label)
    await gmail.modify_message(message.id, add_label_ids=[label_id])


async def _reply(gmail: GmailAccountClient, message: GmailMessage, action: RuleAction) -> None:
    await gmail.send_message(
        to=_split_addresses(action.to) or [message.sender_email],
        subject=action.subject or _prefixed_subject("Re:", message.subject),
        body=action.content or "",
        cc=_split_addresses(action.cc),
        bcc=_split_addresses(action.bcc),
        thread_id=message.thread_id,
        in_reply_to=message.message_id_header or None,
        references=message.references or None,
    )


async def _forward(gmail: GmailAccountClient, message: GmailMessage, action: RuleAction) -> None:
    recipients = _split_addresses(action.to)
    if not recipients:
        logger.warning("FORWARD action without recipient skipped", message_id=message.id)
        return

    original = message.text_plain or message.snippet
    body = (
        f"{action.content or ''}\n\n"
        f"---------- Forwarded message ---------\n"
        f"From: {message.from_header}\n"
        f"Date: {message.date}\n"
        f"Subject: {message.subject}\n"
        f"To: {message.to_header}\n\n"
        f"{original}"
    ).lstrip()

    await gmail.send_message(
        to=recipients,
        subject=action.subject or _prefixed_subject("Fwd:", message.subject),
        body=body,
        cc=_split_addresses(action.cc),
        bcc=_split_addresses(action.bcc),
    )


async def _draft(gmail: GmailAccountClient, message: GmailMessage, action: RuleAction) -> None:
    await gmail.create_draft(
        to=_split_addresses(action.to) or [message.sender_email],
        subject=action.subject or _prefixed_subject("Re:", message.subject),
        body=action.content or "",
        thread_id=message.thread_id,
        in_reply_to=message.message_id_header or None,
        references=message.references or None,
    )


async def _mark_spam(gmail: GmailAccountClient, message: GmailMessage, action: RuleAction) -> None:
    await gmail.modify_thread(
        message.thread_id, add_label_ids=[SPAM_LABEL_ID], remove_label_ids=[INBOX_LABEL_ID]
    )


ACTION_HANDLERS = {
    ActionType.ARCHIVE: _archive,
    ActionType.LABEL: _label,
    ActionType.REPLY: _reply,
    ActionType.FORWARD: _forward,
    ActionType.DRAFT_EMAIL: _draft,
    ActionType.MARK_SPAM: _mark_spam,
}


async def execute_actions(
    gmail: GmailAccountClient,
    message: GmailMessage,
    actions: tuple[RuleAction, ...],
    rule_name: str,
) -> list[str]:
    """
    Run actions in order; the first failure propagates and stops the rest.
    Every message touched by a rule also gets the rule's automation label.

    Returns:
        Names of the actions that ran
    """
    applied: list[str] = []
    for action in actions:
        handler = ACTION_HANDLERS[action.type]
        await handler(gmail, message, action)
        applied.append(action.type.value)

    label_id = await gmail.get_or_create_label(settings.automation_label(rule_name))
    await gmail.modify_message(message.id, add_label_ids=[label_id])

    logger.info(
        "Rule actions executed",
        message_id=message.id,
        rule_name=rule_name,
        actions=applied,
    )
    return applied
