"""
Turns raw history records into the ordered, de-duplicated list of inbound
messages the pipeline should look at.
"""

from collections.abc import Iterable

from app.models.domain.gmail_domain import (
    DRAFT_LABEL_ID,
    INBOX_LABEL_ID,
    SENT_LABEL_ID,
    GmailHistoryRecord,
    HistoryMessageSummary,
)

from ..domain.models import CandidateMessage

EXCLUDED_LABEL_IDS = frozenset({DRAFT_LABEL_ID, SENT_LABEL_ID})


def is_inbound_inbox_message(summary: HistoryMessageSummary) -> bool:
    labels = set(summary.label_ids)
    return INBOX_LABEL_ID in labels and not labels & EXCLUDED_LABEL_IDS


def normalize_history(records: Iterable[GmailHistoryRecord]) -> list[CandidateMessage]:
    """
    Flatten messagesAdded then labelsAdded of each record in order, keep
    inbox mail that is neither a draft nor sent, and drop repeats of a
    message id already seen anywhere in the batch.
    """
    candidates: list[CandidateMessage] = []
    seen: set[str] = set()

    for record in records:
        for summary in [*record.messages_added, *record.labels_added]:
            if not summary.message_id or not summary.thread_id:
                continue
            if not is_inbound_inbox_message(summary):
                continue
            if summary.message_id in seen:
                continue

            seen.add(summary.message_id)
            candidates.append(
                CandidateMessage(
                    message_id=summary.message_id,
                    thread_id=summary.thread_id,
                    history_id=record.id,
                )
            )

    return candidates
