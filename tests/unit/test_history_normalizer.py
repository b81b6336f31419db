"""
Tests for turning history records into candidate messages.
"""

from app.features.gmail_webhook.domain.models import CandidateMessage
from app.features.gmail_webhook.pipeline.normalizer import normalize_history
from tests.conftest import history_record


def test_keeps_inbox_messages_in_order():
    records = [
        history_record("101", added=[("m1", "t1", ["INBOX", "UNREAD"])]),
        history_record("102", added=[("m2", "t2", ["INBOX"])]),
    ]

    assert normalize_history(records) == [
        CandidateMessage(message_id="m1", thread_id="t1", history_id="101"),
        CandidateMessage(message_id="m2", thread_id="t2", history_id="102"),
    ]


def test_drops_non_inbox_sent_and_draft_messages():
    records = [
        history_record(
            "101",
            added=[
                ("archived", "t1", ["CATEGORY_UPDATES"]),
                ("sent", "t2", ["INBOX", "SENT"]),
                ("draft", "t3", ["INBOX", "DRAFT"]),
                ("kept", "t4", ["INBOX"]),
            ],
        )
    ]

    assert [c.message_id for c in normalize_history(records)] == ["kept"]


def test_messages_added_come_before_labels_added_within_a_record():
    records = [
        history_record(
            "101",
            added=[("added", "t1", ["INBOX"])],
            labelled=[("relabelled", "t2", ["INBOX"])],
        )
    ]

    assert [c.message_id for c in normalize_history(records)] == ["added", "relabelled"]


def test_deduplicates_across_the_whole_batch():
    records = [
        history_record("101", added=[("m1", "t1", ["INBOX"])]),
        history_record("102", labelled=[("m1", "t1", ["INBOX", "IMPORTANT"])]),
        history_record("103", added=[("m1", "t1", ["INBOX"]), ("m2", "t1", ["INBOX"])]),
    ]

    candidates = normalize_history(records)

    assert [c.message_id for c in candidates] == ["m1", "m2"]
    assert candidates[0].history_id == "101"


def test_skips_entries_without_ids():
    records = [
        history_record(
            "101",
            added=[(None, "t1", ["INBOX"]), ("m2", None, ["INBOX"]), ("m3", "t3", ["INBOX"])],
        )
    ]

    assert [c.message_id for c in normalize_history(records)] == ["m3"]


def test_empty_history():
    assert normalize_history([]) == []
