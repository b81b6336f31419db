from datetime import UTC, datetime

from app.models.domain.gmail_domain import (
    GmailHistoryRecord,
    GmailMessage,
    GmailThread,
    extract_domain,
    extract_email_address,
    parse_email_address,
)
from tests.conftest import make_gmail_message


def test_parse_email_address():
    assert parse_email_address('"Jane Doe" <Jane@Acme.com>') == {
        "name": "Jane Doe",
        "email": "Jane@Acme.com",
    }
    assert parse_email_address("bob@example.org") == {"name": "", "email": "bob@example.org"}
    assert parse_email_address("") == {"name": "", "email": ""}


def test_extract_email_and_domain():
    assert extract_email_address("Jane <Jane@Acme.COM>") == "jane@acme.com"
    assert extract_domain("Jane <jane@mail.acme.com>") == "mail.acme.com"
    assert extract_domain("no address here") == ""


def test_message_parses_headers_and_body():
    message = GmailMessage(make_gmail_message("m1", "t1", subject="Quarterly", body="Numbers inside"))

    assert message.id == "m1"
    assert message.thread_id == "t1"
    assert message.subject == "Quarterly"
    assert message.sender_email == "jane@acme.com"
    assert message.text_plain == "Numbers inside"
    assert message.message_id_header == "<m1@mail.acme.com>"
    assert message.get_received_datetime() == datetime(2026, 10, 5, 10, 0, tzinfo=UTC)


def test_message_falls_back_to_internal_date():
    message = GmailMessage({"id": "m1", "internalDate": "1790000000000", "payload": {}})

    assert message.get_received_datetime() == datetime.fromtimestamp(1790000000, tz=UTC)


def test_thread_conversation_flag():
    single = GmailThread({"id": "t1", "messages": [{"id": "m1"}]})
    multi = GmailThread({"id": "t2", "messages": [{"id": "m1"}, {"id": "m2"}]})

    assert single.is_conversation() is False
    assert multi.is_conversation() is True


def test_history_record_from_api():
    record = GmailHistoryRecord.from_api(
        {
            "id": 555,
            "messagesAdded": [{"message": {"id": "m1", "threadId": "t1", "labelIds": ["INBOX"]}}],
            "labelsAdded": [{"message": {"id": "m2", "threadId": "t2"}, "labelIds": ["STARRED"]}],
        }
    )

    assert record.id == "555"
    assert record.messages_added[0].label_ids == ["INBOX"]
    assert record.labels_added[0].message_id == "m2"
    assert record.labels_added[0].label_ids == []
