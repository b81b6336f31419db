"""
Tests for the per-mailbox Gmail client on top of a mocked GoogleGmailService.
"""

from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from app.models.domain.gmail_domain import GmailLabel
from app.services import gmail_account_client as client_module
from app.services.gmail_account_client import GmailAccountClient, get_gmail_client_with_refresh
from app.services.google_gmail_service import GoogleGmailError
from tests.conftest import make_account


@pytest.fixture
def service():
    return AsyncMock()


@pytest.mark.asyncio
async def test_list_history_filters_inbox_and_history_types(service):
    client = GmailAccountClient("token", "owner@example.com", service=service)

    await client.list_history("500")

    service.list_history.assert_awaited_once_with(
        "token",
        "500",
        label_id="INBOX",
        history_types=["messageAdded", "labelAdded"],
        max_results=500,
    )


@pytest.mark.asyncio
async def test_previous_emails_from_domain_excludes_current_thread(service):
    client = GmailAccountClient("token", "owner@example.com", service=service)
    before = datetime(2026, 10, 5, 10, 0, tzinfo=UTC)

    service.list_message_ids.return_value = [{"id": "m1", "threadId": "t1"}]
    assert await client.has_previous_emails_from_domain("Sam <sam@acme.com>", before, "t1") is False

    service.list_message_ids.return_value = [
        {"id": "m1", "threadId": "t1"},
        {"id": "m0", "threadId": "t0"},
    ]
    assert await client.has_previous_emails_from_domain("Sam <sam@acme.com>", before, "t1") is True

    query = service.list_message_ids.call_args.args[1]
    assert query == f"from:acme.com before:{int(before.timestamp())}"
    assert service.list_message_ids.call_args.kwargs["max_results"] == 2


@pytest.mark.asyncio
async def test_previous_emails_without_domain(service):
    client = GmailAccountClient("token", "owner@example.com", service=service)

    assert await client.has_previous_emails_from_domain("undisclosed", None, "t1") is False
    service.list_message_ids.assert_not_called()


@pytest.mark.asyncio
async def test_get_or_create_label_caches_and_creates(service):
    service.list_labels.return_value = [GmailLabel({"id": "Label_1", "name": "Receipts"})]
    service.create_label.return_value = GmailLabel({"id": "Label_2", "name": "Travel"})
    client = GmailAccountClient("token", "owner@example.com", service=service)

    assert await client.get_or_create_label("receipts") == "Label_1"
    assert await client.get_or_create_label("Travel") == "Label_2"
    assert await client.get_or_create_label("Travel") == "Label_2"

    service.list_labels.assert_awaited_once()
    service.create_label.assert_awaited_once_with("token", "Travel")


@pytest.mark.asyncio
async def test_get_or_create_label_handles_concurrent_creation(service):
    service.list_labels.side_effect = [
        [],
        [GmailLabel({"id": "Label_9", "name": "Travel"})],
    ]
    service.create_label.side_effect = GoogleGmailError("Label name exists", status_code=409)
    client = GmailAccountClient("token", "owner@example.com", service=service)

    assert await client.get_or_create_label("Travel") == "Label_9"


@pytest.mark.asyncio
async def test_expired_token_is_refreshed_and_saved(monkeypatch):
    account = make_account()
    account = account.model_copy(
        update={
            "credential": account.credential.model_copy(
                update={"expires_at": datetime.now(UTC) - timedelta(minutes=1)}
            )
        }
    )
    token = SimpleNamespace(
        access_token="fresh-token",
        refresh_token="refresh-token",
        expires_at=datetime.now(UTC) + timedelta(hours=1),
    )

    refresh = AsyncMock(return_value=token)
    save = AsyncMock(return_value=True)
    monkeypatch.setattr(client_module.google_oauth_service, "refresh_access_token", refresh)
    monkeypatch.setattr(client_module.AccountRepository, "save_refreshed_tokens", save)

    client = await get_gmail_client_with_refresh(account)

    refresh.assert_awaited_once_with("refresh-token")
    save.assert_awaited_once_with(
        "user-1", "google-123", "fresh-token", token.expires_at, refresh_token=None
    )
    assert client._access_token == "fresh-token"


@pytest.mark.asyncio
async def test_valid_token_is_used_as_is(monkeypatch):
    refresh = AsyncMock()
    monkeypatch.setattr(client_module.google_oauth_service, "refresh_access_token", refresh)

    client = await get_gmail_client_with_refresh(make_account())

    refresh.assert_not_called()
    assert client._access_token == "access-token"
    assert client.email == "owner@example.com"
