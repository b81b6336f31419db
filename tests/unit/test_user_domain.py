from datetime import UTC, datetime, timedelta

from app.models.domain.user_domain import AccountCredential


def _credential(expires_at):
    return AccountCredential(
        access_token="access-token",
        refresh_token="refresh-token",
        expires_at=expires_at,
        provider_account_id="google-123",
    )


def test_needs_refresh_within_buffer():
    assert _credential(datetime.now(UTC) + timedelta(minutes=2)).needs_refresh() is True
    assert _credential(datetime.now(UTC) + timedelta(hours=1)).needs_refresh() is False


def test_needs_refresh_treats_naive_expiry_as_utc():
    naive_expired = datetime.now(UTC).replace(tzinfo=None) - timedelta(minutes=1)
    naive_valid = datetime.now(UTC).replace(tzinfo=None) + timedelta(hours=1)

    assert _credential(naive_expired).needs_refresh() is True
    assert _credential(naive_valid).needs_refresh() is False


def test_no_expiry_never_refreshes():
    assert _credential(None).needs_refresh() is False
