"""
Entitlement checks and fetch-window arithmetic for webhook processing.
"""

from datetime import UTC, datetime


def is_premium(renews_at: datetime | None, now: datetime | None = None) -> bool:
    """Premium while the renewal date lies in the future."""
    if renews_at is None:
        return False
    now = now or datetime.now(UTC)
    if renews_at.tzinfo is None:
        renews_at = renews_at.replace(tzinfo=UTC)
    return renews_at > now


def has_ai_access(ai_automation_access: bool, ai_api_key: str | None) -> bool:
    return bool(ai_automation_access or ai_api_key)


def has_cold_email_access(cold_email_blocker_access: bool, ai_api_key: str | None) -> bool:
    return bool(cold_email_blocker_access or ai_api_key)


def compute_start_history_id(
    cursor: str | int | None, notified_history_id: int, max_lookback: int
) -> int:
    """
    Lower bound for the history fetch: the stored cursor, but never more
    than max_lookback ids behind the notified history id.
    """
    try:
        last_synced = int(cursor or 0)
    except (TypeError, ValueError):
        last_synced = 0
    return max(last_synced, int(notified_history_id) - max_lookback)
