"""
History replay job.

Reprocesses a mailbox from an explicit start history id, bypassing the
stored cursor. Messages already in the dedup ledger are skipped, so a
replay only acts on messages that were missed.

Usage:
    inbox-autopilot-worker history_replay <email> <start_history_id> [<history_id>]
"""

from app.db.pool import db_pool
from app.features.gmail_webhook.domain.models import HistoryNotification, WebhookOutcome
from app.features.gmail_webhook.services.webhook_service import (
    GmailWebhookService,
    gmail_webhook_service,
)
from app.infrastructure.observability.logging import (
    bind_webhook_context,
    clear_webhook_context,
    get_logger,
)
from app.services.redis_client import fast_redis

logger = get_logger(__name__)


def parse_replay_args(args: list[str]) -> tuple[str, int, int]:
    """
    Returns:
        (email, start_history_id, history_id); history_id defaults to start

    Raises:
        ValueError: missing or non-numeric arguments
    """
    if len(args) < 2:
        raise ValueError("history_replay requires <email> <start_history_id> [<history_id>]")

    email = args[0].strip()
    start_history_id = int(args[1])
    history_id = int(args[2]) if len(args) > 2 else start_history_id

    if not email or start_history_id < 1 or history_id < start_history_id:
        raise ValueError("history_replay needs an email and 1 <= start_history_id <= history_id")

    return email, start_history_id, history_id


async def replay_history(
    email: str,
    start_history_id: int,
    history_id: int,
    service: GmailWebhookService | None = None,
) -> WebhookOutcome:
    service = service or gmail_webhook_service
    bind_webhook_context(user_email=email, history_id=history_id)
    try:
        outcome = await service.process_history_for_user(
            HistoryNotification(email_address=email, history_id=history_id),
            start_history_id=start_history_id,
        )
    finally:
        clear_webhook_context()

    logger.info("History replay finished", start_history_id=start_history_id, outcome=outcome.value)
    return outcome


async def run_history_replay(args: list[str]) -> None:
    """Worker entry point: open the pool and Redis, replay, close."""
    email, start_history_id, history_id = parse_replay_args(args)

    await db_pool.initialize()
    try:
        try:
            await fast_redis.initialize()
        except RuntimeError as e:
            logger.warning("Redis unavailable, replaying without claims", error=str(e))

        await replay_history(email, start_history_id, history_id)
    finally:
        await fast_redis.close()
        await db_pool.close()
