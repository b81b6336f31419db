"""
Dedup ledger: one executed_rules row per (user, thread, message).
"""

from app.db.helpers import execute_query, fetch_one, with_db_retry
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

STATUS_APPLIED = "APPLIED"
STATUS_SKIPPED = "SKIPPED"


class ExecutedRuleRepository:
    @classmethod
    @with_db_retry(max_retries=3, base_delay=0.1)
    async def exists(cls, user_id: str, thread_id: str, message_id: str) -> bool:
        row = await fetch_one(
            """
            SELECT 1 AS found
            FROM executed_rules
            WHERE user_id = %s AND thread_id = %s AND message_id = %s
            LIMIT 1
            """,
            (user_id, thread_id, message_id),
        )
        return row is not None

    @classmethod
    @with_db_retry(max_retries=3, base_delay=0.1)
    async def create(
        cls,
        user_id: str,
        thread_id: str,
        message_id: str,
        rule_id: str | None,
        reason: str | None,
    ) -> bool:
        """
        Record that the message was handled.

        Returns:
            False when a concurrent run already wrote the row
        """
        affected = await execute_query(
            """
            INSERT INTO executed_rules (
                user_id, thread_id, message_id, rule_id, status, reason, created_at
            )
            VALUES (%s, %s, %s, %s, %s, %s, NOW())
            ON CONFLICT (user_id, thread_id, message_id) DO NOTHING
            """,
            (
                user_id,
                thread_id,
                message_id,
                rule_id,
                STATUS_APPLIED if rule_id else STATUS_SKIPPED,
                reason,
            ),
        )

        if not affected:
            logger.info(
                "Executed rule already recorded",
                user_id=user_id,
                thread_id=thread_id,
                message_id=message_id,
            )
        return affected > 0
