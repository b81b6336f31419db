"""
Per-user history cursor (users.last_synced_history_id).
"""

from app.db.helpers import execute_query, fetch_val, with_db_retry
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class CursorRepository:
    """Cursor reads and forward-only writes."""

    @classmethod
    @with_db_retry(max_retries=3, base_delay=0.1)
    async def get(cls, user_id: str) -> str | None:
        return await fetch_val(
            "SELECT last_synced_history_id FROM users WHERE id = %s",
            (user_id,),
        )

    @classmethod
    @with_db_retry(max_retries=3, base_delay=0.1)
    async def advance(cls, user_id: str, history_id: str) -> bool:
        """
        Move the cursor to history_id unless it already points further.

        Returns:
            True if the stored value changed
        """
        affected = await execute_query(
            """
            UPDATE users
            SET last_synced_history_id = %s,
                updated_at = NOW()
            WHERE id = %s
              AND (
                last_synced_history_id IS NULL
                OR last_synced_history_id !~ '^[0-9]+$'
                OR last_synced_history_id::numeric < %s::numeric
              )
            """,
            (str(history_id), user_id, str(history_id)),
        )

        if affected:
            logger.info("History cursor advanced", user_id=user_id, history_id=str(history_id))
        else:
            logger.debug("History cursor already ahead", user_id=user_id, history_id=str(history_id))
        return affected > 0
