from app.db.helpers import execute_query, with_db_retry
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

COLD_EMAIL_STATUS_LABELED = "AI_LABELED_COLD"


class ColdEmailRepository:
    @staticmethod
    @with_db_retry(max_retries=3, base_delay=0.1)
    async def upsert_cold_email(
        user_id: str,
        from_email: str,
        message_id: str,
        thread_id: str,
        reason: str | None,
    ) -> None:
        """One row per (user, sender); a repeat sender refreshes the latest message."""
        await execute_query(
            """
            INSERT INTO cold_emails (
                user_id, from_email, message_id, thread_id, status, reason, created_at, updated_at
            )
            VALUES (%s, %s, %s, %s, %s, %s, NOW(), NOW())
            ON CONFLICT (user_id, from_email) DO UPDATE SET
                message_id = EXCLUDED.message_id,
                thread_id = EXCLUDED.thread_id,
                status = EXCLUDED.status,
                reason = EXCLUDED.reason,
                updated_at = NOW()
            """,
            (user_id, from_email, message_id, thread_id, COLD_EMAIL_STATUS_LABELED, reason),
        )
        logger.info("Cold email recorded", user_id=user_id, from_email=from_email)
