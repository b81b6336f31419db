from app.db.helpers import fetch_one, with_db_retry

NEWSLETTER_STATUS_UNSUBSCRIBED = "UNSUBSCRIBED"


class NewsletterRepository:
    @classmethod
    @with_db_retry(max_retries=3, base_delay=0.1)
    async def is_unsubscribed(cls, user_id: str, sender_email: str) -> bool:
        row = await fetch_one(
            """
            SELECT status
            FROM newsletters
            WHERE user_id = %s AND lower(email) = lower(%s)
            LIMIT 1
            """,
            (user_id, sender_email),
        )
        return bool(row) and row["status"] == NEWSLETTER_STATUS_UNSUBSCRIBED
