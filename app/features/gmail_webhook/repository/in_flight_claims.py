"""
Short-lived Redis claims marking a message as being processed.

Two deliveries of the same notification can both pass the ledger check
before either writes its row; the claim lets only one of them continue.
When Redis is unreachable every claim succeeds and the ledger insert
remains the only guard.
"""

from app.config import settings
from app.infrastructure.observability.logging import get_logger
from app.services.redis_client import FastRedisClient, fast_redis

logger = get_logger(__name__)


class InFlightClaims:
    KEY_PREFIX = "gmail_webhook:in_flight"

    def __init__(self, redis_client: FastRedisClient | None = None, ttl_s: int | None = None):
        self._redis = redis_client or fast_redis
        self._ttl_s = ttl_s or settings.IN_FLIGHT_CLAIM_TTL_SECONDS

    def _key(self, user_id: str, thread_id: str, message_id: str) -> str:
        return f"{self.KEY_PREFIX}:{user_id}:{thread_id}:{message_id}"

    async def claim(self, user_id: str, thread_id: str, message_id: str) -> bool:
        created = await self._redis.set_if_absent(
            self._key(user_id, thread_id, message_id), "1", self._ttl_s
        )
        if created is None:
            logger.warning("Claim store unavailable, relying on ledger", message_id=message_id)
            return True
        return created

    async def release(self, user_id: str, thread_id: str, message_id: str) -> None:
        await self._redis.delete(self._key(user_id, thread_id, message_id))


# Singleton instance for application use
in_flight_claims = InFlightClaims()
