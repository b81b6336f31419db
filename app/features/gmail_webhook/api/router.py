"""
Gmail push notification route.

Google Cloud Pub/Sub delivers mailbox change notifications here. Every
accepted delivery is acknowledged with 200 so Pub/Sub does not redeliver;
processing failures are captured by the service, not surfaced.
"""

import hmac
import json

from fastapi import APIRouter, HTTPException, Query, Request, status
from pydantic import ValidationError

from app.config import settings
from app.infrastructure.observability.logging import get_logger
from app.models.api.webhook_request import PubSubPushRequest
from app.models.api.webhook_response import WebhookAckResponse

from ..domain.models import HistoryNotification
from ..services.webhook_service import gmail_webhook_service

logger = get_logger(__name__)

router = APIRouter(prefix="/api/google", tags=["gmail-webhook"])


def _verify_token(token: str | None) -> None:
    expected = settings.GOOGLE_PUBSUB_VERIFICATION_TOKEN
    if not expected:
        return
    if not token or not hmac.compare_digest(token, expected):
        logger.warning("Invalid Pub/Sub verification token")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid verification token")


@router.post("/webhook", response_model=WebhookAckResponse)
async def google_webhook(request: Request, token: str | None = Query(default=None)):
    """Receive a Gmail watch notification and process the mailbox history."""
    _verify_token(token)

    try:
        envelope = PubSubPushRequest.model_validate(json.loads(await request.body()))
        payload = envelope.decode_payload()
    except (ValueError, ValidationError) as e:
        # Redelivering a malformed envelope cannot succeed
        logger.error("Undecodable Pub/Sub envelope", error=str(e))
        return WebhookAckResponse(ok=True)

    logger.info(
        "Processing webhook",
        email=payload.email_address,
        history_id=payload.history_id,
        pubsub_message_id=envelope.message.message_id,
    )

    await gmail_webhook_service.handle(
        HistoryNotification(email_address=payload.email_address, history_id=payload.history_id)
    )
    return WebhookAckResponse(ok=True)
