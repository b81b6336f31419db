# app/models/api/webhook_request.py
"""
Google Pub/Sub push request models.
Used by the Gmail webhook route to decode push envelopes.
"""

import base64
import json

from pydantic import BaseModel, ConfigDict, Field


class PubSubMessage(BaseModel):
    """Message part of a Pub/Sub push envelope."""

    model_config = ConfigDict(populate_by_name=True)

    data: str = Field(..., description="Base64-encoded JSON payload")
    message_id: str | None = Field(default=None, alias="messageId")
    publish_time: str | None = Field(default=None, alias="publishTime")
    attributes: dict[str, str] | None = None


class GmailPushPayload(BaseModel):
    """Decoded Gmail watch notification."""

    model_config = ConfigDict(populate_by_name=True)

    email_address: str = Field(..., alias="emailAddress", min_length=3)
    history_id: int = Field(..., alias="historyId", ge=1)


class PubSubPushRequest(BaseModel):
    """Pub/Sub push envelope: {"message": {...}, "subscription": "..."}."""

    message: PubSubMessage
    subscription: str | None = None

    def decode_payload(self) -> GmailPushPayload:
        """
        Decode the base64 JSON payload.

        Raises:
            ValueError: payload is not base64, not JSON or misses fields
        """
        data = self.message.data
        raw = base64.b64decode(data + "=" * (-len(data) % 4), altchars=b"-_")
        return GmailPushPayload.model_validate(json.loads(raw))
