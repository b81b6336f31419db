"""
Webhook API response models.
"""

from pydantic import BaseModel, Field


class WebhookAckResponse(BaseModel):
    """Acknowledgement returned to Pub/Sub; any 2xx stops redelivery."""

    ok: bool = Field(default=True, description="Notification accepted")
