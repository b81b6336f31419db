from .webhook_service import (
    GmailWebhookService,
    WebhookConfigurationError,
    gmail_webhook_service,
)

__all__ = ["GmailWebhookService", "WebhookConfigurationError", "gmail_webhook_service"]
