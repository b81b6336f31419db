"""
Gmail webhook feature package.

Everything that turns a Pub/Sub mailbox notification into per-message
automation lives here: domain models, the cursor/ledger repositories, the
history normalizer and message pipeline, the orchestrating service and
the HTTP route.
"""

from .api.router import router as gmail_webhook_router  # noqa: F401
from .domain.models import HistoryNotification, WebhookOutcome  # noqa: F401
from .services.webhook_service import GmailWebhookService, gmail_webhook_service  # noqa: F401
