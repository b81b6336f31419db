"""
Domain subpackage for the Gmail webhook feature.
"""

from .models import (
    CandidateMessage,
    HistoryNotification,
    PipelineResult,
    PipelineStatus,
    ProcessingContext,
    WebhookOutcome,
)

__all__ = [
    "CandidateMessage",
    "HistoryNotification",
    "PipelineResult",
    "PipelineStatus",
    "ProcessingContext",
    "WebhookOutcome",
]
