"""
Out-of-band error capture.

Webhook handlers never surface failures to the push sender, so anything
that goes wrong is recorded here with enough context to investigate.
"""

from typing import Any

from app.infrastructure.observability.logging import get_logger

logger = get_logger("errors")


def capture_exception(
    error: BaseException,
    extra: dict[str, Any] | None = None,
    user_email: str | None = None,
) -> None:
    """
    Record an exception with structured context.

    Args:
        error: The exception that was caught
        extra: Additional context (message id, history id, ...)
        user_email: Mailbox the failure belongs to
    """
    log_data: dict[str, Any] = {
        "event_type": "exception_captured",
        "error": str(error),
        "error_type": type(error).__name__,
        "recoverable": getattr(error, "recoverable", None),
    }

    if user_email:
        log_data["user_email"] = user_email

    if extra:
        log_data.update(extra)

    logger.error("Exception captured", exc_info=error, **log_data)
