from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ColdEmailInput:
    """The parts of an inbound message the classifier looks at."""

    from_header: str
    subject: str
    content: str
    message_id: str
    thread_id: str


@dataclass(frozen=True, slots=True)
class ColdEmailResult:
    is_cold_email: bool
    reason: str | None = None
    action_taken: str | None = None
