from .cursor_repository import CursorRepository
from .executed_rule_repository import ExecutedRuleRepository
from .in_flight_claims import InFlightClaims, in_flight_claims
from .newsletter_repository import NewsletterRepository

__all__ = [
    "CursorRepository",
    "ExecutedRuleRepository",
    "InFlightClaims",
    "NewsletterRepository",
    "in_flight_claims",
]
