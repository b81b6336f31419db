"""
Cold email feature package.
"""

from .blocker import AIColdEmailBlocker, ai_cold_email_blocker
from .models import ColdEmailInput, ColdEmailResult

__all__ = ["AIColdEmailBlocker", "ColdEmailInput", "ColdEmailResult", "ai_cold_email_blocker"]
