"""
Automation rules feature package.

Chooses at most one of a user's enabled rules for an inbound message and
runs its ordered action list against the mailbox.
"""

from .models import RuleRunResult
from .rule_engine import AIRuleEngine, ai_rule_engine

__all__ = ["AIRuleEngine", "RuleRunResult", "ai_rule_engine"]
