from dataclasses import dataclass, field


@dataclass(slots=True)
class RuleRunResult:
    """What the rule engine decided for one message."""

    rule_id: str | None
    reason: str | None = None
    actions_applied: list[str] = field(default_factory=list)

    @property
    def matched(self) -> bool:
        return self.rule_id is not None
