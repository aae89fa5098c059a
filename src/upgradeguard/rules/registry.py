"""Process-wide rule registry.

Rule packages register their rule instances on import, so adding a rule
never requires touching the analyzers.
"""

from __future__ import annotations

from typing import Optional

from upgradeguard.models.rules import Rule, RuleCategory
from upgradeguard.rules.base import AnalysisRule


class RuleRegistry:
    """Registered rules, in registration order."""

    def __init__(self) -> None:
        self._rules: dict[str, AnalysisRule] = {}

    def register(self, rule: AnalysisRule) -> AnalysisRule:
        """Register a rule instance.

        Raises:
            ValueError: If another rule already uses the same ID
        """
        existing = self._rules.get(rule.rule_id)
        if existing is not None and existing is not rule:
            raise ValueError(f"Duplicate rule ID: {rule.rule_id}")
        self._rules[rule.rule_id] = rule
        return rule

    def get_rules(self, category: RuleCategory) -> list[AnalysisRule]:
        return [r for r in self._rules.values() if r.rule.category == category]

    def get_rule_by_id(self, rule_id: str) -> Optional[AnalysisRule]:
        return self._rules.get(rule_id)

    def list_all_rules(self) -> dict[str, Rule]:
        return {rule_id: r.rule for rule_id, r in self._rules.items()}

    def __len__(self) -> int:
        return len(self._rules)


registry = RuleRegistry()
