"""Executors that run the registered rules of one category."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from upgradeguard.config import UpgradeGuardConfig
from upgradeguard.models.rules import Finding, RuleCategory
from upgradeguard.rules.base import AnalysisRule
from upgradeguard.rules.registry import RuleRegistry, registry

if TYPE_CHECKING:
    from upgradeguard.analysis.context import AnalysisContext

logger = logging.getLogger(__name__)


class RuleExecutor:
    """Run every enabled rule of a category against a context.

    Args:
        category: Rule category to run
        config: Configuration (for disabled rules)
        rules: Registry to read rules from
    """

    category: RuleCategory

    def __init__(
        self,
        config: UpgradeGuardConfig | None = None,
        rules: RuleRegistry | None = None,
    ) -> None:
        self.config = config or UpgradeGuardConfig()
        self.registry = rules if rules is not None else registry

    @property
    def rules(self) -> list[AnalysisRule]:
        return [
            rule
            for rule in self.registry.get_rules(self.category)
            if rule.rule_id not in self.config.disabled_rules
        ]

    def execute(self, context: AnalysisContext) -> list[Finding]:
        """Run the rules in registration order and collect their findings."""
        findings: list[Finding] = []
        for rule in self.rules:
            found = rule.check(context)
            if found:
                logger.debug(
                    "%s: %s produced %d finding(s)", context.version.contract_id, rule.rule_id, len(found)
                )
            findings.extend(found)
        return findings
