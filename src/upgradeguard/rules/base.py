"""Base class for analysis rules."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from upgradeguard.models.rules import Finding, Rule

if TYPE_CHECKING:
    from upgradeguard.analysis.context import AnalysisContext


class AnalysisRule(ABC):
    """A rule run against one analysis context.

    Subclasses implement :meth:`check`; the metadata lives in a
    :class:`~upgradeguard.models.rules.Rule` instance so that listing and
    filtering rules never has to run them.
    """

    def __init__(self, rule: Rule) -> None:
        self.rule = rule

    @property
    def rule_id(self) -> str:
        return self.rule.rule_id

    @abstractmethod
    def check(self, context: AnalysisContext) -> list[Finding]:
        """Run the rule.

        Args:
            context: Version under analysis, the previous version (if any),
                the configuration and the findings of earlier phases

        Returns:
            Findings (empty if the rule passes)
        """

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.rule_id}>"
