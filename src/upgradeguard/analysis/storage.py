"""Storage layout differ."""

from __future__ import annotations

from upgradeguard.analysis.context import AnalysisContext
from upgradeguard.models.contract import ContractVersion
from upgradeguard.models.rules import Finding, RuleCategory
from upgradeguard.rules.executors import RuleExecutor


class StorageLayoutDiffer(RuleExecutor):
    """Compare the storage layouts of an upgrade pair (rules UG-101, UG-102).

    Only runs when the context carries a previous version.
    """

    category = RuleCategory.STORAGE

    def execute(self, context: AnalysisContext) -> list[Finding]:
        if context.previous is None:
            return []
        return super().execute(context)

    def diff(self, old: ContractVersion, new: ContractVersion) -> list[Finding]:
        """Compare two versions in upgrade direction.

        Args:
            old: Deployed version
            new: Candidate upgrade

        Returns:
            Layout findings (empty if the upgrade is storage compatible)
        """
        return self.execute(AnalysisContext(version=new, previous=old, config=self.config))
