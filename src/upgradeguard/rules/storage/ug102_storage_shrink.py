"""UG-102: Storage Shrink.

Detects upgrades that drop populated storage variables.
"""

from upgradeguard.errors import IncomparableVersionsError
from upgradeguard.models.core import Location
from upgradeguard.models.rules import Finding, FindingCategory, Rule, RuleCategory, Severity
from upgradeguard.rules.base import AnalysisRule
from upgradeguard.rules.storage.layout import ChangeKind, walk_layouts


class StorageShrinkRule(AnalysisRule):
    """Detect old variables that no longer exist in the new layout.

    The data stays in the proxy's storage. A later variable declared over it
    starts out holding stale values.
    """

    def check(self, context) -> list[Finding]:
        if context.previous is None:
            return []
        old = context.previous

        try:
            changes = walk_layouts(old, context.version, context.config)
        except IncomparableVersionsError:
            # Reported once by UG-101
            return []

        return [
            Finding.from_rule(
                self.rule,
                Location(old.contract_id, slot=change.old.name, slot_index=change.old.index),
                f"Storage shrink: {change.detail} in {context.version.contract_id}.",
                upgraded=context.version.contract_id,
            )
            for change in changes
            if change.kind == ChangeKind.REMOVED
        ]


RULE_UG_102 = Rule(
    rule_id="UG-102",
    name="Storage Shrink",
    description="Populated storage variable removed by an upgrade",
    severity=Severity.HIGH,
    category=RuleCategory.STORAGE,
    finding_category=FindingCategory.STORAGE_SHRINK,
    references=(
        "https://docs.openzeppelin.com/upgrades-plugins/writing-upgradeable#modifying-your-contracts",
    ),
    remediation=(
        "Keep the variable declared (rename it to mark it deprecated) instead of "
        "removing it:\n\n"
        "  uint256 private __deprecated_oldRate;"
    ),
)

rule_ug102 = StorageShrinkRule(RULE_UG_102)
