"""UG-101: Storage Shift.

Detects upgrades that move or reinterpret existing storage variables.
"""

from upgradeguard.errors import IncomparableVersionsError
from upgradeguard.models.core import Location
from upgradeguard.models.rules import Finding, FindingCategory, Rule, RuleCategory, Severity
from upgradeguard.rules.base import AnalysisRule
from upgradeguard.rules.storage.layout import ChangeKind, walk_layouts


class StorageShiftRule(AnalysisRule):
    """Detect storage variables whose position or type changed.

    A proxy keeps its storage across upgrades; the new implementation reads
    it through its own declarations. A variable inserted in the middle of the
    layout pushes every following variable to a different word, so each of
    them silently reads its neighbour's data.

    Versions that cannot be compared at all are reported as one shift at the
    contract level.
    """

    def check(self, context) -> list[Finding]:
        if context.previous is None:
            return []
        old, new = context.previous, context.version

        try:
            changes = walk_layouts(old, new, context.config)
        except IncomparableVersionsError as e:
            return [
                Finding.from_rule(
                    self.rule,
                    Location(new.contract_id or old.contract_id or "<unknown>"),
                    f"Storage layouts cannot be compared ({e}); assuming they are incompatible.",
                    previous=old.contract_id,
                )
            ]

        findings = []
        for change in changes:
            if change.kind == ChangeKind.REMOVED:
                continue
            findings.append(
                Finding.from_rule(
                    self.rule,
                    Location(new.contract_id, slot=change.new.name, slot_index=change.new.index),
                    f"Storage shift: {change.detail}.",
                    change=change.kind.value,
                    previous=old.contract_id,
                    old_index=change.old.index,
                    new_index=change.new.index,
                )
            )
        return findings


RULE_UG_101 = Rule(
    rule_id="UG-101",
    name="Storage Shift",
    description="Existing storage variable moved or changed type",
    severity=Severity.CRITICAL,
    category=RuleCategory.STORAGE,
    finding_category=FindingCategory.STORAGE_SHIFT,
    references=(
        "https://docs.openzeppelin.com/upgrades-plugins/writing-upgradeable#modifying-your-contracts",
        "https://docs.soliditylang.org/en/latest/internals/layout_in_storage.html",
    ),
    remediation=(
        "Keep existing variables in place with their types. Append new variables "
        "at the end, or take the space from a reserved gap:\n\n"
        "  uint256 public newVar;\n"
        "  uint256[49] private __gap; // was uint256[50]"
    ),
)

rule_ug101 = StorageShiftRule(RULE_UG_101)
