"""UG-002: Initializer Re-entry.

Detects critical state an initializer sets through a helper that is itself
callable from outside without the initializer's protection.
"""

from upgradeguard.models.core import Location
from upgradeguard.models.rules import Finding, FindingCategory, Rule, RuleCategory, Severity
from upgradeguard.rules.base import AnalysisRule
from upgradeguard.rules.guards import (
    has_access_check,
    has_initializing_guard,
    has_one_time_guard,
    reachable,
)


class InitializerReentryRule(AnalysisRule):
    """Detect unguarded helpers reachable from a guarded initializer.

    The one-time guard on ``initialize`` protects only ``initialize``. If it
    delegates the write of an owner, admin or fee slot to a public function
    that carries no guard of its own, the same state can be rewritten after
    initialization by calling the helper directly.
    """

    def check(self, context) -> list[Finding]:
        version = context.version
        findings = []
        reported: set[str] = set()

        for initializer in version.initializers:
            if initializer.is_constructor or not has_one_time_guard(version, initializer):
                continue

            for callee in reachable(version, initializer):
                critical = sorted(
                    version.slots[i].name for i in callee.writes if version.slots[i].critical
                )
                if not critical or callee.signature in reported:
                    continue
                if not callee.visibility.is_callable_externally:
                    continue
                if has_initializing_guard(version, callee) or has_access_check(version, callee):
                    continue

                reported.add(callee.signature)
                findings.append(
                    Finding.from_rule(
                        self.rule,
                        Location(version.contract_id, function=callee.signature),
                        (
                            f"{callee.signature} writes critical slot(s) {', '.join(critical)} "
                            f"for initializer {initializer.signature} but is "
                            f"{callee.visibility.value} without the initializer's guard; it can "
                            f"be called again after initialization."
                        ),
                        initializer=initializer.signature,
                        slots=critical,
                    )
                )
        return findings


RULE_UG_002 = Rule(
    rule_id="UG-002",
    name="Initializer Re-entry",
    description="Critical state set by an initializer is reachable through an unguarded helper",
    severity=Severity.HIGH,
    category=RuleCategory.INITIALIZATION,
    finding_category=FindingCategory.INIT_REENTRY,
    references=(
        "https://docs.openzeppelin.com/contracts/5.x/api/proxy#Initializable-onlyInitializing--",
    ),
    remediation=(
        "Make initialization helpers internal, or restrict them to the initialization "
        "phase (e.g. `onlyInitializing`)."
    ),
)

rule_ug002 = InitializerReentryRule(RULE_UG_002)
