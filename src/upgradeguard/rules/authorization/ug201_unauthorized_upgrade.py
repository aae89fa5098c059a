"""UG-201: Unauthorized Upgrade.

Detects upgrade entry points and authorization hooks anyone can get past.
"""

from upgradeguard.models.core import Location
from upgradeguard.models.rules import Finding, FindingCategory, Rule, RuleCategory, Severity
from upgradeguard.rules.authorization.common import resolve_guard
from upgradeguard.rules.base import AnalysisRule


class UnauthorizedUpgradeRule(AnalysisRule):
    """Detect upgrade candidates with no access control.

    Whoever can call ``upgradeTo`` decides which code runs behind the proxy:
    one unprotected entry point hands the whole contract, and its funds, to
    any caller.

    A check that never looks at the caller is not access control: a hook that
    only requires a non-zero implementation, or an entry point behind
    ``whenNotPaused``, is still open to everyone. Entry points that delegate
    are judged through their hook. Guards that check nothing at all are left
    to UG-202.
    """

    def check(self, context) -> list[Finding]:
        version = context.version
        findings = []

        for function in version.upgrade_entry_points:
            guard = resolve_guard(version, function, context.config)
            if guard.verdict != FindingCategory.UPGRADE_UNAUTHORIZED:
                continue

            kind = "authorization hook" if guard.is_hook else "upgrade entry point"
            findings.append(
                Finding.from_rule(
                    self.rule,
                    Location(version.contract_id, function=function.signature),
                    (
                        f"The {kind} {function.signature} ({function.visibility.value}) has no "
                        f"access-control modifier or caller check. Anyone can replace the "
                        f"implementation."
                    ),
                    has_other_checks=guard.checked,
                    hook=guard.is_hook,
                )
            )
        return findings


RULE_UG_201 = Rule(
    rule_id="UG-201",
    name="Unauthorized Upgrade",
    description="Upgrade entry point has no access control",
    severity=Severity.CRITICAL,
    category=RuleCategory.AUTHORIZATION,
    finding_category=FindingCategory.UPGRADE_UNAUTHORIZED,
    references=(
        "https://docs.openzeppelin.com/contracts/5.x/api/proxy#UUPSUpgradeable-_authorizeUpgrade-address-",
        "https://swcregistry.io/docs/SWC-105",
    ),
    remediation=(
        "Restrict the upgrade entry point to the owner or an upgrader role:\n\n"
        "  function upgradeTo(address newImplementation) external onlyOwner { ... }"
    ),
)

rule_ug201 = UnauthorizedUpgradeRule(RULE_UG_201)
