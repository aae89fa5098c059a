"""UG-202: Empty Upgrade Guard.

Detects authorization hooks and upgrade modifiers that check nothing.
"""

from upgradeguard.models.core import Location
from upgradeguard.models.rules import Finding, FindingCategory, Rule, RuleCategory, Severity
from upgradeguard.rules.authorization.common import resolve_guard
from upgradeguard.rules.base import AnalysisRule
from upgradeguard.rules.guards import applied_modifiers


class EmptyUpgradeGuardRule(AnalysisRule):
    """Detect authorization that is present in name only.

    An overridden ``_authorizeUpgrade`` with an empty body, or an
    ``onlyOwner``-style modifier whose body is just the placeholder, looks like
    protection but is equivalent to none.

    - An authorization hook that runs no check of any kind is empty.
    - An externally callable entry point whose modifiers are all bare
      placeholders (or undeclared) is empty.

    Guards that do check something, just not the caller, are UG-201 findings.
    """

    def check(self, context) -> list[Finding]:
        version = context.version
        findings = []

        for function in version.upgrade_entry_points:
            guard = resolve_guard(version, function, context.config)
            if guard.verdict != FindingCategory.UPGRADE_EMPTY_GUARD:
                continue

            if guard.is_hook:
                reason = "authorization hook runs no check"
            else:
                reason = "its modifiers perform no check"

            no_ops = sorted(m.name for m in applied_modifiers(version, function))
            detail = f" (modifiers {', '.join(no_ops)} check nothing)" if no_ops else ""
            findings.append(
                Finding.from_rule(
                    self.rule,
                    Location(version.contract_id, function=function.signature),
                    (
                        f"{function.signature}: {reason}{detail}. An empty authorization "
                        f"guard lets anyone upgrade the contract."
                    ),
                    modifiers=sorted(function.modifiers),
                    hook=guard.is_hook,
                )
            )
        return findings


RULE_UG_202 = Rule(
    rule_id="UG-202",
    name="Empty Upgrade Guard",
    description="Upgrade authorization hook or modifier performs no check",
    severity=Severity.CRITICAL,
    category=RuleCategory.AUTHORIZATION,
    finding_category=FindingCategory.UPGRADE_EMPTY_GUARD,
    references=(
        "https://docs.openzeppelin.com/contracts/5.x/api/proxy#UUPSUpgradeable-_authorizeUpgrade-address-",
    ),
    remediation=(
        "Put a real caller check in the hook or the modifier it uses:\n\n"
        "  function _authorizeUpgrade(address) internal override onlyOwner {}\n\n"
        "  modifier onlyOwner() {\n"
        "      require(msg.sender == owner, \"not owner\");\n"
        "      _;\n"
        "  }"
    ),
)

rule_ug202 = EmptyUpgradeGuardRule(RULE_UG_202)
