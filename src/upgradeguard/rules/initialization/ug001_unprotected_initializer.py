"""UG-001: Unprotected Initializer.

Detects initializer functions that can be called by anyone, any number of
times, because nothing restricts them to a single call.
"""

from upgradeguard.models.core import Location
from upgradeguard.models.rules import Finding, FindingCategory, Rule, RuleCategory, Severity
from upgradeguard.rules.base import AnalysisRule
from upgradeguard.rules.guards import has_one_time_guard


class UnprotectedInitializerRule(AnalysisRule):
    """Detect initializers without a one-time guard.

    An initializer replaces the constructor of an upgradeable contract. Unlike a
    constructor it is an ordinary function: unless a guard checks and sets a
    dedicated "initialized" flag, an attacker can call it (again) and seize the
    owner, admin or fee configuration.

    Accepted guards are recognized by behavior: a modifier, or an inline
    check-and-set, that requires a condition on a flag slot and writes it.
    Proxy implementations are reported by UG-004 instead.
    """

    def check(self, context) -> list[Finding]:
        version = context.version
        if version.is_proxy_implementation:
            return []

        findings = []
        for function in version.initializers:
            if has_one_time_guard(version, function):
                continue
            findings.append(
                Finding.from_rule(
                    self.rule,
                    Location(version.contract_id, function=function.signature),
                    (
                        f"Initializer {function.signature} has no one-time guard. Anyone can "
                        f"call it, any number of times, and overwrite the state it sets."
                    ),
                    visibility=function.visibility.value,
                    modifiers=sorted(function.modifiers),
                )
            )
        return findings


RULE_UG_001 = Rule(
    rule_id="UG-001",
    name="Unprotected Initializer",
    description="Initializer can be called more than once or by anyone",
    severity=Severity.CRITICAL,
    category=RuleCategory.INITIALIZATION,
    finding_category=FindingCategory.INIT_UNPROTECTED,
    references=(
        "https://docs.openzeppelin.com/upgrades-plugins/writing-upgradeable#initializers",
    ),
    remediation=(
        "Guard the initializer with a one-time modifier (e.g. `initializer`) or an "
        "explicit check-and-set of a dedicated initialized flag:\n\n"
        "  function initialize(address owner_) public initializer {\n"
        "      ...\n"
        "  }"
    ),
)

rule_ug001 = UnprotectedInitializerRule(RULE_UG_001)
