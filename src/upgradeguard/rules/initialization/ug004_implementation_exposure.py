"""UG-004: Exposed Implementation Initializer.

Detects unguarded initializers on a contract that serves as a proxy
implementation.
"""

from upgradeguard.models.core import Location
from upgradeguard.models.rules import Finding, FindingCategory, Rule, RuleCategory, Severity
from upgradeguard.rules.base import AnalysisRule
from upgradeguard.rules.guards import has_one_time_guard


class ImplementationExposureRule(AnalysisRule):
    """Detect unguarded initializers on proxy implementations.

    The implementation contract is deployed on its own address and can be called
    directly, outside the proxy's storage context. An unguarded initializer there
    lets anyone become its owner, and from there reach ``selfdestruct`` or
    ``delegatecall`` paths that affect every proxy pointing at it. Always
    critical, whatever else is found.
    """

    def check(self, context) -> list[Finding]:
        version = context.version
        if not version.is_proxy_implementation:
            return []

        return [
            Finding.from_rule(
                self.rule,
                Location(version.contract_id, function=function.signature),
                (
                    f"Proxy implementation {version.contract_id} exposes initializer "
                    f"{function.signature} without a one-time guard. It is callable on the "
                    f"implementation itself as well as through every proxy."
                ),
                severity=Severity.CRITICAL,
                proxy_implementation=True,
            )
            for function in version.initializers
            if not has_one_time_guard(version, function)
        ]


RULE_UG_004 = Rule(
    rule_id="UG-004",
    name="Exposed Implementation Initializer",
    description="Proxy implementation has an initializer without a one-time guard",
    severity=Severity.CRITICAL,
    category=RuleCategory.INITIALIZATION,
    finding_category=FindingCategory.INIT_UNPROTECTED,
    references=(
        "https://docs.openzeppelin.com/upgrades-plugins/writing-upgradeable#initializing_the_implementation_contract",
        "https://medium.com/immunefi/wormhole-uninitialized-proxy-bugfix-review-90250c41a43a",
    ),
    remediation=(
        "Guard every initializer with a one-time modifier, and lock the implementation "
        "in its constructor:\n\n"
        "  /// @custom:oz-upgrades-unsafe-allow constructor\n"
        "  constructor() {\n"
        "      _disableInitializers();\n"
        "  }"
    ),
)

rule_ug004 = ImplementationExposureRule(RULE_UG_004)
