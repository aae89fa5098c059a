"""UG-005: Unlocked Implementation.

Detects proxy implementations whose guarded initializers are still open on
the implementation contract itself because the constructor never sets the
guard flag.
"""

from upgradeguard.models.core import Location
from upgradeguard.models.rules import Finding, FindingCategory, Rule, RuleCategory, Severity
from upgradeguard.rules.base import AnalysisRule
from upgradeguard.rules.guards import guard_flag_slots, has_one_time_guard, transitive_writes


class UnlockedImplementationRule(AnalysisRule):
    """Detect implementations that do not lock their initializers.

    The one-time guard protects the proxy, but the implementation has its own
    copy of the flag, unset. Unless the constructor sets it (the
    ``_disableInitializers()`` pattern), anyone can initialize the
    implementation directly and own it.

    The finding is ``init-unprotected`` because the implementation's own
    initializer is callable by anyone, but it is reported at medium and at the
    contract level (no function, ``scope="implementation"``): the proxy itself
    is guarded, and UG-001/UG-004 keep the function-level critical findings
    for initializers that have no guard at all.
    """

    def check(self, context) -> list[Finding]:
        version = context.version
        if not version.is_proxy_implementation:
            return []

        initializers = [f for f in version.initializers if not f.is_constructor]
        guarded = [f for f in initializers if has_one_time_guard(version, f)]
        if not guarded or len(guarded) != len(initializers):
            return []

        flags: set[str] = set()
        for function in guarded:
            flags |= guard_flag_slots(version, function)
        if not flags:
            return []

        constructor = version.constructor
        if constructor is not None:
            locked = version.slot_names(transitive_writes(version, constructor))
            if locked & flags:
                return []

        return [
            Finding.from_rule(
                self.rule,
                Location(version.contract_id),
                (
                    f"Initializers are guarded on the proxy, but implementation "
                    f"{version.contract_id} never sets its initialization flag "
                    f"({', '.join(sorted(flags))}) in a constructor. The implementation "
                    f"contract itself can be initialized by anyone."
                ),
                scope="implementation",
                flags=sorted(flags),
                initializers=[f.signature for f in guarded],
            )
        ]


RULE_UG_005 = Rule(
    rule_id="UG-005",
    name="Unlocked Implementation",
    description="Implementation constructor does not disable initializers",
    severity=Severity.MEDIUM,
    category=RuleCategory.INITIALIZATION,
    finding_category=FindingCategory.INIT_UNPROTECTED,
    references=(
        "https://docs.openzeppelin.com/upgrades-plugins/writing-upgradeable#initializing_the_implementation_contract",
    ),
    remediation="Call _disableInitializers() (or set the initialized flag) in the constructor",
)

rule_ug005 = UnlockedImplementationRule(RULE_UG_005)
