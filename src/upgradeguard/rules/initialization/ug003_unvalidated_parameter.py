"""UG-003: Unvalidated Initializer Parameter.

Detects critical slots an initializer sets from a parameter without checking
the value first.
"""

from upgradeguard.models.contract import CheckKind, CriticalKind, StatementKind
from upgradeguard.models.core import Location
from upgradeguard.models.rules import Finding, FindingCategory, Rule, RuleCategory, Severity
from upgradeguard.loader.capabilities import base_name
from upgradeguard.rules.base import AnalysisRule
from upgradeguard.rules.guards import arithmetic_operands

# Checks that rule out the dangerous value of each kind of critical slot
ACCEPTED_CHECKS = {
    CriticalKind.OWNER: {CheckKind.NONZERO},
    CriticalKind.RATE: {CheckKind.NONZERO, CheckKind.RANGE},
}


class UnvalidatedParameterRule(AnalysisRule):
    """Detect critical writes from unchecked initializer parameters.

    Initializers run once: a zero owner or an out-of-range fee written there
    usually cannot be corrected later.

    - Address-typed owner-like slots need a zero-address check.
    - Fee/rate slots need a non-zero or range check when the contract uses
      them as a divisor or multiplier.
    """

    def check(self, context) -> list[Finding]:
        version = context.version
        arithmetic = arithmetic_operands(version)
        findings = []

        for function in version.initializers:
            requires = function.statements(StatementKind.REQUIRE)

            for stmt in function.statements(StatementKind.WRITE):
                slot = version.slot_by_name(base_name(stmt.target or ""))
                if slot is None or slot.critical is None:
                    continue
                if slot.critical == CriticalKind.RATE and slot.name not in arithmetic:
                    continue

                params = [op for op in stmt.operands if op in function.parameters]
                if not params:
                    continue

                accepted = ACCEPTED_CHECKS[slot.critical]
                checked = {slot.name, *params}
                if any(r.check in accepted and checked & set(r.operands) for r in requires):
                    continue

                needed = "zero-address" if slot.critical == CriticalKind.OWNER else "bounds"
                findings.append(
                    Finding.from_rule(
                        self.rule,
                        Location(
                            version.contract_id,
                            function=function.signature,
                            slot=slot.name,
                            slot_index=slot.index,
                        ),
                        (
                            f"{function.signature} writes {', '.join(params)} to critical slot "
                            f"'{slot.name}' ({slot.type_name}) without a {needed} check."
                        ),
                        parameters=params,
                        critical=slot.critical.value,
                    )
                )
        return findings


RULE_UG_003 = Rule(
    rule_id="UG-003",
    name="Unvalidated Initializer Parameter",
    description="Initializer writes a critical slot from an unchecked parameter",
    severity=Severity.MEDIUM,
    category=RuleCategory.INITIALIZATION,
    finding_category=FindingCategory.INIT_UNVALIDATED_PARAM,
    references=("https://swcregistry.io/docs/SWC-123",),
    remediation=(
        "Validate the parameter before storing it:\n\n"
        "  require(owner_ != address(0), \"zero owner\");\n"
        "  require(fee_ > 0 && fee_ <= MAX_FEE, \"fee out of range\");"
    ),
)

rule_ug003 = UnvalidatedParameterRule(RULE_UG_003)
