"""UG-203: Owner Takeover Chain.

Detects upgrade authorization that depends on an owner slot an unprotected
initializer can overwrite.
"""

from upgradeguard.models.core import Location
from upgradeguard.models.rules import Finding, FindingCategory, Rule, RuleCategory, Severity
from upgradeguard.rules.authorization.common import resolve_guard
from upgradeguard.rules.base import AnalysisRule
from upgradeguard.rules.guards import transitive_writes


class OwnerTakeoverChainRule(AnalysisRule):
    """Escalate protected upgrades whose owner can be seized.

    ``onlyOwner`` on ``upgradeTo`` is worthless if ``initialize`` can be called
    again to set a new owner: attacker calls ``initialize(attacker)``, then
    ``upgradeTo(malicious)``. Reads the init-unprotected findings of the
    initialization phase, which must have run first.
    """

    def check(self, context) -> list[Finding]:
        version = context.version
        exposed = self._exposed_initializers(context)
        if not exposed:
            return []

        guards = [
            resolve_guard(version, function, context.config)
            for function in version.upgrade_entry_points
        ]
        # A hook is reported through the entry points that delegate to it
        delegated = {hook.signature for guard in guards for hook in guard.hooks}

        findings = []
        for guard in guards:
            function = guard.function
            if function.signature in delegated:
                continue
            slots = set(guard.guarded_slots) if guard.protected else set()
            for hook in guard.hooks:
                hook_guard = resolve_guard(version, hook, context.config)
                if hook_guard.protected:
                    slots |= hook_guard.guarded_slots
            if not slots:
                continue

            for initializer_sig, written in exposed.items():
                seized = sorted(slots & written)
                if not seized:
                    continue
                findings.append(
                    Finding.from_rule(
                        self.rule,
                        Location(version.contract_id, function=function.signature),
                        (
                            f"Owner takeover chain: {function.signature} is gated on "
                            f"{', '.join(seized)}, which the unprotected initializer "
                            f"{initializer_sig} lets anyone overwrite."
                        ),
                        annotation="owner takeover chain",
                        initializer=initializer_sig,
                        slots=seized,
                    )
                )
                break
        return findings

    def _exposed_initializers(self, context) -> dict[str, set[str]]:
        """Slots written by each initializer reported as unprotected."""
        version = context.version
        exposed: dict[str, set[str]] = {}
        for finding in context.findings_of(FindingCategory.INIT_UNPROTECTED):
            signature = finding.location.function
            function = version.functions.get(signature) if signature else None
            if function is None or signature in exposed:
                continue
            exposed[signature] = set(version.slot_names(transitive_writes(version, function)))
        return exposed


RULE_UG_203 = Rule(
    rule_id="UG-203",
    name="Owner Takeover Chain",
    description="Upgrade is gated on an owner slot an unprotected initializer can overwrite",
    severity=Severity.CRITICAL,
    category=RuleCategory.AUTHORIZATION,
    finding_category=FindingCategory.UPGRADE_UNAUTHORIZED,
    references=(
        "https://docs.openzeppelin.com/upgrades-plugins/writing-upgradeable#initializers",
    ),
    remediation="Guard the initializer that sets the owner; the upgrade check depends on it",
)

rule_ug203 = OwnerTakeoverChainRule(RULE_UG_203)
