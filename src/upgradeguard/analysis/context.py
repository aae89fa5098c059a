"""Immutable context threaded through the analysis pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterable, Optional

from upgradeguard.config import UpgradeGuardConfig
from upgradeguard.models.contract import ContractVersion
from upgradeguard.models.rules import Finding, FindingCategory


@dataclass(frozen=True)
class AnalysisContext:
    """What an analysis phase may read.

    Each phase returns a new context carrying its findings; earlier findings
    are shared read-only with later phases.

    Attributes:
        version: Version under analysis (the new one in an upgrade)
        previous: Old version of an upgrade comparison
        config: Analysis configuration
        findings: Findings of the phases run so far
    """

    version: ContractVersion
    previous: Optional[ContractVersion] = None
    config: UpgradeGuardConfig = field(default_factory=UpgradeGuardConfig)
    findings: tuple[Finding, ...] = ()

    def with_findings(self, findings: Iterable[Finding]) -> AnalysisContext:
        return replace(self, findings=self.findings + tuple(findings))

    def findings_of(self, category: FindingCategory) -> list[Finding]:
        return [
            f
            for f in self.findings
            if f.category == category and f.location.contract_id == self.version.contract_id
        ]
