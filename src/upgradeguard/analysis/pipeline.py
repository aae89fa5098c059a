"""Analysis pipeline.

Runs the analyzers in dependency order over an immutable, accumulating
context. Nothing is shared between runs, so independent contracts can be
analyzed concurrently.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from upgradeguard.analysis.aggregator import rank_findings
from upgradeguard.analysis.authorization import UpgradeAuthorizationAnalyzer
from upgradeguard.analysis.context import AnalysisContext
from upgradeguard.analysis.initialization import InitializationAnalyzer
from upgradeguard.analysis.storage import StorageLayoutDiffer
from upgradeguard.config import UpgradeGuardConfig
from upgradeguard.models.contract import ContractVersion
from upgradeguard.models.report import AnalysisResult, ReportSummary
from upgradeguard.rules.executors import RuleExecutor
from upgradeguard.rules.registry import RuleRegistry

logger = logging.getLogger(__name__)


class AnalysisPipeline:
    """Initialization, then authorization, then storage.

    Args:
        config: Analysis configuration
        rules: Registry to read rules from (defaults to the global registry)
    """

    def __init__(
        self, config: UpgradeGuardConfig | None = None, rules: RuleRegistry | None = None
    ) -> None:
        self.config = config or UpgradeGuardConfig()
        self.phases: list[RuleExecutor] = [
            InitializationAnalyzer(self.config, rules),
            UpgradeAuthorizationAnalyzer(self.config, rules),
            StorageLayoutDiffer(self.config, rules),
        ]

    def run_context(
        self, version: ContractVersion, previous: Optional[ContractVersion] = None
    ) -> AnalysisContext:
        """Run every phase and return the final context."""
        context = AnalysisContext(version=version, previous=previous, config=self.config)
        for phase in self.phases:
            logger.debug("%s: running %s", version.contract_id, type(phase).__name__)
            context = context.with_findings(phase.execute(context))
        return context

    def run(
        self, version: ContractVersion, previous: Optional[ContractVersion] = None
    ) -> AnalysisResult:
        """Analyze one version, or an upgrade from ``previous`` to ``version``.

        Args:
            version: Version to analyze (the new one in an upgrade)
            previous: Deployed version, enables the storage layout diff

        Returns:
            AnalysisResult with ranked findings
        """
        start = time.perf_counter()
        context = self.run_context(version, previous)
        findings = rank_findings(context.findings)
        elapsed = (time.perf_counter() - start) * 1000

        logger.debug(
            "%s: %d finding(s) in %.1f ms", version.contract_id, len(findings), elapsed
        )
        return AnalysisResult(
            contract_id=version.contract_id,
            previous_id=previous.contract_id if previous is not None else None,
            findings=findings,
            summary=ReportSummary.from_findings(findings, self.config.fail_on),
            analysis_time_ms=elapsed,
        )
