"""Analyzer for upgradeable contracts.

This module provides the main entry point for analyzing contract versions
and upgrade pairs loaded from contract-model or solc AST files.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Iterable, Optional, Union

from upgradeguard.analysis.aggregator import FindingAggregator
from upgradeguard.analysis.pipeline import AnalysisPipeline
from upgradeguard.config import UpgradeGuardConfig
from upgradeguard.errors import MalformedInputError
from upgradeguard.loader import load_contract_file
from upgradeguard.models.contract import ContractVersion
from upgradeguard.models.report import AnalysisResult, BatchAnalysisReport, ReportSummary

logger = logging.getLogger(__name__)

# A batch target is one contract file, or an (old, new) pair of files
Target = Union[Path, str, tuple[Union[Path, str], Union[Path, str]]]
ProgressCallback = Callable[[str, int, int], None]


class UpgradeAnalyzer:
    """Analyzer for contract versions and upgrades.

    Loads contract files and runs the analysis pipeline on them, one at a
    time or as a parallel batch.

    Args:
        config: Optional configuration
        source_format: "auto", "model" or "solc"
        contract_name: Contract to select from solc ASTs
        is_proxy_implementation: Force the proxy-implementation flag
    """

    def __init__(
        self,
        config: UpgradeGuardConfig | None = None,
        source_format: str = "auto",
        contract_name: str | None = None,
        is_proxy_implementation: bool | None = None,
    ) -> None:
        self.config = config or UpgradeGuardConfig()
        self.source_format = source_format
        self.contract_name = contract_name
        self.is_proxy_implementation = is_proxy_implementation
        self.pipeline = AnalysisPipeline(self.config)

    def load(self, file_path: Path | str) -> ContractVersion:
        """Load a contract file.

        Raises:
            FileNotFoundError: If the file doesn't exist
            MalformedInputError: If the file cannot be normalized
        """
        return load_contract_file(
            file_path,
            source_format=self.source_format,
            contract_name=self.contract_name,
            is_proxy_implementation=self.is_proxy_implementation,
            config=self.config,
        )

    def analyze_version(self, version: ContractVersion) -> AnalysisResult:
        """Analyze one contract version."""
        return self.pipeline.run(version)

    def analyze_pair(self, old: ContractVersion, new: ContractVersion) -> AnalysisResult:
        """Analyze ``new`` as an upgrade of ``old``."""
        return self.pipeline.run(new, previous=old)

    def analyze_file(
        self, file_path: Path | str, previous_path: Path | str | None = None
    ) -> AnalysisResult:
        """Analyze a contract file, or an upgrade from ``previous_path`` to it.

        Args:
            file_path: Contract (new version) to analyze
            previous_path: Deployed version to diff against

        Returns:
            AnalysisResult with ranked findings

        Raises:
            FileNotFoundError: If a file doesn't exist
            MalformedInputError: If a file cannot be normalized
        """
        # Both versions are loaded before any analysis starts
        previous = self.load(previous_path) if previous_path is not None else None
        version = self.load(file_path)

        result = self.pipeline.run(version, previous=previous)
        result.source = str(file_path)
        return result

    def analyze_batch(
        self,
        targets: Iterable[Target],
        jobs: int = 1,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> BatchAnalysisReport:
        """Analyze independent contracts in parallel.

        Every target is loaded first. A target that fails to load is marked
        failed and the rest of the batch continues.

        Args:
            targets: Contract files, or (old, new) pairs of files
            jobs: Number of worker threads
            progress_callback: Called as (target, current, total) after each analysis

        Returns:
            BatchAnalysisReport with per-target results and merged findings
        """
        start = time.perf_counter()
        targets = list(targets)
        results: list[Optional[AnalysisResult]] = [None] * len(targets)
        loaded: list[tuple[int, ContractVersion, Optional[ContractVersion]]] = []

        for position, target in enumerate(targets):
            new_path, old_path = _split_target(target)
            try:
                previous = self.load(old_path) if old_path is not None else None
                version = self.load(new_path)
            except (FileNotFoundError, MalformedInputError) as e:
                logger.warning("Skipping %s: %s", new_path, e)
                results[position] = AnalysisResult(
                    contract_id=Path(new_path).stem,
                    source=str(new_path),
                    error=str(e),
                    summary=ReportSummary(passed=False, contracts_analyzed=0),
                )
                continue
            loaded.append((position, version, previous))

        aggregator = FindingAggregator()
        total = len(loaded)

        def analyze(item: tuple[int, ContractVersion, Optional[ContractVersion]]) -> AnalysisResult:
            position, version, previous = item
            result = self.pipeline.run(version, previous=previous)
            result.source = str(_split_target(targets[position])[0])
            aggregator.merge(result.findings)
            return result

        with ThreadPoolExecutor(max_workers=max(1, jobs)) as executor:
            for current, ((position, _, _), result) in enumerate(
                zip(loaded, executor.map(analyze, loaded)), start=1
            ):
                results[position] = result
                if progress_callback:
                    progress_callback(result.source or result.contract_id, current, total)

        findings = aggregator.results()
        return BatchAnalysisReport(
            results=[result for result in results if result is not None],
            findings=findings,
            summary=ReportSummary.from_findings(findings, self.config.fail_on, total),
            total_analysis_time_ms=(time.perf_counter() - start) * 1000,
        )


def _split_target(target: Target) -> tuple[Path | str, Path | str | None]:
    """(new, old) paths of a batch target."""
    if isinstance(target, tuple):
        old, new = target
        return new, old
    return target, None


def analyze_contract(
    file_path: Path | str,
    previous_path: Path | str | None = None,
    config: UpgradeGuardConfig | None = None,
) -> AnalysisResult:
    """Analyze a contract file, or an upgrade of a deployed version.

    Args:
        file_path: Contract model or solc AST JSON file
        previous_path: Deployed version to diff storage against
        config: Optional configuration

    Returns:
        AnalysisResult with ranked findings

    Raises:
        FileNotFoundError: If a file doesn't exist
        MalformedInputError: If a file cannot be normalized
    """
    analyzer = UpgradeAnalyzer(config)
    return analyzer.analyze_file(file_path, previous_path)
