"""Models for analysis reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Optional

from upgradeguard import __version__
from upgradeguard.models.rules import Finding, Severity


@dataclass
class ReportSummary:
    """Summary statistics for a report.

    Attributes:
        total_findings: Total number of findings
        critical_count: Number of critical findings
        high_count: Number of high findings
        medium_count: Number of medium findings
        low_count: Number of low findings
        info_count: Number of info findings
        passed: True if no finding has a failing severity
        contracts_analyzed: Number of contract versions analyzed
    """

    total_findings: int = 0
    critical_count: int = 0
    high_count: int = 0
    medium_count: int = 0
    low_count: int = 0
    info_count: int = 0
    passed: bool = True
    contracts_analyzed: int = 0

    @classmethod
    def from_findings(
        cls,
        findings: Iterable[Finding],
        fail_on: frozenset[Severity] = frozenset({Severity.CRITICAL, Severity.HIGH}),
        contracts_analyzed: int = 1,
    ) -> ReportSummary:
        """Count findings by severity."""
        findings = list(findings)
        counts = {severity: 0 for severity in Severity}
        for finding in findings:
            counts[finding.severity] += 1
        return cls(
            total_findings=len(findings),
            critical_count=counts[Severity.CRITICAL],
            high_count=counts[Severity.HIGH],
            medium_count=counts[Severity.MEDIUM],
            low_count=counts[Severity.LOW],
            info_count=counts[Severity.INFO],
            passed=not any(counts[severity] for severity in fail_on),
            contracts_analyzed=contracts_analyzed,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_findings": self.total_findings,
            "critical": self.critical_count,
            "high": self.high_count,
            "medium": self.medium_count,
            "low": self.low_count,
            "info": self.info_count,
            "passed": self.passed,
            "contracts_analyzed": self.contracts_analyzed,
        }


@dataclass
class AnalysisResult:
    """Result of analyzing one contract version or one upgrade pair.

    Attributes:
        contract_id: Analyzed (new) contract version
        previous_id: Old version of an upgrade comparison
        source: File the version was loaded from
        findings: Ordered findings
        summary: Severity counts
        error: Load error message if the analysis failed
        analysis_time_ms: Wall time of the analysis
    """

    contract_id: str
    previous_id: Optional[str] = None
    source: Optional[str] = None
    findings: list[Finding] = field(default_factory=list)
    summary: ReportSummary = field(default_factory=ReportSummary)
    error: Optional[str] = None
    analysis_time_ms: float = 0.0

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def has_findings(self) -> bool:
        return bool(self.findings)

    @property
    def exit_code(self) -> int:
        return 0 if self.success and self.summary.passed else 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "contract": self.contract_id,
            "previous": self.previous_id,
            "source": self.source,
            "success": self.success,
            "error": self.error,
            "analysis_time_ms": round(self.analysis_time_ms, 3),
            "summary": self.summary.to_dict(),
            "findings": [finding.to_dict() for finding in self.findings],
        }


@dataclass
class BatchAnalysisReport:
    """Report for a batch of independently analyzed contracts.

    Attributes:
        results: Per-contract results, in input order
        findings: All findings merged and ordered
        summary: Severity counts over all findings
        timestamp: When the report was created
        tool_version: Version of tool
        total_analysis_time_ms: Wall time of the whole batch
    """

    results: list[AnalysisResult] = field(default_factory=list)
    findings: list[Finding] = field(default_factory=list)
    summary: ReportSummary = field(default_factory=ReportSummary)
    timestamp: datetime = field(default_factory=datetime.now)
    tool_version: str = __version__
    total_analysis_time_ms: float = 0.0

    @property
    def failed(self) -> list[AnalysisResult]:
        return [result for result in self.results if not result.success]

    @property
    def status(self) -> str:
        return "PASSED" if self.summary.passed and not self.failed else "FAILED"

    @property
    def exit_code(self) -> int:
        return 0 if self.status == "PASSED" else 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "tool_version": self.tool_version,
            "status": self.status,
            "summary": self.summary.to_dict(),
            "results": [result.to_dict() for result in self.results],
            "total_analysis_time_ms": round(self.total_analysis_time_ms, 3),
        }
