"""Finding aggregation."""

from __future__ import annotations

import threading
from typing import Iterable

from upgradeguard.models.core import Location
from upgradeguard.models.rules import Finding, FindingCategory


def sort_key(finding: Finding) -> tuple:
    """Severity descending, then category, location and rule id."""
    return (
        -finding.severity.rank,
        finding.category.value,
        str(finding.location),
        finding.rule_id,
    )


def rank_findings(findings: Iterable[Finding]) -> list[Finding]:
    """Deduplicate and order findings without shared state."""
    aggregator = FindingAggregator()
    aggregator.merge(findings)
    return aggregator.results()


class FindingAggregator:
    """Merge findings from any number of analyses into one ranked list.

    Findings with the same category and location are duplicates; the most
    severe one is kept, and the first one merged wins a tie. Merging is
    lock-protected so batch workers may add their results concurrently.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._findings: dict[tuple[FindingCategory, Location], Finding] = {}

    def add(self, finding: Finding) -> None:
        self.merge((finding,))

    def merge(self, findings: Iterable[Finding]) -> None:
        findings = list(findings)
        with self._lock:
            for finding in findings:
                kept = self._findings.get(finding.key)
                if kept is None or finding.severity.rank > kept.severity.rank:
                    self._findings[finding.key] = finding

    def results(self) -> list[Finding]:
        """The final ordered sequence of findings."""
        with self._lock:
            findings = list(self._findings.values())
        return sorted(findings, key=sort_key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._findings)
