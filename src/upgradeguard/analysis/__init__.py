"""Analyzers and the pipeline that runs them."""

from upgradeguard.analysis.aggregator import FindingAggregator, rank_findings
from upgradeguard.analysis.authorization import UpgradeAuthorizationAnalyzer
from upgradeguard.analysis.context import AnalysisContext
from upgradeguard.analysis.initialization import InitializationAnalyzer
from upgradeguard.analysis.pipeline import AnalysisPipeline
from upgradeguard.analysis.storage import StorageLayoutDiffer

# Register the rules the analyzers execute
import upgradeguard.rules  # noqa: F401

__all__ = [
    "AnalysisContext",
    "AnalysisPipeline",
    "FindingAggregator",
    "InitializationAnalyzer",
    "StorageLayoutDiffer",
    "UpgradeAuthorizationAnalyzer",
    "rank_findings",
]
