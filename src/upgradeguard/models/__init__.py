"""Data models for UpgradeGuard."""

from upgradeguard.models.contract import (
    Capability,
    CheckKind,
    ContractVersion,
    CriticalKind,
    FunctionInfo,
    ModifierInfo,
    Statement,
    StatementKind,
    StorageSlot,
    Visibility,
)
from upgradeguard.models.core import Location
from upgradeguard.models.report import AnalysisResult, BatchAnalysisReport, ReportSummary
from upgradeguard.models.rules import Finding, FindingCategory, Rule, RuleCategory, Severity

__all__ = [
    "AnalysisResult",
    "BatchAnalysisReport",
    "Capability",
    "CheckKind",
    "ContractVersion",
    "CriticalKind",
    "Finding",
    "FindingCategory",
    "FunctionInfo",
    "Location",
    "ModifierInfo",
    "ReportSummary",
    "Rule",
    "RuleCategory",
    "Severity",
    "Statement",
    "StatementKind",
    "StorageSlot",
    "Visibility",
]
