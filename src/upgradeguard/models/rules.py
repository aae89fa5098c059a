"""Models for rules and the findings they produce."""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from upgradeguard.models.core import Location


class Severity(Enum):
    """Finding severity levels."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"

    @property
    def rank(self) -> int:
        """Numeric rank, higher is more severe."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.CRITICAL: 4,
    Severity.HIGH: 3,
    Severity.MEDIUM: 2,
    Severity.LOW: 1,
    Severity.INFO: 0,
}


class FindingCategory(Enum):
    """What kind of weakness a finding describes."""

    INIT_UNPROTECTED = "init-unprotected"
    INIT_REENTRY = "init-reentry"
    INIT_UNVALIDATED_PARAM = "init-unvalidated-param"
    STORAGE_SHIFT = "storage-shift"
    STORAGE_SHRINK = "storage-shrink"
    UPGRADE_UNAUTHORIZED = "upgrade-unauthorized"
    UPGRADE_EMPTY_GUARD = "upgrade-empty-guard"


class RuleCategory(Enum):
    """Analysis phase a rule belongs to."""

    INITIALIZATION = "initialization"
    AUTHORIZATION = "authorization"
    STORAGE = "storage"


@dataclass(frozen=True)
class Rule:
    """Static metadata for an analysis rule.

    Attributes:
        rule_id: Unique rule identifier (e.g., "UG-001")
        name: Short rule name
        description: What the rule detects
        severity: Default severity of its findings
        category: Analysis phase
        finding_category: Category of the findings it emits
        references: External documentation links
        remediation: How to fix violations
    """

    rule_id: str
    name: str
    description: str
    severity: Severity
    category: RuleCategory
    finding_category: FindingCategory
    references: tuple[str, ...] = ()
    remediation: str = ""


@dataclass(frozen=True)
class Finding:
    """A single weakness found in a contract version.

    Findings are terminal once emitted: the aggregator only reorders and
    merges them.

    Attributes:
        rule_id: Rule that produced the finding
        severity: Severity level
        category: Finding category
        location: Contract and function/slot the finding refers to
        message: Human-readable explanation
        recommendation: How to fix the issue
        title: Name of the rule that produced the finding
        context: Additional structured detail
    """

    rule_id: str
    severity: Severity
    category: FindingCategory
    location: Location
    message: str
    recommendation: str = ""
    title: str = ""
    context: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        if not isinstance(self.context, MappingProxyType):
            object.__setattr__(self, "context", MappingProxyType(dict(self.context)))

    def __hash__(self) -> int:
        return hash((self.rule_id, self.severity, self.category, self.location, self.message))

    @property
    def key(self) -> tuple[FindingCategory, Location]:
        """Identity used for deduplication."""
        return (self.category, self.location)

    def to_dict(self) -> dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "title": self.title,
            "severity": self.severity.value,
            "category": self.category.value,
            "location": self.location.to_dict(),
            "explanation": self.message,
            "recommendation": self.recommendation,
        }

    @classmethod
    def from_rule(
        cls,
        rule: Rule,
        location: Location,
        message: str,
        *,
        severity: Severity | None = None,
        **context: Any,
    ) -> "Finding":
        """Create a finding carrying a rule's metadata."""
        return cls(
            rule_id=rule.rule_id,
            severity=severity or rule.severity,
            category=rule.finding_category,
            location=location,
            message=message,
            recommendation=rule.remediation,
            title=rule.name,
            context=context,
        )
