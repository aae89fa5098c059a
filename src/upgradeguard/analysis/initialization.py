"""Initialization analyzer."""

from upgradeguard.models.rules import RuleCategory
from upgradeguard.rules.executors import RuleExecutor


class InitializationAnalyzer(RuleExecutor):
    """Detect unprotected and re-enterable initializers and unvalidated
    critical parameters (rules UG-001 to UG-005)."""

    category = RuleCategory.INITIALIZATION
