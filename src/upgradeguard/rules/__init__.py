"""Rule system for UpgradeGuard.

Every check is a rule object with static metadata. Rules are registered when
their category package is imported.

Available rule categories:
- Initialization rules (UG-001 to UG-005): unprotected, re-enterable and
  unvalidated initializers
- Storage rules (UG-101 to UG-102): layout shifts and shrinks across upgrades
- Authorization rules (UG-201 to UG-203): missing or empty upgrade guards
"""

# Import base classes and registry
from upgradeguard.rules.base import AnalysisRule
from upgradeguard.rules.executors import RuleExecutor
from upgradeguard.rules.registry import RuleRegistry, registry

# Import all rule modules to trigger registration
import upgradeguard.rules.authorization  # noqa: F401
import upgradeguard.rules.initialization  # noqa: F401
import upgradeguard.rules.storage  # noqa: F401

__all__ = [
    "AnalysisRule",
    "RuleExecutor",
    "RuleRegistry",
    "registry",
]


def get_rule_by_id(rule_id: str):
    """Get a specific rule by ID.

    Args:
        rule_id: Rule identifier (e.g., "UG-001")

    Returns:
        Rule instance if found, None otherwise
    """
    return registry.get_rule_by_id(rule_id)


def list_all_rules():
    """List all registered rules.

    Returns:
        Dictionary mapping rule IDs to rule metadata
    """
    return registry.list_all_rules()
