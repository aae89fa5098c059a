"""Storage layout rules."""

from upgradeguard.rules.registry import registry
from upgradeguard.rules.storage.ug101_storage_shift import RULE_UG_101, rule_ug101
from upgradeguard.rules.storage.ug102_storage_shrink import RULE_UG_102, rule_ug102

# Register all storage rules
registry.register(rule_ug101)
registry.register(rule_ug102)

__all__ = [
    "RULE_UG_101",
    "RULE_UG_102",
    "rule_ug101",
    "rule_ug102",
]
