"""Initialization safety rules."""

from upgradeguard.rules.initialization.ug001_unprotected_initializer import RULE_UG_001, rule_ug001
from upgradeguard.rules.initialization.ug002_initializer_reentry import RULE_UG_002, rule_ug002
from upgradeguard.rules.initialization.ug003_unvalidated_parameter import RULE_UG_003, rule_ug003
from upgradeguard.rules.initialization.ug004_implementation_exposure import RULE_UG_004, rule_ug004
from upgradeguard.rules.initialization.ug005_unlocked_implementation import RULE_UG_005, rule_ug005
from upgradeguard.rules.registry import registry

# Register all initialization rules
registry.register(rule_ug001)
registry.register(rule_ug002)
registry.register(rule_ug003)
registry.register(rule_ug004)
registry.register(rule_ug005)

__all__ = [
    "RULE_UG_001",
    "RULE_UG_002",
    "RULE_UG_003",
    "RULE_UG_004",
    "RULE_UG_005",
    "rule_ug001",
    "rule_ug002",
    "rule_ug003",
    "rule_ug004",
    "rule_ug005",
]
