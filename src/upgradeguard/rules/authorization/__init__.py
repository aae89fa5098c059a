"""Upgrade authorization rules."""

from upgradeguard.rules.authorization.ug201_unauthorized_upgrade import RULE_UG_201, rule_ug201
from upgradeguard.rules.authorization.ug202_empty_upgrade_guard import RULE_UG_202, rule_ug202
from upgradeguard.rules.authorization.ug203_owner_takeover_chain import RULE_UG_203, rule_ug203
from upgradeguard.rules.registry import registry

# Register all authorization rules
registry.register(rule_ug201)
registry.register(rule_ug202)
registry.register(rule_ug203)

__all__ = [
    "RULE_UG_201",
    "RULE_UG_202",
    "RULE_UG_203",
    "rule_ug201",
    "rule_ug202",
    "rule_ug203",
]
