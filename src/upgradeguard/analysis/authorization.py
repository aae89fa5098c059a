"""Upgrade authorization analyzer."""

from upgradeguard.models.rules import RuleCategory
from upgradeguard.rules.executors import RuleExecutor


class UpgradeAuthorizationAnalyzer(RuleExecutor):
    """Detect missing or empty access control on upgrade entry points
    (rules UG-201 to UG-203).

    UG-203 reads the initialization findings already in the context, so this
    analyzer must run after :class:`InitializationAnalyzer`.
    """

    category = RuleCategory.AUTHORIZATION
