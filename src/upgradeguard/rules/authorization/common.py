"""How an upgrade entry point is protected."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from upgradeguard.config import UpgradeGuardConfig
from upgradeguard.models.contract import Capability, ContractVersion, FunctionInfo
from upgradeguard.models.rules import FindingCategory
from upgradeguard.rules.guards import (
    applied_modifiers,
    guarded_slots,
    has_access_check,
    has_state_check,
    reachable,
)


@dataclass(frozen=True)
class UpgradeGuard:
    """Protection status of one upgrade entry point.

    Attributes:
        function: The upgrade candidate
        is_hook: True if it is an authorization override point
        hooks: Authorization hooks it delegates to
        protected: An access check gates the caller
        checked: Some check (access or otherwise) runs
        modifiers_check: At least one applied modifier asserts something
        guarded_slots: Slots the access checks compare against the caller
    """

    function: FunctionInfo
    is_hook: bool
    hooks: tuple[FunctionInfo, ...]
    protected: bool
    checked: bool
    modifiers_check: bool
    guarded_slots: frozenset[str]

    @property
    def delegates(self) -> bool:
        return bool(self.hooks)

    @property
    def verdict(self) -> Optional[FindingCategory]:
        """What is wrong with this entry point, or None if nothing is.

        Entry points that delegate are left to their hooks, which are upgrade
        candidates themselves. Without an access check, a guard that checks
        nothing at all (an empty hook, or modifiers that are bare placeholders)
        is an empty guard; anything else lets any caller through.
        """
        if self.protected or self.delegates:
            return None
        if self.is_hook:
            if self.checked:
                return FindingCategory.UPGRADE_UNAUTHORIZED
            return FindingCategory.UPGRADE_EMPTY_GUARD
        if not self.function.visibility.is_callable_externally:
            return None
        if self.function.modifiers and not self.modifiers_check:
            return FindingCategory.UPGRADE_EMPTY_GUARD
        return FindingCategory.UPGRADE_UNAUTHORIZED


def resolve_guard(
    version: ContractVersion, function: FunctionInfo, config: UpgradeGuardConfig
) -> UpgradeGuard:
    """Work out what protects an upgrade candidate."""
    is_hook = function.name in config.authorization_hooks
    hooks = tuple(
        callee
        for callee in reachable(version, function)
        if callee.name in config.authorization_hooks
    )
    checks = {Capability.ACCESS_CHECK, Capability.STATE_CHECK}
    return UpgradeGuard(
        function=function,
        is_hook=is_hook,
        hooks=hooks,
        protected=has_access_check(version, function),
        checked=has_state_check(version, function),
        modifiers_check=any(m.capabilities & checks for m in applied_modifiers(version, function)),
        guarded_slots=guarded_slots(version, function),
    )
