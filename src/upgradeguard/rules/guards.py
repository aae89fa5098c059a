"""Guard resolution shared by initialization and authorization rules.

Everything here reads capabilities the loader attached to modifiers and
functions; nothing matches library symbol names.
"""

from __future__ import annotations

from collections import deque

from upgradeguard.models.contract import (
    Capability,
    ContractVersion,
    FunctionInfo,
    ModifierInfo,
    StatementKind,
)


def applied_modifiers(version: ContractVersion, function: FunctionInfo) -> list[ModifierInfo]:
    """Declared modifiers applied to a function. Undeclared names resolve to nothing."""
    return [version.modifiers[name] for name in sorted(function.modifiers) if name in version.modifiers]


def _has(version: ContractVersion, function: FunctionInfo, capabilities: set[Capability]) -> bool:
    if function.capabilities & capabilities:
        return True
    return any(m.capabilities & capabilities for m in applied_modifiers(version, function))


def has_one_time_guard(version: ContractVersion, function: FunctionInfo) -> bool:
    """True if the function can only complete once (constructor, modifier or inline check-and-set)."""
    if function.is_constructor:
        return True
    return _has(version, function, {Capability.ONE_TIME_GUARD})


def has_initializing_guard(version: ContractVersion, function: FunctionInfo) -> bool:
    """True if the function is restricted to (or is itself) the initialization phase."""
    return _has(version, function, {Capability.ONE_TIME_GUARD, Capability.INITIALIZING_GUARD})


def has_access_check(version: ContractVersion, function: FunctionInfo) -> bool:
    return _has(version, function, {Capability.ACCESS_CHECK})


def has_state_check(version: ContractVersion, function: FunctionInfo) -> bool:
    return _has(version, function, {Capability.STATE_CHECK})


def guard_flag_slots(version: ContractVersion, function: FunctionInfo) -> frozenset[str]:
    """Flag slots of the one-time guards protecting a function."""
    flags = set(function.flag_slots)
    for modifier in applied_modifiers(version, function):
        if Capability.ONE_TIME_GUARD in modifier.capabilities:
            flags |= modifier.flag_slots
    return frozenset(flags)


def guarded_slots(version: ContractVersion, function: FunctionInfo) -> frozenset[str]:
    """Slots the function's access checks compare against the caller."""
    slots = set(function.guarded_slots)
    for modifier in applied_modifiers(version, function):
        slots |= modifier.guarded_slots
    return frozenset(slots)


def callees(version: ContractVersion, function: FunctionInfo) -> list[FunctionInfo]:
    """Functions a function calls directly, resolved by name across overloads."""
    found: dict[str, FunctionInfo] = {}
    for modifier in applied_modifiers(version, function):
        for stmt in modifier.body:
            if stmt.kind == StatementKind.CALL and stmt.target:
                for callee in version.functions_named(stmt.target):
                    found.setdefault(callee.signature, callee)
    for name in function.calls:
        for callee in version.functions_named(name):
            found.setdefault(callee.signature, callee)
    found.pop(function.signature, None)
    return list(found.values())


def reachable(version: ContractVersion, function: FunctionInfo) -> list[FunctionInfo]:
    """Functions transitively reachable through calls, in breadth-first order."""
    seen = {function.signature}
    order: list[FunctionInfo] = []
    queue = deque([function])
    while queue:
        current = queue.popleft()
        for callee in callees(version, current):
            if callee.signature in seen:
                continue
            seen.add(callee.signature)
            order.append(callee)
            queue.append(callee)
    return order


def transitive_writes(version: ContractVersion, function: FunctionInfo) -> frozenset[int]:
    """Slot indices written by the function or anything it calls."""
    writes = set(function.writes)
    for callee in reachable(version, function):
        writes |= callee.writes
    return frozenset(writes)


def arithmetic_operands(version: ContractVersion) -> frozenset[str]:
    """Names used as multiplication or division operands anywhere in the contract."""
    names: set[str] = set()
    bodies = [f.body for f in version.functions.values()]
    bodies += [m.body for m in version.modifiers.values()]
    for body in bodies:
        for stmt in body:
            if stmt.kind == StatementKind.COMPUTE and stmt.target in ("mul", "div"):
                names.update(stmt.operands)
    return frozenset(names)
