"""Behavior-based classification of modifier and function bodies.

Guards are recognized by what their bodies do, not by what they are called:
a body that requires a condition on a slot and then writes that slot is a
one-time guard, whatever library it came from.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from upgradeguard.models.contract import Capability, CheckKind, Statement, StatementKind

# Types an initialized flag or version counter is declared with
FLAG_TYPE = re.compile(r"^(bool|uint(8|16|32|64))$")


@dataclass
class BodyTraits:
    """Capabilities observed in one body, resolved through internal calls."""

    capabilities: set[Capability] = field(default_factory=set)
    flag_slots: set[str] = field(default_factory=set)
    guarded_slots: set[str] = field(default_factory=set)

    def absorb(self, other: BodyTraits) -> bool:
        """Merge inherited traits, returning True if anything changed."""
        before = (len(self.capabilities), len(self.flag_slots), len(self.guarded_slots))
        self.capabilities |= other.capabilities - {Capability.NO_OP}
        self.flag_slots |= other.flag_slots
        self.guarded_slots |= other.guarded_slots
        return before != (len(self.capabilities), len(self.flag_slots), len(self.guarded_slots))


def base_name(target: str) -> str:
    """Reduce ``balances[user]`` or ``config.fee`` to the variable written."""
    for sep in ("[", "."):
        target = target.split(sep, 1)[0]
    return target.strip()


class CapabilityClassifier:
    """Classify modifier and function bodies of one contract.

    Args:
        slot_types: Declared type of each storage variable, by name
        sender_aliases: Operands that denote the caller
    """

    def __init__(self, slot_types: Mapping[str, str], sender_aliases: Iterable[str]) -> None:
        self.slot_names = frozenset(slot_types)
        self.flag_names = frozenset(
            name for name, type_name in slot_types.items() if FLAG_TYPE.match(type_name)
        )
        self.sender_aliases = frozenset(sender_aliases)

    def classify(
        self,
        modifiers: Mapping[str, tuple[Statement, ...]],
        functions: Mapping[str, tuple[str, tuple[Statement, ...]]],
    ) -> tuple[dict[str, BodyTraits], dict[str, BodyTraits]]:
        """Classify every body.

        Args:
            modifiers: Modifier bodies by name
            functions: (name, body) by function signature

        Returns:
            Tuple of (modifier traits by name, function traits by signature)
        """
        modifier_traits = {name: self._direct(body) for name, body in modifiers.items()}
        function_traits = {sig: self._direct(body) for sig, (_, body) in functions.items()}

        # Internal calls resolve by name and may hit several overloads.
        by_name: dict[str, list[str]] = {}
        for sig, (name, _) in functions.items():
            by_name.setdefault(name, []).append(sig)

        bodies = [(modifier_traits[name], body) for name, body in modifiers.items()]
        bodies += [(function_traits[sig], body) for sig, (_, body) in functions.items()]

        changed = True
        while changed:
            changed = False
            for traits, body in bodies:
                for callee in _calls(body):
                    for sig in by_name.get(callee, ()):
                        if function_traits[sig] is not traits:
                            changed |= traits.absorb(function_traits[sig])

        # A flag only one body sets is still a flag everywhere it is checked.
        flags = set()
        for traits in [*modifier_traits.values(), *function_traits.values()]:
            flags |= traits.flag_slots
        for traits, body in bodies:
            checked = self._required_slots(body, include_access=False)
            if checked & flags and Capability.ONE_TIME_GUARD not in traits.capabilities:
                traits.capabilities.add(Capability.INITIALIZING_GUARD)
                traits.flag_slots |= checked & flags

        for traits, body in bodies:
            writes = [s for s in body if s.kind == StatementKind.WRITE]
            if Capability.STATE_CHECK not in traits.capabilities and not writes:
                traits.capabilities.add(Capability.NO_OP)

        return modifier_traits, function_traits

    def _direct(self, body: tuple[Statement, ...]) -> BodyTraits:
        traits = BodyTraits()
        requires = [s for s in body if s.kind == StatementKind.REQUIRE]
        if requires:
            traits.capabilities.add(Capability.STATE_CHECK)

        for stmt in requires:
            if self._is_access_check(stmt):
                traits.capabilities.add(Capability.ACCESS_CHECK)
                traits.guarded_slots |= {
                    base_name(op) for op in stmt.operands if base_name(op) in self.slot_names
                }

        written = {
            base_name(s.target) for s in body if s.kind == StatementKind.WRITE and s.target
        }
        flags = self._required_slots(body, include_access=False) & written & self.flag_names
        if flags:
            traits.capabilities.add(Capability.ONE_TIME_GUARD)
            traits.flag_slots |= flags
        return traits

    def _is_access_check(self, stmt: Statement) -> bool:
        return any(op in self.sender_aliases for op in stmt.operands)

    def _required_slots(self, body: tuple[Statement, ...], include_access: bool) -> set[str]:
        slots = set()
        for stmt in body:
            # x != 0 asserts the slot is already set, which is never a first-call check
            if stmt.kind != StatementKind.REQUIRE or stmt.check == CheckKind.NONZERO:
                continue
            if not include_access and self._is_access_check(stmt):
                continue
            slots |= {base_name(op) for op in stmt.operands if base_name(op) in self.slot_names}
        return slots


def _calls(body: tuple[Statement, ...]) -> list[str]:
    return [s.target for s in body if s.kind == StatementKind.CALL and s.target]
