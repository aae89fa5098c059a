"""Storage layout comparison between two contract versions.

Old variables are matched to new ones by name, or failing that to a new
variable declared at the same word under a fresh name (a rename, possibly
with a new type). Their word offsets and types are then compared. An
insertion is never reported by itself: it surfaces on every old variable it
displaces.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from upgradeguard.config import UpgradeGuardConfig
from upgradeguard.errors import IncomparableVersionsError
from upgradeguard.models.contract import ContractVersion, StorageSlot

logger = logging.getLogger(__name__)


class ChangeKind(Enum):
    MOVED = "moved"
    RETYPED = "retyped"
    REMOVED = "removed"


@dataclass(frozen=True)
class LayoutChange:
    """One incompatible difference between an old and a new layout.

    Attributes:
        kind: What happened to the old variable
        old: Variable in the old version
        new: Matching variable in the new version (None if removed)
        detail: Human-readable description
    """

    kind: ChangeKind
    old: StorageSlot
    new: Optional[StorageSlot]
    detail: str


def validate_layouts(old: ContractVersion, new: ContractVersion) -> None:
    """Check that both versions carry what a layout comparison needs.

    Raises:
        IncomparableVersionsError: If an id or a slot's name or type is missing
    """
    for label, version in (("old", old), ("new", new)):
        if not version.contract_id:
            raise IncomparableVersionsError(f"{label} version has no contract id")
        for slot in version.slots:
            if not slot.name or not slot.type_name:
                raise IncomparableVersionsError(
                    f"{label} version {version.contract_id} has an untyped or unnamed "
                    f"slot at index {slot.index}"
                )


def walk_layouts(
    old: ContractVersion, new: ContractVersion, config: UpgradeGuardConfig
) -> list[LayoutChange]:
    """Compare two storage layouts in upgrade direction.

    Args:
        old: Deployed version
        new: Candidate upgrade
        config: Reserved-gap policy

    Returns:
        Incompatible changes, in old slot order

    Raises:
        IncomparableVersionsError: If the versions cannot be compared
    """
    if not old.slots:
        return []
    validate_layouts(old, new)

    new_by_name = {slot.name: slot for slot in new.slots}
    old_names = {slot.name for slot in old.slots}
    changes: list[LayoutChange] = []

    for slot in old.slots:
        match = new_by_name.get(slot.name) or _renamed(slot, new, old_names)
        gap = slot.reserved and config.allow_gap_insertion

        if match is None:
            if not slot.reserved:
                changes.append(
                    LayoutChange(
                        ChangeKind.REMOVED,
                        slot,
                        None,
                        f"'{slot.name}' ({slot.type_name}) at index {slot.index} was removed",
                    )
                )
            continue
        if gap:
            # A gap may shrink to make room; displaced neighbours still show up as moved
            continue

        retyped = _type_change(slot, match)
        if retyped and match.name != slot.name:
            retyped = f"{retyped} (word {slot.offset} is now '{match.name}')"
        if retyped:
            changes.append(LayoutChange(ChangeKind.RETYPED, slot, match, retyped))
        elif slot.offset != match.offset:
            changes.append(
                LayoutChange(
                    ChangeKind.MOVED,
                    slot,
                    match,
                    (
                        f"'{slot.name}' moved from index {slot.index} to {match.index} "
                        f"(word {slot.offset} to {match.offset})"
                    ),
                )
            )

    if changes:
        logger.debug(
            "%s -> %s: %d layout change(s)", old.contract_id, new.contract_id, len(changes)
        )
    return changes


def _renamed(
    slot: StorageSlot, new: ContractVersion, old_names: set[str]
) -> Optional[StorageSlot]:
    """A new, non-reserved variable at the same word under a name the old version never used.

    Its type may differ from the old one; the caller reports that as a retype.
    """
    for candidate in new.slots:
        if (
            candidate.offset == slot.offset
            and not candidate.reserved
            and candidate.name not in old_names
        ):
            return candidate
    return None


def _type_change(old: StorageSlot, new: StorageSlot) -> Optional[str]:
    """Describe how a variable's type changed, or None if it did not.

    Aggregates are compared by declared type first; members are compared
    element-wise only when the declared types agree.
    """
    if old.type_name != new.type_name:
        return (
            f"'{old.name}' changed type from {old.type_name} to {new.type_name}; "
            f"existing data would be reinterpreted"
        )
    if old.members or new.members:
        for position, before in enumerate(old.members):
            if position >= len(new.members):
                return f"'{old.name}' lost member '{before.name}' of {old.type_name}"
            after = new.members[position]
            if (before.name, before.type_name, before.span) != (
                after.name,
                after.type_name,
                after.span,
            ):
                return (
                    f"'{old.name}' member {position} changed from {before.type_name} "
                    f"{before.name} to {after.type_name} {after.name}"
                )
        return None
    if (old.size, old.span) != (new.size, new.span):
        return (
            f"'{old.name}' changed size from {old.size} to {new.size} bytes; "
            f"existing data would be reinterpreted"
        )
    return None
