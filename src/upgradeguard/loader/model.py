"""Normalization of the native contract-model document into a ContractVersion.

The document shape::

    {
      "id": "VaultV1",
      "isProxyImplementation": true,
      "bases": ["Initializable", "VaultV1"],
      "storage": [{"name": "owner", "type": "address"}, ...],
      "modifiers": {"initializer": {"body": [...]}},
      "functions": {"initialize(address)": {"visibility": "public", ...}}
    }

Body statements are ``{"op": "require"|"write"|"call"|"compute"|"placeholder",
"target": ..., "operands": [...], "check": ...}``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import Any, Optional

from upgradeguard.config import UpgradeGuardConfig
from upgradeguard.errors import MalformedInputError
from upgradeguard.loader.capabilities import BodyTraits, CapabilityClassifier, base_name
from upgradeguard.models.contract import (
    CheckKind,
    ContractVersion,
    CriticalKind,
    FunctionInfo,
    ModifierInfo,
    Statement,
    StatementKind,
    StorageSlot,
    Visibility,
)

logger = logging.getLogger(__name__)

WORD = 32
ARRAY_TYPE = re.compile(r"^(?P<element>.+)\[(?P<length>[^\[\]]*)\]$")
INT_TYPE = re.compile(r"^u?int(?P<bits>\d*)$")
FIXED_BYTES_TYPE = re.compile(r"^bytes(?P<size>\d+)$")


def estimate_type(type_name: str) -> tuple[int, int]:
    """Estimate (byte size, word span) of a declared type.

    Sub-word packing is not modeled: every declaration starts a new word.

    Raises:
        ValueError: If a fixed array length is not a number
    """
    type_name = type_name.strip()
    match = ARRAY_TYPE.match(type_name)
    if match:
        length = match.group("length").strip()
        if not length:
            return WORD, 1  # dynamic array: length word only
        if not length.isdigit():
            raise ValueError(f"unresolved array length '{length}' in {type_name}")
        _, element_span = estimate_type(match.group("element"))
        span = int(length) * element_span
        return span * WORD, span

    if type_name.startswith("mapping"):
        return WORD, 1
    if type_name.startswith(("address", "contract ", "interface ")):
        return 20, 1
    if type_name == "bool" or type_name.startswith("enum "):
        return 1, 1

    match = INT_TYPE.match(type_name)
    if match:
        bits = match.group("bits")
        return (int(bits) // 8 if bits else WORD), 1

    match = FIXED_BYTES_TYPE.match(type_name)
    if match:
        return int(match.group("size")), 1

    return WORD, 1


def is_address_type(type_name: str) -> bool:
    return type_name.startswith(("address", "contract ", "interface "))


def is_numeric_type(type_name: str) -> bool:
    return bool(INT_TYPE.match(type_name))


class ContractModelLoader:
    """Build a ContractVersion from a contract-model document.

    Pure transformation: the same document always yields an equal
    ContractVersion.
    """

    def __init__(self, config: UpgradeGuardConfig | None = None) -> None:
        self.config = config or UpgradeGuardConfig()

    def load(
        self,
        data: Any,
        *,
        source: str | None = None,
        is_proxy_implementation: bool | None = None,
        source_format: str = "model",
    ) -> ContractVersion:
        """Normalize a contract-model document.

        Args:
            data: Parsed JSON document
            source: Where the document came from (for error messages)
            is_proxy_implementation: Override the document's flag
            source_format: Front end that produced the document

        Returns:
            Read-only ContractVersion

        Raises:
            MalformedInputError: If slot ordering or a visibility cannot be resolved
        """
        if not isinstance(data, dict):
            raise MalformedInputError("contract model must be a JSON object", source)

        contract_id = data.get("id") or data.get("name")
        if not isinstance(contract_id, str) or not contract_id:
            raise MalformedInputError("contract model has no 'id'", source)
        source = source or contract_id

        slots = self._load_slots(data.get("storage", []), source)
        slot_types = {slot.name: slot.type_name for slot in slots}

        modifier_bodies = {
            name: self._load_body(entry, f"modifier {name}", source)
            for name, entry in _entries(data.get("modifiers", {}), "name", source)
        }
        function_entries = list(_entries(data.get("functions", {}), "signature", source))

        functions_raw: dict[str, tuple[str, tuple[Statement, ...]]] = {}
        for signature, entry in function_entries:
            name = self._function_name(signature, entry)
            functions_raw[signature] = (name, self._load_body(entry, signature, source))

        classifier = CapabilityClassifier(slot_types, self.config.sender_aliases)
        modifier_traits, function_traits = classifier.classify(modifier_bodies, functions_raw)

        modifiers = {
            name: _modifier_info(name, body, modifier_traits[name])
            for name, body in modifier_bodies.items()
        }

        index_by_name = {slot.name: slot.index for slot in slots}
        functions = {}
        for signature, entry in function_entries:
            name, body = functions_raw[signature]
            functions[signature] = self._function_info(
                signature, name, entry, body, function_traits[signature], index_by_name, source
            )
            for modifier in functions[signature].modifiers:
                if modifier not in modifiers:
                    logger.debug("%s: %s applies undeclared modifier %s", source, signature, modifier)

        slots = self._tag_critical(slots, modifiers, functions)

        if is_proxy_implementation is None:
            is_proxy_implementation = bool(data.get("isProxyImplementation", False))

        version = ContractVersion(
            contract_id=contract_id,
            slots=tuple(slots),
            functions=functions,
            modifiers=modifiers,
            is_proxy_implementation=is_proxy_implementation,
            bases=tuple(str(b) for b in data.get("bases", [])),
            source_format=source_format,
        )
        logger.debug(
            "Loaded %s: %d slots, %d functions, %d modifiers",
            contract_id,
            len(version.slots),
            len(version.functions),
            len(version.modifiers),
        )
        return version

    def _load_slots(self, storage: Any, source: str) -> list[StorageSlot]:
        if not isinstance(storage, list):
            raise MalformedInputError("'storage' must be a list", source)

        entries = [self._check_slot_entry(entry, source) for entry in storage]
        explicit = [entry.get("index") for entry in entries]
        if any(index is not None for index in explicit):
            if any(not isinstance(index, int) or isinstance(index, bool) for index in explicit):
                raise MalformedInputError(
                    "storage ordering is ambiguous: some slots lack an integer 'index'", source
                )
            if sorted(explicit) != list(range(len(entries))):
                raise MalformedInputError(
                    f"storage indices must be unique and contiguous from 0, got {explicit}",
                    source,
                )
            entries = sorted(entries, key=lambda entry: entry["index"])

        slots = []
        offset = 0
        for index, entry in enumerate(entries):
            slot = self._build_slot(entry, index, offset, source)
            slots.append(slot)
            offset = slot.end
        return slots

    def _check_slot_entry(self, entry: Any, source: str) -> dict[str, Any]:
        if not isinstance(entry, dict):
            raise MalformedInputError(f"storage entry must be an object, got {entry!r}", source)
        for key in ("name", "type"):
            if not isinstance(entry.get(key), str) or not entry[key].strip():
                raise MalformedInputError(f"storage entry {entry!r} has no '{key}'", source)
        return entry

    def _build_slot(
        self, entry: dict[str, Any], index: int, offset: int, source: str
    ) -> StorageSlot:
        name = entry["name"].strip()
        type_name = entry["type"].strip()

        members = []
        member_offset = 0
        for position, member in enumerate(entry.get("members", []) or []):
            built = self._build_slot(
                self._check_slot_entry(member, source), position, member_offset, source
            )
            members.append(built)
            member_offset = built.end

        try:
            size, span = estimate_type(type_name)
        except ValueError as e:
            raise MalformedInputError(f"cannot place slot '{name}': {e}", source) from e
        if members and not ARRAY_TYPE.match(type_name):
            span = member_offset
            size = span * WORD

        explicit_span = entry.get("slots")
        if explicit_span is not None:
            if not isinstance(explicit_span, int) or explicit_span < 1:
                raise MalformedInputError(f"slot '{name}' has invalid 'slots'", source)
            span = explicit_span
            size = max(size, span * WORD) if span > 1 else size
        if isinstance(entry.get("size"), int):
            size = entry["size"]

        return StorageSlot(
            index=index,
            type_name=type_name,
            name=name,
            size=size,
            span=span,
            offset=offset,
            reserved=bool(entry.get("reserved", self.config.is_reserved_name(name))),
            members=tuple(members),
        )

    def _function_name(self, signature: str, entry: dict[str, Any]) -> str:
        if entry.get("kind") == "constructor":
            return "constructor"
        return str(entry.get("name") or signature.split("(", 1)[0]).strip()

    def _function_info(
        self,
        signature: str,
        name: str,
        entry: dict[str, Any],
        body: tuple[Statement, ...],
        traits: BodyTraits,
        index_by_name: dict[str, int],
        source: str,
    ) -> FunctionInfo:
        visibility = entry.get("visibility")
        try:
            visibility = Visibility(str(visibility).lower())
        except ValueError:
            raise MalformedInputError(
                f"function {signature} has unresolvable visibility {visibility!r}", source
            ) from None

        is_constructor = entry.get("kind") == "constructor"
        writes = frozenset(
            index_by_name[base_name(stmt.target)]
            for stmt in body
            if stmt.kind == StatementKind.WRITE
            and stmt.target
            and base_name(stmt.target) in index_by_name
        )
        return FunctionInfo(
            name=name,
            signature=signature,
            visibility=visibility,
            modifiers=frozenset(_string_list(entry.get("modifiers", []), signature, source)),
            writes=writes,
            parameters=tuple(_string_list(entry.get("parameters", []), signature, source)),
            body=body,
            calls=tuple(s.target for s in body if s.kind == StatementKind.CALL and s.target),
            capabilities=frozenset(traits.capabilities),
            flag_slots=frozenset(traits.flag_slots),
            guarded_slots=frozenset(traits.guarded_slots),
            is_constructor=is_constructor,
            is_initializer_candidate=is_constructor or self.config.is_initializer_name(name),
            is_upgrade_candidate=not is_constructor and self.config.is_upgrade_name(name),
        )

    def _load_body(self, entry: Any, owner: str, source: str) -> tuple[Statement, ...]:
        if not isinstance(entry, dict):
            raise MalformedInputError(f"{owner} must be an object", source)
        body = entry.get("body", [])
        if not isinstance(body, list):
            raise MalformedInputError(f"{owner} body must be a list", source)
        return tuple(self._load_statement(stmt, owner, source) for stmt in body)

    def _load_statement(self, stmt: Any, owner: str, source: str) -> Statement:
        if not isinstance(stmt, dict):
            raise MalformedInputError(f"{owner}: statement must be an object", source)
        try:
            kind = StatementKind(stmt.get("op"))
            check = CheckKind(stmt["check"]) if stmt.get("check") else None
        except ValueError as e:
            raise MalformedInputError(f"{owner}: {e}", source) from e

        if check is None and kind == StatementKind.REQUIRE:
            check = CheckKind.GENERIC
        target = stmt.get("target")
        return Statement(
            kind=kind,
            target=str(target) if target is not None else None,
            operands=tuple(_string_list(stmt.get("operands", []), owner, source)),
            check=check,
        )

    def _tag_critical(
        self,
        slots: list[StorageSlot],
        modifiers: dict[str, ModifierInfo],
        functions: dict[str, FunctionInfo],
    ) -> list[StorageSlot]:
        guarded = set()
        for info in [*modifiers.values(), *functions.values()]:
            guarded |= info.guarded_slots

        tagged = []
        for slot in slots:
            critical: Optional[CriticalKind] = None
            if is_address_type(slot.type_name) and (
                slot.name in guarded or self.config.is_owner_name(slot.name)
            ):
                critical = CriticalKind.OWNER
            elif is_numeric_type(slot.type_name) and self.config.is_rate_name(slot.name):
                # whether the rate feeds a mul/div is decided by UG-003
                critical = CriticalKind.RATE
            tagged.append(replace(slot, critical=critical) if critical else slot)
        return tagged


def _modifier_info(name: str, body: tuple[Statement, ...], traits: BodyTraits) -> ModifierInfo:
    return ModifierInfo(
        name=name,
        body=body,
        capabilities=frozenset(traits.capabilities),
        flag_slots=frozenset(traits.flag_slots),
        guarded_slots=frozenset(traits.guarded_slots),
    )


def _entries(section: Any, key: str, source: str):
    """Yield (key, entry) from either a mapping or a list of objects."""
    if isinstance(section, dict):
        yield from section.items()
    elif isinstance(section, list):
        for entry in section:
            if not isinstance(entry, dict) or not isinstance(entry.get(key), str):
                raise MalformedInputError(f"list entry without '{key}': {entry!r}", source)
            yield entry[key], entry
    else:
        raise MalformedInputError(f"expected an object or list, got {type(section).__name__}", source)


def _string_list(value: Any, owner: str, source: str) -> list[str]:
    if not isinstance(value, list):
        raise MalformedInputError(f"{owner}: expected a list, got {value!r}", source)
    return [str(item) for item in value]
