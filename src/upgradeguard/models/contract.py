"""Models for a normalized, read-only contract version."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional


class Visibility(Enum):
    """Function visibility."""

    PUBLIC = "public"
    EXTERNAL = "external"
    INTERNAL = "internal"
    PRIVATE = "private"

    @property
    def is_callable_externally(self) -> bool:
        return self in (Visibility.PUBLIC, Visibility.EXTERNAL)


class StatementKind(Enum):
    """Kinds of abstract body statements."""

    REQUIRE = "require"
    WRITE = "write"
    CALL = "call"
    COMPUTE = "compute"
    PLACEHOLDER = "placeholder"


class CheckKind(Enum):
    """Shape of the condition a require statement asserts."""

    NONZERO = "nonzero"  # x != 0, x != address(0)
    RANGE = "range"  # x <= MAX, x > 0
    EQUALS = "equals"  # a == b
    NOT = "not"  # !flag
    GENERIC = "generic"


class Capability(Enum):
    """Behavior observed in a modifier or function body."""

    ONE_TIME_GUARD = "one-time-guard"  # checks and sets a dedicated flag
    INITIALIZING_GUARD = "initializing-guard"  # checks a flag without setting it
    ACCESS_CHECK = "access-check"  # compares the caller against something
    STATE_CHECK = "state-check"  # asserts anything at all
    NO_OP = "no-op"  # placeholder only


class CriticalKind(Enum):
    """Why a storage slot is security-critical."""

    OWNER = "owner"
    RATE = "rate"


@dataclass(frozen=True)
class Statement:
    """An abstract statement of a function or modifier body.

    Attributes:
        kind: Statement kind
        target: Slot written, function called, or arithmetic operator
        operands: Identifiers the statement reads
        check: Condition shape (require statements only)
    """

    kind: StatementKind
    target: Optional[str] = None
    operands: tuple[str, ...] = ()
    check: Optional[CheckKind] = None


@dataclass(frozen=True)
class StorageSlot:
    """A persistent variable declaration.

    Attributes:
        index: Ordinal position, contiguous from 0
        type_name: Declared type
        name: Variable name
        size: Byte size estimate
        span: Number of 32-byte words occupied (>1 for fixed arrays and inline structs)
        offset: First word occupied (cumulative span of preceding slots)
        reserved: True if this is a reserved gap
        members: Struct members, for element-wise comparison
        critical: Why the slot is critical, if it is
    """

    index: int
    type_name: str
    name: str
    size: int = 32
    span: int = 1
    offset: int = 0
    reserved: bool = False
    members: tuple[StorageSlot, ...] = ()
    critical: Optional[CriticalKind] = None

    @property
    def is_aggregate(self) -> bool:
        return self.span > 1 or bool(self.members)

    @property
    def end(self) -> int:
        """First word after this slot."""
        return self.offset + self.span


@dataclass(frozen=True)
class ModifierInfo:
    """A declared modifier.

    Attributes:
        name: Modifier name
        body: Abstract body statements
        capabilities: Behavior observed in the body
        flag_slots: Slots the one-time/initializing guard checks
        guarded_slots: Slots compared against the caller
    """

    name: str
    body: tuple[Statement, ...] = ()
    capabilities: frozenset[Capability] = frozenset()
    flag_slots: frozenset[str] = frozenset()
    guarded_slots: frozenset[str] = frozenset()


@dataclass(frozen=True)
class FunctionInfo:
    """A declared function.

    Attributes:
        name: Function name ("constructor" for constructors)
        signature: Canonical signature, e.g. "initialize(address)"
        visibility: Function visibility
        modifiers: Names of applied modifiers
        writes: Indices of storage slots the body writes
        parameters: Parameter names
        body: Abstract body statements
        calls: Names of functions the body calls
        capabilities: Behavior observed in the body (transitively through calls)
        flag_slots: Slots an inline one-time guard checks
        guarded_slots: Slots an inline access check compares against the caller
        is_constructor: True for the constructor
        is_initializer_candidate: Name matches an initializer pattern or is the constructor
        is_upgrade_candidate: Name matches an upgrade entry point or authorization hook
    """

    name: str
    signature: str
    visibility: Visibility
    modifiers: frozenset[str] = frozenset()
    writes: frozenset[int] = frozenset()
    parameters: tuple[str, ...] = ()
    body: tuple[Statement, ...] = ()
    calls: tuple[str, ...] = ()
    capabilities: frozenset[Capability] = frozenset()
    flag_slots: frozenset[str] = frozenset()
    guarded_slots: frozenset[str] = frozenset()
    is_constructor: bool = False
    is_initializer_candidate: bool = False
    is_upgrade_candidate: bool = False

    def statements(self, kind: StatementKind) -> list[Statement]:
        return [stmt for stmt in self.body if stmt.kind == kind]


@dataclass(frozen=True)
class ContractVersion:
    """One analyzed version of a contract. Read-only once loaded.

    Attributes:
        contract_id: Identifier of this version
        slots: Storage slots in ordinal order
        functions: FunctionInfo by signature
        modifiers: ModifierInfo by name
        is_proxy_implementation: True if this is logic behind a proxy
        bases: Inheritance order, most base first
        source_format: Front end the version was loaded from
    """

    contract_id: str
    slots: tuple[StorageSlot, ...] = ()
    functions: Mapping[str, FunctionInfo] = field(default_factory=dict)
    modifiers: Mapping[str, ModifierInfo] = field(default_factory=dict)
    is_proxy_implementation: bool = False
    bases: tuple[str, ...] = ()
    source_format: str = "model"

    def __post_init__(self) -> None:
        object.__setattr__(self, "functions", MappingProxyType(dict(self.functions)))
        object.__setattr__(self, "modifiers", MappingProxyType(dict(self.modifiers)))

    def __hash__(self) -> int:
        return hash((self.contract_id, self.slots, self.is_proxy_implementation))

    @property
    def modifier_names(self) -> frozenset[str]:
        return frozenset(self.modifiers)

    def slot_by_name(self, name: str) -> Optional[StorageSlot]:
        for slot in self.slots:
            if slot.name == name:
                return slot
        return None

    def slot_names(self, indices: frozenset[int]) -> frozenset[str]:
        return frozenset(self.slots[i].name for i in indices if 0 <= i < len(self.slots))

    def functions_named(self, name: str) -> list[FunctionInfo]:
        return [f for f in self.functions.values() if f.name == name]

    @property
    def initializers(self) -> list[FunctionInfo]:
        return [f for f in self.functions.values() if f.is_initializer_candidate]

    @property
    def upgrade_entry_points(self) -> list[FunctionInfo]:
        return [f for f in self.functions.values() if f.is_upgrade_candidate]

    @property
    def constructor(self) -> Optional[FunctionInfo]:
        for function in self.functions.values():
            if function.is_constructor:
                return function
        return None
