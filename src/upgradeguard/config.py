"""Configuration for UpgradeGuard.

Settings are plain data with sensible defaults. A project can override them
in ``upgradeguard.toml`` or in the ``[tool.upgradeguard]`` table of its
``pyproject.toml``.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field, fields
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Any

from upgradeguard.errors import ConfigError
from upgradeguard.models.rules import Severity


@dataclass(frozen=True)
class UpgradeGuardConfig:
    """Analysis policy.

    Attributes:
        initializer_patterns: Function name patterns treated as initializers
        upgrade_patterns: Function name patterns treated as upgrade entry points
        authorization_hooks: Names of upgrade authorization override points
        owner_slot_patterns: Name patterns of owner-like address slots
        rate_slot_patterns: Name patterns of fee/rate numeric slots
        sender_aliases: Operands that denote the caller in access checks
        reserved_slot_patterns: Name patterns of reserved storage gaps
        allow_gap_insertion: Accept new variables carved out of a reserved gap
        disabled_rules: Rule IDs that are never executed
        fail_on: Severities that make a run fail
    """

    initializer_patterns: tuple[str, ...] = ("initialize*", "reinitialize*")
    upgrade_patterns: tuple[str, ...] = ("upgradeTo*",)
    authorization_hooks: tuple[str, ...] = ("_authorizeUpgrade",)
    owner_slot_patterns: tuple[str, ...] = (
        "*owner*",
        "*admin*",
        "*governance*",
        "*guardian*",
        "*operator*",
    )
    rate_slot_patterns: tuple[str, ...] = ("*fee*", "*rate*", "*bps*", "*ratio*", "*percent*")
    sender_aliases: tuple[str, ...] = ("msg.sender", "_msgSender()", "tx.origin")
    reserved_slot_patterns: tuple[str, ...] = ("__gap*",)
    allow_gap_insertion: bool = True
    disabled_rules: frozenset[str] = field(default_factory=frozenset)
    fail_on: frozenset[Severity] = frozenset({Severity.CRITICAL, Severity.HIGH})

    def is_initializer_name(self, name: str) -> bool:
        return _matches(name, self.initializer_patterns)

    def is_upgrade_name(self, name: str) -> bool:
        return _matches(name, self.upgrade_patterns) or name in self.authorization_hooks

    def is_owner_name(self, name: str) -> bool:
        return _matches(name.lower(), self.owner_slot_patterns)

    def is_rate_name(self, name: str) -> bool:
        return _matches(name.lower(), self.rate_slot_patterns)

    def is_reserved_name(self, name: str) -> bool:
        return _matches(name, self.reserved_slot_patterns)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UpgradeGuardConfig:
        """Build a config from a mapping of overrides.

        Args:
            data: Keys matching the dataclass fields

        Returns:
            UpgradeGuardConfig with defaults for missing keys

        Raises:
            ConfigError: On unknown keys or invalid values
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")

        values: dict[str, Any] = {}
        for key, value in data.items():
            if key == "allow_gap_insertion":
                if not isinstance(value, bool):
                    raise ConfigError("allow_gap_insertion must be a boolean")
                values[key] = value
                continue
            if isinstance(value, str) or not isinstance(value, (list, tuple, set, frozenset)):
                raise ConfigError(f"{key} must be a list of strings")
            if key == "fail_on":
                try:
                    values[key] = frozenset(Severity(str(v).lower()) for v in value)
                except ValueError as e:
                    raise ConfigError(f"Invalid severity in fail_on: {e}") from e
            elif key == "disabled_rules":
                values[key] = frozenset(str(v) for v in value)
            else:
                values[key] = tuple(str(v) for v in value)
        return cls(**values)

    @classmethod
    def from_file(cls, path: Path | str) -> UpgradeGuardConfig:
        """Load configuration from a TOML file.

        ``pyproject.toml`` files are read from their ``[tool.upgradeguard]``
        table; any other file is read as a whole.

        Raises:
            ConfigError: If the file cannot be read or parsed
        """
        path = Path(path)
        try:
            with path.open("rb") as fh:
                document = tomllib.load(fh)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigError(f"Cannot read configuration {path}: {e}") from e

        if path.name == "pyproject.toml":
            document = document.get("tool", {}).get("upgradeguard", {})
        return cls.from_dict(document)


def _matches(name: str, patterns: tuple[str, ...]) -> bool:
    return any(fnmatchcase(name, pattern) for pattern in patterns)
