"""Exceptions raised by UpgradeGuard."""


class UpgradeGuardError(Exception):
    """Base class for all UpgradeGuard errors."""


class MalformedInputError(UpgradeGuardError):
    """Parsed contract input cannot be normalized into a ContractVersion.

    Fatal for the contract being loaded only; batch analysis of other
    contracts continues.
    """

    def __init__(self, message: str, source: str | None = None) -> None:
        self.source = source
        super().__init__(f"{source}: {message}" if source else message)


class IncomparableVersionsError(UpgradeGuardError):
    """Two contract versions cannot be compared slot by slot.

    Raised inside the storage layout differ and reported as a single
    critical storage-shift finding.
    """


class ConfigError(UpgradeGuardError):
    """Invalid UpgradeGuard configuration."""
