"""UpgradeGuard - static analysis of upgradeable contract initialization and upgrade safety."""

__version__ = "0.1.0"
