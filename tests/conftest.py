"""Pytest configuration and fixtures."""

import json
from pathlib import Path
from typing import Any, Callable

import pytest

from upgradeguard.config import UpgradeGuardConfig
from upgradeguard.loader.model import ContractModelLoader
from upgradeguard.models.contract import ContractVersion

# Body statements shared by the contract models below
INITIALIZER_GUARD = [
    {"op": "require", "operands": ["initialized"], "check": "not"},
    {"op": "write", "target": "initialized", "operands": ["true"]},
    {"op": "placeholder"},
]

ONLY_OWNER = [
    {"op": "require", "operands": ["msg.sender", "owner"], "check": "equals"},
    {"op": "placeholder"},
]

NO_OP = [{"op": "placeholder"}]


@pytest.fixture
def config() -> UpgradeGuardConfig:
    """Default configuration."""
    return UpgradeGuardConfig()


@pytest.fixture
def make_version(config: UpgradeGuardConfig) -> Callable[..., ContractVersion]:
    """Build a ContractVersion from contract-model fragments."""

    def build(
        contract_id: str = "Vault",
        storage: list[dict[str, Any]] | None = None,
        functions: dict[str, Any] | None = None,
        modifiers: dict[str, Any] | None = None,
        proxy: bool = False,
    ) -> ContractVersion:
        document = {
            "id": contract_id,
            "isProxyImplementation": proxy,
            "storage": storage or [],
            "modifiers": modifiers or {},
            "functions": functions or {},
        }
        return ContractModelLoader(config).load(document)

    return build


@pytest.fixture
def make_layout(make_version) -> Callable[..., ContractVersion]:
    """Build a ContractVersion with storage only, from (name, type) pairs."""

    def build(contract_id: str, *slots: tuple[str, str]) -> ContractVersion:
        return make_version(
            contract_id, storage=[{"name": name, "type": type_name} for name, type_name in slots]
        )

    return build


@pytest.fixture
def vault_v1_model() -> dict[str, Any]:
    """A guarded, owner-protected UUPS implementation."""
    return {
        "id": "VaultV1",
        "isProxyImplementation": True,
        "bases": ["Initializable", "UUPSUpgradeable", "VaultV1"],
        "storage": [
            {"name": "initialized", "type": "bool"},
            {"name": "owner", "type": "address"},
            {"name": "feeBps", "type": "uint256"},
            {"name": "__gap", "type": "uint256[48]"},
        ],
        "modifiers": {
            "initializer": {"body": INITIALIZER_GUARD},
            "onlyOwner": {"body": ONLY_OWNER},
        },
        "functions": {
            "constructor()": {
                "kind": "constructor",
                "visibility": "public",
                "body": [{"op": "write", "target": "initialized", "operands": ["true"]}],
            },
            "initialize(address,uint256)": {
                "visibility": "external",
                "modifiers": ["initializer"],
                "parameters": ["_owner", "_feeBps"],
                "body": [
                    {"op": "require", "operands": ["_owner"], "check": "nonzero"},
                    {"op": "require", "operands": ["_feeBps"], "check": "range"},
                    {"op": "write", "target": "owner", "operands": ["_owner"]},
                    {"op": "write", "target": "feeBps", "operands": ["_feeBps"]},
                ],
            },
            "fee(uint256)": {
                "visibility": "public",
                "parameters": ["amount"],
                "body": [
                    {"op": "compute", "target": "mul", "operands": ["amount", "feeBps"]},
                    {"op": "compute", "target": "div", "operands": ["amount", "feeBps"]},
                ],
            },
            "upgradeTo(address)": {
                "visibility": "external",
                "parameters": ["newImplementation"],
                "body": [{"op": "call", "target": "_authorizeUpgrade"}],
            },
            "_authorizeUpgrade(address)": {
                "visibility": "internal",
                "modifiers": ["onlyOwner"],
                "parameters": ["newImplementation"],
            },
        },
    }


@pytest.fixture
def vault_v2_model(vault_v1_model: dict[str, Any]) -> dict[str, Any]:
    """VaultV1 with a variable carved out of the gap."""
    model = json.loads(json.dumps(vault_v1_model))
    model["id"] = "VaultV2"
    model["storage"] = [
        {"name": "initialized", "type": "bool"},
        {"name": "owner", "type": "address"},
        {"name": "feeBps", "type": "uint256"},
        {"name": "treasury", "type": "address"},
        {"name": "__gap", "type": "uint256[47]"},
    ]
    return model


@pytest.fixture
def write_json(tmp_path: Path) -> Callable[[str, Any], Path]:
    """Write a document to a JSON file in the temporary directory."""

    def write(name: str, document: Any) -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(document))
        return path

    return write
