"""Contract model loading.

Accepts either the native contract-model document or a solc compact-JSON
AST and produces a read-only ContractVersion.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from upgradeguard.config import UpgradeGuardConfig
from upgradeguard.errors import MalformedInputError
from upgradeguard.loader.model import ContractModelLoader
from upgradeguard.loader.solc import SolcAstReader, is_solc_ast
from upgradeguard.models.contract import ContractVersion

logger = logging.getLogger(__name__)

SOURCE_FORMATS = ("auto", "model", "solc")

__all__ = [
    "ContractModelLoader",
    "SOURCE_FORMATS",
    "SolcAstReader",
    "load_contract",
    "load_contract_file",
]


def load_contract(
    data: Any,
    *,
    source_format: str = "auto",
    contract_name: str | None = None,
    is_proxy_implementation: bool | None = None,
    config: UpgradeGuardConfig | None = None,
    source: str | None = None,
) -> ContractVersion:
    """Load a parsed contract into a ContractVersion.

    Args:
        data: Parsed JSON document (contract model or solc AST)
        source_format: "model", "solc" or "auto" to detect
        contract_name: Contract to select from a solc AST
        is_proxy_implementation: Force the proxy-implementation flag
        config: Analysis configuration
        source: Where the document came from (for error messages)

    Returns:
        Read-only ContractVersion

    Raises:
        MalformedInputError: If the document cannot be normalized
    """
    if source_format not in SOURCE_FORMATS:
        raise ValueError(f"Unknown source format: {source_format}")
    if source_format == "auto":
        source_format = "solc" if is_solc_ast(data) else "model"

    if source_format == "solc":
        if not isinstance(data, dict):
            raise MalformedInputError("solc AST must be a JSON object", source)
        logger.debug("Reading solc AST from %s", source or "<ast>")
        data = SolcAstReader().read(data, contract_name=contract_name, source=source)

    loader = ContractModelLoader(config)
    return loader.load(
        data,
        source=source,
        is_proxy_implementation=is_proxy_implementation,
        source_format=source_format,
    )


def load_contract_file(path: Path | str, **kwargs: Any) -> ContractVersion:
    """Read a JSON file and load it with :func:`load_contract`.

    Raises:
        FileNotFoundError: If the file doesn't exist
        MalformedInputError: If the file is not valid JSON or cannot be normalized
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Contract file not found: {path}")

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedInputError(f"invalid JSON: {e}", str(path)) from e
    return load_contract(data, source=str(path), **kwargs)
