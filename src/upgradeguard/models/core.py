"""Core value types shared by the models."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Location:
    """Where a finding points inside a contract version.

    A back-reference: the contract is named by its id, never owned.

    Attributes:
        contract_id: Identifier of the analyzed ContractVersion
        function: Function signature (if the finding is about a function)
        slot: Storage variable name (if the finding is about a slot)
        slot_index: Ordinal index of the storage variable
    """

    contract_id: str
    function: Optional[str] = None
    slot: Optional[str] = None
    slot_index: Optional[int] = None

    def __str__(self) -> str:
        text = self.contract_id
        if self.function:
            text = f"{text}.{self.function}"
        if self.slot is not None:
            text = f"{text}[{self.slot_index}:{self.slot}]"
        return text

    def to_dict(self) -> dict:
        return {
            "contract": self.contract_id,
            "function": self.function,
            "slot": self.slot,
            "slot_index": self.slot_index,
        }
