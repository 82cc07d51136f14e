"""
Mint plan model.

The fixed call every identity sends.
"""

from dataclasses import dataclass

from eth_utils import is_address, to_checksum_address

from blaster.config import BlasterConfig


@dataclass(frozen=True)
class MintPlan:
    """
    Target call shared by all identities.

    Attributes:
        recipient: Checksummed contract address
        payload: Call data
        value: Value attached to every transaction, in wei
    """

    recipient: str
    payload: bytes
    value: int

    def __post_init__(self):
        if not is_address(self.recipient):
            raise ValueError(f"invalid recipient address: {self.recipient!r}")
        if self.value < 0:
            raise ValueError("value must be non-negative")
        object.__setattr__(self, "recipient", to_checksum_address(self.recipient))

    @classmethod
    def from_config(cls, config: BlasterConfig) -> "MintPlan":
        return cls(
            recipient=config.contract_address,
            payload=config.calldata_bytes,
            value=config.value_wei,
        )
