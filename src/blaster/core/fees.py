"""
Fee estimation.

Derives one EIP-1559 fee profile per run from the primary endpoint.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_FLOOR
from typing import Optional

import structlog

from blaster.config import BlasterConfig
from blaster.node.interface import NodeInterface, NodeConnectionError, JsonRpcError

logger = structlog.get_logger(__name__)


class FeeEstimationError(Exception):
    """Raised when the primary endpoint cannot produce fee data."""
    pass


@dataclass(frozen=True)
class FeeProfile:
    """
    Fee parameters shared by every transaction of a run.

    All values are integers in wei (gas_limit in gas units).

    Attributes:
        max_fee_per_gas: Fee ceiling
        max_priority_fee_per_gas: Tip paid to the block producer
        gas_limit: Gas limit per transaction
        chain_id: Chain the transactions are signed for
    """

    max_fee_per_gas: int
    max_priority_fee_per_gas: int
    gas_limit: int
    chain_id: int

    def __post_init__(self):
        if self.max_priority_fee_per_gas < 0:
            raise ValueError("priority fee must be non-negative")
        if self.max_fee_per_gas < self.max_priority_fee_per_gas:
            raise ValueError(
                f"fee ceiling {self.max_fee_per_gas} below tip {self.max_priority_fee_per_gas}"
            )

    def to_dict(self) -> dict:
        """Convert to dictionary for logging."""
        return {
            "max_fee_per_gas": self.max_fee_per_gas,
            "max_priority_fee_per_gas": self.max_priority_fee_per_gas,
            "gas_limit": self.gas_limit,
            "chain_id": self.chain_id,
        }


def fee_ceiling(base_fee: int, multiplier: Decimal, tip: int) -> int:
    """Fee ceiling in wei: floor(base_fee * multiplier) + tip."""
    scaled = (Decimal(base_fee) * multiplier).to_integral_value(rounding=ROUND_FLOOR)
    return int(scaled) + tip


class FeeEstimator:
    """
    Computes the fee profile against the primary endpoint.

    Prefers the pending block's base fee, then the latest block's. Chains
    without a base fee fall back to the endpoint's gas price and tip
    suggestions.
    """

    def __init__(
        self,
        node: NodeInterface,
        priority_fee_wei: int,
        base_fee_multiplier: Decimal,
        gas_limit: int,
    ):
        if priority_fee_wei < 0:
            raise ValueError("priority fee must be non-negative")
        if base_fee_multiplier < 1:
            raise ValueError("base fee multiplier must be at least 1")

        self.node = node
        self.priority_fee_wei = priority_fee_wei
        self.base_fee_multiplier = Decimal(base_fee_multiplier)
        self.gas_limit = gas_limit

    @classmethod
    def from_config(cls, config: BlasterConfig, node: NodeInterface) -> "FeeEstimator":
        return cls(
            node=node,
            priority_fee_wei=config.priority_fee_wei,
            base_fee_multiplier=config.basefee_mult,
            gas_limit=config.gas_limit,
        )

    async def compute_fees(self) -> FeeProfile:
        """
        Compute the run's fee profile.

        Returns:
            FeeProfile shared by all identities

        Raises:
            FeeEstimationError: If the primary endpoint cannot be queried
        """
        try:
            chain_id = await self.node.get_chain_id()
            base_fee = await self._fetch_base_fee()

            if base_fee is not None:
                tip = self.priority_fee_wei
                ceiling = fee_ceiling(base_fee, self.base_fee_multiplier, tip)
                source = "base_fee"
            else:
                gas_price = await self.node.get_gas_price()
                suggested_tip = await self.node.get_max_priority_fee()
                tip = suggested_tip if suggested_tip is not None else self.priority_fee_wei
                ceiling = max(gas_price, tip)
                source = "fee_data"

        except (NodeConnectionError, JsonRpcError, ValueError, TypeError) as e:
            logger.error("fee_estimation_failed", url=self.node.url, error=str(e))
            raise FeeEstimationError(f"Fee computation failed against {self.node.url}: {e}") from e

        profile = FeeProfile(
            max_fee_per_gas=ceiling,
            max_priority_fee_per_gas=tip,
            gas_limit=self.gas_limit,
            chain_id=chain_id,
        )

        logger.info(
            "fee_profile_computed",
            source=source,
            base_fee=base_fee,
            **profile.to_dict(),
        )
        return profile

    async def _fetch_base_fee(self) -> Optional[int]:
        for block_tag in ("pending", "latest"):
            try:
                base_fee = await self.node.get_base_fee(block_tag)
            except JsonRpcError as e:
                # some providers reject the pending tag
                logger.debug("base_fee_unavailable", block_tag=block_tag, error=str(e))
                continue
            if base_fee is not None:
                return base_fee
        return None
