"""
Abstract interface for EVM endpoint integration.

Defines the contract for chain-state queries and raw transaction submission
that all endpoint adapters must implement.
"""

from abc import ABC, abstractmethod
from typing import Optional


class NodeInterface(ABC):
    """
    Abstract interface for one remote execution endpoint.

    This interface defines all chain operations needed by the blaster:
    - Chain id and fee data queries
    - Pending transaction counts
    - Raw transaction submission
    """

    url: str

    @abstractmethod
    async def connect(self) -> None:
        """
        Establish connection to the endpoint.

        Raises:
            NodeConnectionError: If connection cannot be established
        """
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close connection to the endpoint."""
        pass

    @abstractmethod
    async def get_chain_id(self) -> int:
        """
        Get the chain identifier.

        Returns:
            Chain id reported by the endpoint
        """
        pass

    @abstractmethod
    async def get_base_fee(self, block_tag: str = "pending") -> Optional[int]:
        """
        Get the base fee of a block.

        Args:
            block_tag: Block to inspect ("pending" or "latest")

        Returns:
            Base fee per gas in wei, None if the block or its base fee
            is unavailable
        """
        pass

    @abstractmethod
    async def get_gas_price(self) -> int:
        """Get the endpoint's legacy gas price suggestion in wei."""
        pass

    @abstractmethod
    async def get_max_priority_fee(self) -> Optional[int]:
        """
        Get the endpoint's priority fee suggestion.

        Returns:
            Suggested tip in wei, None if the endpoint does not support it
        """
        pass

    @abstractmethod
    async def get_transaction_count(
        self,
        address: str,
        block_tag: str = "pending",
    ) -> int:
        """
        Get the number of transactions sent from an address.

        Args:
            address: Checksummed account address
            block_tag: "pending" includes transactions still in the mempool

        Returns:
            Transaction count, i.e. the next usable nonce
        """
        pass

    @abstractmethod
    async def send_raw_transaction(self, raw_transaction: str) -> str:
        """
        Submit a signed transaction to the network.

        Args:
            raw_transaction: 0x-prefixed signed transaction encoding

        Returns:
            Transaction hash assigned by the endpoint

        Raises:
            TransactionSubmitError: If the endpoint rejects the transaction
            NodeConnectionError: If the endpoint cannot be reached
        """
        pass


class NodeConnectionError(Exception):
    """Raised when an endpoint cannot be reached or answers garbage."""
    pass


class JsonRpcError(Exception):
    """Raised when an endpoint answers with a JSON-RPC error object."""

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code


class TransactionSubmitError(Exception):
    """Raised when transaction submission fails."""

    def __init__(self, message: str, error_code: Optional[int] = None):
        super().__init__(message)
        self.error_code = error_code
