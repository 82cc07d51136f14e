"""
Identity nonce sequencing.

Each identity's nonces are private to its own preparation task, so no
cross-identity coordination or locking is needed.
"""

from typing import List

import structlog

from blaster.node.interface import NodeInterface, NodeConnectionError, JsonRpcError

logger = structlog.get_logger(__name__)


class NonceResolutionError(Exception):
    """Raised when an identity's starting nonce cannot be resolved."""

    def __init__(self, address: str, message: str):
        super().__init__(message)
        self.address = address


class NonceSequencer:
    """
    Resolves starting nonces against the primary endpoint.

    The count includes pending transactions so a nonce already consumed by
    an in-flight transaction is never reused.
    """

    def __init__(self, node: NodeInterface):
        self.node = node

    async def resolve_starting_sequence(self, address: str) -> int:
        """
        Get the next usable nonce for an address.

        Raises:
            NonceResolutionError: If the endpoint query fails
        """
        try:
            start = await self.node.get_transaction_count(address, "pending")
        except (NodeConnectionError, JsonRpcError, ValueError, TypeError) as e:
            raise NonceResolutionError(address, f"nonce query failed for {address}: {e}") from e

        logger.debug("starting_nonce_resolved", address=address, nonce=start)
        return start

    @staticmethod
    def assign(start: int, count: int) -> List[int]:
        """Consecutive nonces [start, start + count) for one identity's batch."""
        if count < 1:
            raise ValueError(f"count must be at least 1, got {count}")
        if start < 0:
            raise ValueError(f"start must be non-negative, got {start}")
        return list(range(start, start + count))
