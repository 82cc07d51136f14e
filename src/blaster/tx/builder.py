"""
Transaction Builder - constructs signed mint transactions.

Builds EIP-1559 transactions from the shared fee profile and mint plan and
signs them with an identity's key. No network I/O happens here.
"""

from dataclasses import dataclass
from typing import List, Sequence

import structlog

from blaster.core.fees import FeeProfile
from blaster.core.plan import MintPlan
from blaster.tx.signer import SignerError, TransactionSigner

logger = structlog.get_logger(__name__)


class TransactionBuildError(Exception):
    """Raised when transaction construction fails."""
    pass


@dataclass(frozen=True)
class SignedTransaction:
    """
    A signed transaction ready for transmission.

    Immutable once created; it is only ever transmitted, possibly to many
    endpoints.

    Attributes:
        sender: Address of the signing identity
        sequence: Nonce the transaction was signed with
        raw_transaction: 0x-prefixed typed transaction encoding
        tx_hash: 0x-prefixed transaction hash computed locally
        fees: Fee profile it was built with
    """

    sender: str
    sequence: int
    raw_transaction: str
    tx_hash: str
    fees: FeeProfile

    def __repr__(self) -> str:
        return f"SignedTransaction(sender={self.sender}, nonce={self.sequence}, hash={self.tx_hash[:10]}...)"


class TransactionBuilder:
    """
    Builds and signs mint transactions.

    Stateless: the same inputs give the same encoding.
    """

    def build_signed(
        self,
        signer: TransactionSigner,
        sequence: int,
        fees: FeeProfile,
        recipient: str,
        payload: bytes,
        value: int,
    ) -> SignedTransaction:
        """
        Build and sign one transaction.

        Args:
            signer: Signing identity
            sequence: Nonce to use
            fees: Shared fee profile
            recipient: Checksummed target address
            payload: Call data
            value: Attached value in wei

        Returns:
            SignedTransaction bound to the signer and nonce

        Raises:
            TransactionBuildError: If signing fails
        """
        tx = {
            "type": 2,
            "chainId": fees.chain_id,
            "nonce": sequence,
            "to": recipient,
            "value": value,
            "data": payload,
            "gas": fees.gas_limit,
            "maxFeePerGas": fees.max_fee_per_gas,
            "maxPriorityFeePerGas": fees.max_priority_fee_per_gas,
        }

        try:
            signed = signer.sign_transaction(tx)
        except SignerError as e:
            raise TransactionBuildError(str(e)) from e

        return SignedTransaction(
            sender=signer.address,
            sequence=sequence,
            raw_transaction="0x" + bytes(signed.raw_transaction).hex(),
            tx_hash="0x" + bytes(signed.hash).hex(),
            fees=fees,
        )

    def build_batch(
        self,
        signer: TransactionSigner,
        sequences: Sequence[int],
        fees: FeeProfile,
        plan: MintPlan,
    ) -> List[SignedTransaction]:
        """
        Build one identity's whole batch.

        Args:
            signer: Signing identity
            sequences: Nonces, one transaction each
            fees: Shared fee profile
            plan: Target call

        Returns:
            Signed transactions in nonce order
        """
        if not sequences:
            raise TransactionBuildError("Cannot build an empty batch")

        batch = [
            self.build_signed(
                signer,
                sequence,
                fees,
                plan.recipient,
                plan.payload,
                plan.value,
            )
            for sequence in sequences
        ]

        logger.debug(
            "batch_built",
            address=signer.address,
            first_nonce=sequences[0],
            size=len(batch),
        )
        return batch
