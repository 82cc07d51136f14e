"""
Transaction module.

Handles offline transaction construction and signing.
"""

from blaster.tx.builder import SignedTransaction, TransactionBuilder, TransactionBuildError
from blaster.tx.signer import SignerError, TransactionSigner

__all__ = [
    "SignedTransaction",
    "TransactionBuilder",
    "TransactionBuildError",
    "SignerError",
    "TransactionSigner",
]
