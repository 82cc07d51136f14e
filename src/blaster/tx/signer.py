"""
Transaction Signer - handles transaction signing.

Holds one identity's key and signs transactions fully offline.
"""

import secrets
from typing import Any, Dict

import structlog

from eth_account import Account
from eth_account.signers.local import LocalAccount

logger = structlog.get_logger(__name__)


class SignerError(Exception):
    """Raised when a key cannot be loaded or a transaction cannot be signed."""
    pass


class TransactionSigner:
    """
    One signing identity: a private key and its derived address.

    Signing never touches the network, so a whole batch can be produced
    before the first byte is broadcast.
    """

    def __init__(self, account: LocalAccount):
        """
        Initialize the signer.

        Args:
            account: Loaded eth-account account
        """
        self._account = account

    @classmethod
    def from_private_key(cls, private_key: str) -> "TransactionSigner":
        """
        Load a signer from hex key text.

        Args:
            private_key: 32-byte key in hex, 0x prefix optional

        Raises:
            SignerError: If the key is malformed
        """
        try:
            account = Account.from_key(private_key.strip())
        except Exception as e:
            # eth-keys and hexbytes raise several unrelated types for bad input
            raise SignerError(f"invalid private key: {type(e).__name__}") from e

        return cls(account)

    @property
    def address(self) -> str:
        """Checksummed address of this identity."""
        return self._account.address

    def sign_transaction(self, tx: Dict[str, Any]) -> Any:
        """
        Sign a transaction dict.

        Args:
            tx: eth-account transaction fields

        Returns:
            eth-account signed transaction (raw_transaction, hash)
        """
        try:
            signed = self._account.sign_transaction(tx)
        except Exception as e:
            raise SignerError(f"signing failed for {self.address}: {e}") from e

        logger.debug("transaction_signed", address=self.address, nonce=tx.get("nonce"))
        return signed

    def __repr__(self) -> str:
        return f"TransactionSigner(address={self.address})"


def generate_test_key() -> TransactionSigner:
    """
    Generate a new random signer for testing.

    WARNING: Do not use in production. The key is not persisted.
    """
    signer = TransactionSigner.from_private_key("0x" + secrets.token_hex(32))
    logger.warning("test_key_generated", address=signer.address)
    return signer
