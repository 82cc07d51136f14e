"""
Run result models.

Terminal records for transactions and for skipped identities.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional


class OutcomeStatus(str, Enum):
    """Terminal status of one transaction's broadcast."""
    SUCCESS = "success"         # An endpoint accepted the transaction
    FAILED = "failed"           # Every endpoint rejected or timed out
    DISPATCHED = "dispatched"   # Sent without waiting for acknowledgment


@dataclass(frozen=True)
class BroadcastOutcome:
    """
    Result of one transaction's endpoint race.

    Attributes:
        sender: Address of the signing identity
        sequence: Nonce of the transaction
        status: Terminal status
        tx_hash: Endpoint-assigned hash on success, locally computed hash
            when dispatched, None on failure
        endpoint: URL of the winning endpoint
        errors: Endpoint URL -> rejection reason, filled on failure
    """

    sender: str
    sequence: int
    status: OutcomeStatus
    tx_hash: Optional[str] = None
    endpoint: Optional[str] = None
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == OutcomeStatus.SUCCESS

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "sender": self.sender,
            "sequence": self.sequence,
            "status": self.status.value,
            "tx_hash": self.tx_hash,
            "endpoint": self.endpoint,
            "errors": dict(self.errors),
        }


class PreparationStage(str, Enum):
    """Where an identity's preparation failed."""
    KEY = "key"
    NONCE = "nonce"
    BUILD = "build"


@dataclass(frozen=True)
class IdentityFailure:
    """An identity dropped before broadcasting; none of its transactions were sent."""

    line_number: int
    stage: PreparationStage
    reason: str
    requested: int
    address: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "line_number": self.line_number,
            "address": self.address,
            "stage": self.stage.value,
            "reason": self.reason,
            "requested": self.requested,
        }
