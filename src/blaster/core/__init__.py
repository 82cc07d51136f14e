"""
Core blaster components.

This module contains the run models, fee estimation, nonce sequencing and
the batch orchestrator.
"""

from blaster.core.credentials import Credential, CredentialError
from blaster.core.fees import FeeEstimator, FeeEstimationError, FeeProfile
from blaster.core.outcome import BroadcastOutcome, IdentityFailure, OutcomeStatus
from blaster.core.plan import MintPlan
from blaster.core.sequencer import NonceResolutionError, NonceSequencer

__all__ = [
    "Credential",
    "CredentialError",
    "FeeEstimator",
    "FeeEstimationError",
    "FeeProfile",
    "BroadcastOutcome",
    "IdentityFailure",
    "OutcomeStatus",
    "MintPlan",
    "NonceResolutionError",
    "NonceSequencer",
]
