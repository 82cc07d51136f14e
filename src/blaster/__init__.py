"""
Mint Blaster

Concurrent EVM transaction broadcaster. Signs sequentially-nonced mint
transactions for a set of wallets and races each one across a pool of
JSON-RPC endpoints, recording the first endpoint to accept it.
"""

__version__ = "0.1.0"

from blaster.core.orchestrator import BatchOrchestrator, NothingToBroadcastError
from blaster.core.outcome import BroadcastOutcome, OutcomeStatus
from blaster.core.fees import FeeProfile
from blaster.core.plan import MintPlan

__all__ = [
    "BatchOrchestrator",
    "NothingToBroadcastError",
    "BroadcastOutcome",
    "OutcomeStatus",
    "FeeProfile",
    "MintPlan",
]
