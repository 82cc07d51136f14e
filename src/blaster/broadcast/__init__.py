"""
Broadcast module.

Races signed transactions across the endpoint pool.
"""

from blaster.broadcast.racer import BroadcastRacer, SubmissionResult

__all__ = [
    "BroadcastRacer",
    "SubmissionResult",
]
