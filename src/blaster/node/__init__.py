"""
Endpoint Integration Layer.

Provides abstracted access to EVM chain state and transaction submission.
"""

from blaster.node.interface import NodeInterface
from blaster.node.jsonrpc import JsonRpcAdapter

__all__ = [
    "NodeInterface",
    "JsonRpcAdapter",
]
