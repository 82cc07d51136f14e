"""
JSON-RPC adapter for endpoint integration.

Provides chain access over the standard Ethereum JSON-RPC HTTP interface.
"""

import itertools
from typing import Any, List, Optional

import httpx
import structlog

from blaster.node.interface import (
    NodeInterface,
    NodeConnectionError,
    JsonRpcError,
    TransactionSubmitError,
)

logger = structlog.get_logger(__name__)


def _to_int(value: Any) -> int:
    """Decode a JSON-RPC quantity."""
    if isinstance(value, int):
        return value
    return int(value, 16)


class JsonRpcAdapter(NodeInterface):
    """
    HTTP JSON-RPC adapter.

    Implements the NodeInterface against any execution client or hosted RPC
    provider speaking the eth_* namespace.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the adapter.

        Args:
            url: Endpoint URL
            timeout: HTTP timeout in seconds
            transport: Custom httpx transport (used by tests)
        """
        self.url = url
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._ids = itertools.count(1)

    async def connect(self) -> None:
        """Create the HTTP client."""
        if self._client is not None:
            return

        self._client = httpx.AsyncClient(
            headers={"Content-Type": "application/json"},
            timeout=self.timeout,
            transport=self._transport,
        )
        logger.debug("endpoint_connected", url=self.url)

    async def disconnect(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.debug("endpoint_disconnected", url=self.url)

    async def _call(self, method: str, params: List[Any]) -> Any:
        """Make a JSON-RPC call and return its result."""
        if not self._client:
            await self.connect()

        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }

        try:
            response = await self._client.post(self.url, json=payload)
        except httpx.RequestError as e:
            logger.debug("rpc_request_error", url=self.url, method=method, error=str(e))
            raise NodeConnectionError(f"{self.url}: request failed: {e}")

        if response.status_code != 200:
            raise NodeConnectionError(
                f"{self.url}: HTTP {response.status_code}: {response.text[:200]}"
            )

        try:
            data = response.json()
        except ValueError:
            raise NodeConnectionError(f"{self.url}: response is not JSON")

        if not isinstance(data, dict):
            raise NodeConnectionError(f"{self.url}: unexpected response shape")

        error = data.get("error")
        if error:
            if isinstance(error, dict):
                raise JsonRpcError(str(error.get("message", error)), error.get("code"))
            raise JsonRpcError(str(error))

        return data.get("result")

    async def get_chain_id(self) -> int:
        """Get the chain id."""
        return _to_int(await self._call("eth_chainId", []))

    async def get_base_fee(self, block_tag: str = "pending") -> Optional[int]:
        """Get a block's base fee, None for pre-London chains or unknown tags."""
        block = await self._call("eth_getBlockByNumber", [block_tag, False])
        if not block:
            return None
        if not isinstance(block, dict):
            raise NodeConnectionError(f"{self.url}: malformed block in eth_getBlockByNumber response")
        if block.get("baseFeePerGas") is None:
            return None
        return _to_int(block["baseFeePerGas"])

    async def get_gas_price(self) -> int:
        """Get the legacy gas price."""
        return _to_int(await self._call("eth_gasPrice", []))

    async def get_max_priority_fee(self) -> Optional[int]:
        """Get the suggested tip, None if the method is unsupported."""
        try:
            result = await self._call("eth_maxPriorityFeePerGas", [])
        except JsonRpcError as e:
            logger.debug("priority_fee_unsupported", url=self.url, error=str(e))
            return None
        return _to_int(result) if result is not None else None

    async def get_transaction_count(
        self,
        address: str,
        block_tag: str = "pending",
    ) -> int:
        """Get the transaction count of an address."""
        return _to_int(await self._call("eth_getTransactionCount", [address, block_tag]))

    async def send_raw_transaction(self, raw_transaction: str) -> str:
        """Submit a signed transaction."""
        try:
            tx_hash = await self._call("eth_sendRawTransaction", [raw_transaction])
        except JsonRpcError as e:
            raise TransactionSubmitError(f"{self.url}: {e}", e.code)

        if not tx_hash:
            raise TransactionSubmitError(f"{self.url}: empty submission result")

        return tx_hash

    def __repr__(self) -> str:
        return f"JsonRpcAdapter(url={self.url})"
