"""
Test suite for the JSON-RPC endpoint adapter.

Uses httpx.MockTransport in place of a live endpoint.
"""

import json
from decimal import Decimal

import httpx
import pytest

from blaster.core.fees import FeeEstimationError, FeeEstimator
from blaster.node.interface import JsonRpcError, NodeConnectionError, TransactionSubmitError
from blaster.node.jsonrpc import JsonRpcAdapter


def make_adapter(handler) -> JsonRpcAdapter:
    return JsonRpcAdapter("http://rpc.test", transport=httpx.MockTransport(handler))


def rpc_handler(results: dict, errors: dict = None):
    """Answer each JSON-RPC method from a table."""
    errors = errors or {}
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        seen.append((body["method"], body["params"]))
        if body["method"] in errors:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": errors[body["method"]]})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": results.get(body["method"])})

    handler.seen = seen
    return handler


class TestJsonRpcAdapter:
    """Tests for request encoding and response decoding."""

    @pytest.mark.asyncio
    async def test_chain_queries(self):
        handler = rpc_handler({
            "eth_chainId": "0x2105",
            "eth_gasPrice": "0x3b9aca00",
            "eth_maxPriorityFeePerGas": "0x5f5e100",
            "eth_getTransactionCount": "0x11",
            "eth_getBlockByNumber": {"number": "0x10", "baseFeePerGas": "0x6fc23ac00"},
        })
        adapter = make_adapter(handler)

        assert await adapter.get_chain_id() == 8453
        assert await adapter.get_gas_price() == 10**9
        assert await adapter.get_max_priority_fee() == 10**8
        assert await adapter.get_transaction_count("0xabc") == 17
        assert await adapter.get_base_fee("latest") == 30 * 10**9

        assert ("eth_getTransactionCount", ["0xabc", "pending"]) in handler.seen
        assert ("eth_getBlockByNumber", ["latest", False]) in handler.seen
        await adapter.disconnect()

    @pytest.mark.asyncio
    async def test_block_without_base_fee(self):
        adapter = make_adapter(rpc_handler({"eth_getBlockByNumber": {"number": "0x10"}}))

        assert await adapter.get_base_fee() is None
        await adapter.disconnect()

    @pytest.mark.asyncio
    async def test_missing_block(self):
        adapter = make_adapter(rpc_handler({"eth_getBlockByNumber": None}))

        assert await adapter.get_base_fee("pending") is None
        await adapter.disconnect()

    @pytest.mark.asyncio
    async def test_malformed_block(self):
        adapter = make_adapter(rpc_handler({"eth_getBlockByNumber": ["0x10"]}))

        with pytest.raises(NodeConnectionError, match="malformed block"):
            await adapter.get_base_fee("pending")
        await adapter.disconnect()

    @pytest.mark.asyncio
    async def test_malformed_block_fails_fee_estimation(self):
        adapter = make_adapter(rpc_handler({
            "eth_chainId": "0x1",
            "eth_getBlockByNumber": "0x10",
        }))
        estimator = FeeEstimator(adapter, priority_fee_wei=10**9, base_fee_multiplier=Decimal("2"), gas_limit=300_000)

        with pytest.raises(FeeEstimationError):
            await estimator.compute_fees()
        await adapter.disconnect()

    @pytest.mark.asyncio
    async def test_priority_fee_unsupported(self):
        adapter = make_adapter(rpc_handler({}, errors={
            "eth_maxPriorityFeePerGas": {"code": -32601, "message": "method not found"},
        }))

        assert await adapter.get_max_priority_fee() is None
        await adapter.disconnect()

    @pytest.mark.asyncio
    async def test_send_raw_transaction(self):
        tx_hash = "0x" + "ab" * 32
        handler = rpc_handler({"eth_sendRawTransaction": tx_hash})
        adapter = make_adapter(handler)

        assert await adapter.send_raw_transaction("0x02f8") == tx_hash
        assert handler.seen == [("eth_sendRawTransaction", ["0x02f8"])]
        await adapter.disconnect()

    @pytest.mark.asyncio
    async def test_rejected_submission(self):
        adapter = make_adapter(rpc_handler({}, errors={
            "eth_sendRawTransaction": {"code": -32000, "message": "nonce too low"},
        }))

        with pytest.raises(TransactionSubmitError, match="nonce too low") as exc_info:
            await adapter.send_raw_transaction("0x02f8")

        assert exc_info.value.error_code == -32000
        await adapter.disconnect()

    @pytest.mark.asyncio
    async def test_rpc_error_on_query(self):
        adapter = make_adapter(rpc_handler({}, errors={
            "eth_chainId": {"code": -32603, "message": "internal error"},
        }))

        with pytest.raises(JsonRpcError) as exc_info:
            await adapter.get_chain_id()

        assert exc_info.value.code == -32603
        await adapter.disconnect()

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        adapter = make_adapter(lambda request: httpx.Response(429, text="rate limited"))

        with pytest.raises(NodeConnectionError, match="HTTP 429"):
            await adapter.get_chain_id()
        await adapter.disconnect()

    @pytest.mark.asyncio
    async def test_connection_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        adapter = make_adapter(handler)

        with pytest.raises(NodeConnectionError, match="request failed"):
            await adapter.get_chain_id()
        await adapter.disconnect()
