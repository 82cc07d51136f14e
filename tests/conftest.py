"""
Pytest configuration and shared fixtures for the test suite.
"""

import asyncio
from decimal import Decimal
from typing import Dict, List, Optional

import pytest

from blaster.config import BlasterConfig
from blaster.core.credentials import Credential
from blaster.core.fees import FeeProfile
from blaster.core.plan import MintPlan
from blaster.node.interface import (
    NodeInterface,
    NodeConnectionError,
    TransactionSubmitError,
)


# ============================================================================
# Test Data
# ============================================================================

# Well-known development keys (hardhat/anvil accounts 0 and 1)
TEST_KEY_A = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
TEST_ADDRESS_A = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
TEST_KEY_B = "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d"
TEST_ADDRESS_B = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"

TEST_CONTRACT = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
TEST_CALLDATA = "0x1249c58b"

GWEI = 10**9


def make_credential(key: str = TEST_KEY_A, count: int = 1, line_number: int = 1) -> Credential:
    return Credential(private_key=key, count=count, line_number=line_number)


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def test_config() -> BlasterConfig:
    """Create a test configuration that ignores any local .env."""
    return BlasterConfig(
        _env_file=None,
        rpc_urls="http://primary.test,http://secondary.test",
        contract_address=TEST_CONTRACT,
        mint_price=Decimal("0.01"),
        calldata=TEST_CALLDATA,
        gas_limit=300_000,
        priority_gwei=Decimal("2"),
        basefee_mult=Decimal("2"),
        submit_timeout_seconds=0.5,
        drain_timeout_seconds=1.0,
        probe_endpoints=False,
    )


@pytest.fixture
def fee_profile() -> FeeProfile:
    return FeeProfile(
        max_fee_per_gas=62 * GWEI,
        max_priority_fee_per_gas=2 * GWEI,
        gas_limit=300_000,
        chain_id=1,
    )


@pytest.fixture
def mint_plan() -> MintPlan:
    return MintPlan(
        recipient=TEST_CONTRACT,
        payload=bytes.fromhex(TEST_CALLDATA[2:]),
        value=10**16,
    )


# ============================================================================
# Mock Node Interface
# ============================================================================

class MockNode(NodeInterface):
    """
    In-memory endpoint for testing.

    Behaviour per submission: "accept", "reject", "hang" or "unreachable".
    """

    def __init__(
        self,
        url: str = "http://mock.test",
        behaviour: str = "accept",
        chain_id: int = 1,
        base_fee: Optional[int] = 30 * GWEI,
        pending_base_fee: Optional[int] = None,
        gas_price: int = 40 * GWEI,
        priority_fee: Optional[int] = None,
        nonces: Optional[Dict[str, int]] = None,
        failing_nonce_addresses: tuple = (),
        reachable: bool = True,
        delay: float = 0.0,
    ):
        self.url = url
        self.behaviour = behaviour
        self.chain_id = chain_id
        self.base_fee = base_fee
        self.pending_base_fee = pending_base_fee
        self.gas_price = gas_price
        self.priority_fee = priority_fee
        self.nonces = dict(nonces or {})
        self.failing_nonce_addresses = set(failing_nonce_addresses)
        self.reachable = reachable
        self.delay = delay

        self.submitted: List[str] = []
        self.nonce_queries: List[str] = []
        self.calls: List[str] = []
        self._connected = False

    def _check_reachable(self) -> None:
        if not self.reachable:
            raise NodeConnectionError(f"{self.url}: connection refused")

    async def connect(self) -> None:
        self._connected = True

    async def disconnect(self) -> None:
        self._connected = False

    async def get_chain_id(self) -> int:
        self.calls.append("chain_id")
        self._check_reachable()
        return self.chain_id

    async def get_base_fee(self, block_tag: str = "pending") -> Optional[int]:
        self.calls.append(f"base_fee:{block_tag}")
        self._check_reachable()
        if block_tag == "pending":
            return self.pending_base_fee
        return self.base_fee

    async def get_gas_price(self) -> int:
        self.calls.append("gas_price")
        self._check_reachable()
        return self.gas_price

    async def get_max_priority_fee(self) -> Optional[int]:
        self.calls.append("priority_fee")
        self._check_reachable()
        return self.priority_fee

    async def get_transaction_count(self, address: str, block_tag: str = "pending") -> int:
        self.nonce_queries.append(address)
        self._check_reachable()
        if address in self.failing_nonce_addresses:
            raise NodeConnectionError(f"{self.url}: nonce lookup timed out")
        return self.nonces.get(address, 0)

    async def send_raw_transaction(self, raw_transaction: str) -> str:
        self.submitted.append(raw_transaction)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.behaviour == "hang":
            await asyncio.sleep(3600)
        if self.behaviour == "unreachable" or not self.reachable:
            raise NodeConnectionError(f"{self.url}: connection refused")
        if self.behaviour == "reject":
            raise TransactionSubmitError(f"{self.url}: replacement transaction underpriced", -32000)
        return f"0x{len(self.submitted):064x}"


@pytest.fixture
def accepting_node() -> MockNode:
    return MockNode(url="http://accept.test", behaviour="accept")


@pytest.fixture
def rejecting_node() -> MockNode:
    return MockNode(url="http://reject.test", behaviour="reject")


@pytest.fixture
def test_signer():
    """Create a test signer with a random key."""
    from blaster.tx.signer import generate_test_key
    return generate_test_key()
