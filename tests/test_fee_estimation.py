"""
Test suite for fee estimation.

Tests fee profile computation against the primary endpoint.
"""

from decimal import Decimal

import pytest

from blaster.core.fees import FeeEstimator, FeeEstimationError, FeeProfile, fee_ceiling

from conftest import GWEI, MockNode


# ============================================================================
# Test Fee Profile
# ============================================================================

class TestFeeProfile:
    """Tests for the fee profile model."""

    def test_ceiling_below_tip_rejected(self):
        with pytest.raises(ValueError, match="below tip"):
            FeeProfile(max_fee_per_gas=1, max_priority_fee_per_gas=2, gas_limit=21000, chain_id=1)

    def test_negative_tip_rejected(self):
        with pytest.raises(ValueError, match="non-negative"):
            FeeProfile(max_fee_per_gas=1, max_priority_fee_per_gas=-1, gas_limit=21000, chain_id=1)

    @pytest.mark.parametrize("base_fee", [0, 1, 7, 30 * GWEI, 10**15])
    @pytest.mark.parametrize("multiplier", ["1", "1.125", "2", "3.7"])
    @pytest.mark.parametrize("tip", [0, 1, 2 * GWEI])
    def test_ceiling_never_below_tip(self, base_fee, multiplier, tip):
        ceiling = fee_ceiling(base_fee, Decimal(multiplier), tip)

        assert isinstance(ceiling, int)
        assert ceiling >= tip
        FeeProfile(max_fee_per_gas=ceiling, max_priority_fee_per_gas=tip, gas_limit=1, chain_id=1)

    def test_ceiling_is_floored(self):
        assert fee_ceiling(3, Decimal("1.5"), 0) == 4
        assert fee_ceiling(30 * GWEI, Decimal("2"), 2 * GWEI) == 62 * GWEI


# ============================================================================
# Test Fee Estimator
# ============================================================================

class TestFeeEstimator:
    """Tests for fee computation."""

    def _estimator(self, node, tip=2 * GWEI, multiplier="2", gas_limit=300_000):
        return FeeEstimator(
            node=node,
            priority_fee_wei=tip,
            base_fee_multiplier=Decimal(multiplier),
            gas_limit=gas_limit,
        )

    @pytest.mark.asyncio
    async def test_prefers_pending_base_fee(self):
        node = MockNode(pending_base_fee=10 * GWEI, base_fee=30 * GWEI, chain_id=8453)

        profile = await self._estimator(node).compute_fees()

        assert profile.max_fee_per_gas == 22 * GWEI
        assert profile.max_priority_fee_per_gas == 2 * GWEI
        assert profile.gas_limit == 300_000
        assert profile.chain_id == 8453
        assert "base_fee:latest" not in node.calls

    @pytest.mark.asyncio
    async def test_falls_back_to_latest_block(self):
        node = MockNode(pending_base_fee=None, base_fee=30 * GWEI)

        profile = await self._estimator(node).compute_fees()

        assert profile.max_fee_per_gas == 62 * GWEI
        assert node.calls[-1] == "base_fee:latest"

    @pytest.mark.asyncio
    async def test_falls_back_to_fee_data_without_base_fee(self):
        node = MockNode(pending_base_fee=None, base_fee=None, gas_price=40 * GWEI, priority_fee=1 * GWEI)

        profile = await self._estimator(node).compute_fees()

        assert profile.max_fee_per_gas == 40 * GWEI
        assert profile.max_priority_fee_per_gas == 1 * GWEI

    @pytest.mark.asyncio
    async def test_fee_data_fallback_keeps_invariant(self):
        node = MockNode(pending_base_fee=None, base_fee=None, gas_price=1 * GWEI, priority_fee=None)

        profile = await self._estimator(node, tip=5 * GWEI).compute_fees()

        assert profile.max_priority_fee_per_gas == 5 * GWEI
        assert profile.max_fee_per_gas == 5 * GWEI

    @pytest.mark.asyncio
    async def test_unreachable_primary_is_fatal(self):
        node = MockNode(reachable=False)

        with pytest.raises(FeeEstimationError, match="Fee computation failed"):
            await self._estimator(node).compute_fees()

    def test_multiplier_below_one_rejected(self):
        with pytest.raises(ValueError, match="at least 1"):
            self._estimator(MockNode(), multiplier="0.5")

    def test_from_config(self, test_config):
        estimator = FeeEstimator.from_config(test_config, MockNode())

        assert estimator.priority_fee_wei == 2 * GWEI
        assert estimator.base_fee_multiplier == Decimal("2")
        assert estimator.gas_limit == 300_000
