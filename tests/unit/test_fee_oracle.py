"""Unit tests for the fee oracle."""
import pytest
from unittest.mock import AsyncMock

from conftest import FakeNode
from mempool_arbitrage.core.exceptions import FeeUnavailableError
from mempool_arbitrage.execution.fee_oracle import FeeOracle


class TestFeeOracle:
    """Test fee sampling and caching."""

    async def test_eip1559_sample(self, fake_node):
        oracle = FeeOracle(fake_node)

        sample = await oracle.get_fee_sample()

        assert sample.base_fee_per_gas == 10 * 10**9
        assert sample.max_priority_fee_per_gas == 2 * 10**9
        assert sample.max_fee_per_gas == 22 * 10**9

    async def test_legacy_chain_uses_gas_price(self):
        node = FakeNode()
        node.get_block = AsyncMock(return_value={"number": 1})
        node.get_gas_price = AsyncMock(return_value=15 * 10**9)
        oracle = FeeOracle(node)

        sample = await oracle.get_fee_sample()

        assert sample.max_fee_per_gas == 15 * 10**9
        assert sample.max_priority_fee_per_gas == 15 * 10**9
        assert sample.base_fee_per_gas is None

    async def test_sample_is_cached(self, fake_node):
        fake_node.get_block = AsyncMock(return_value={"baseFeePerGas": 10**9})
        oracle = FeeOracle(fake_node, cache_ttl_seconds=60)

        first = await oracle.get_fee_sample()
        second = await oracle.get_fee_sample()

        assert first is second
        assert fake_node.get_block.await_count == 1

    async def test_invalidate_forces_refetch(self, fake_node):
        fake_node.get_block = AsyncMock(return_value={"baseFeePerGas": 10**9})
        oracle = FeeOracle(fake_node, cache_ttl_seconds=60)

        await oracle.get_fee_sample()
        oracle.invalidate()
        await oracle.get_fee_sample()

        assert fake_node.get_block.await_count == 2

    async def test_node_error_becomes_fee_unavailable(self, fake_node):
        fake_node.get_block = AsyncMock(side_effect=ConnectionError("node down"))
        oracle = FeeOracle(fake_node)

        with pytest.raises(FeeUnavailableError):
            await oracle.get_fee_sample()

    async def test_zero_gas_price_is_unavailable(self):
        node = FakeNode()
        node.get_block = AsyncMock(return_value=None)
        node.get_gas_price = AsyncMock(return_value=0)

        with pytest.raises(FeeUnavailableError):
            await FeeOracle(node).get_fee_sample()
