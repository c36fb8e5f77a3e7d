"""
Fee Oracle.

Supplies EIP-1559 fee samples from the node, with a short in-memory cache so
a burst of evaluations does not turn into a burst of RPC calls.
"""
import asyncio
import logging
import time
from typing import Optional

from ..blockchain_connector.provider import NodeProvider
from ..core.exceptions import FeeUnavailableError
from ..mev_detection.opportunity_models import FeeSample

logger = logging.getLogger(__name__)


class FeeOracle:
    """Fee/gas oracle adapter backed by the node."""

    def __init__(self, node: NodeProvider, cache_ttl_seconds: float = 1.0):
        """
        Initialize the fee oracle.

        Args:
            node: Connected node provider
            cache_ttl_seconds: How long a sample is reused before refetching
        """
        self.node = node
        self.cache_ttl_seconds = cache_ttl_seconds

        self._cached: Optional[FeeSample] = None
        self._cache_lock = asyncio.Lock()

    async def get_fee_sample(self) -> FeeSample:
        """
        Get the current fee sample.

        maxFeePerGas follows the usual wallet heuristic of twice the latest
        base fee plus the suggested priority fee. Pre-London chains fall back
        to the legacy gas price for both fields.

        Raises:
            FeeUnavailableError: if the node cannot provide a quote
        """
        async with self._cache_lock:
            if self._cached and time.time() - self._cached.fetched_at < self.cache_ttl_seconds:
                return self._cached

            try:
                sample = await self._fetch_sample()
            except FeeUnavailableError:
                raise
            except Exception as e:
                raise FeeUnavailableError(f"Fee sample unavailable: {e}") from e

            self._cached = sample
            return sample

    async def _fetch_sample(self) -> FeeSample:
        block = await self.node.get_block("latest")
        base_fee = block.get("baseFeePerGas") if block else None

        if base_fee is None:
            gas_price = await self.node.get_gas_price()
            if not gas_price:
                raise FeeUnavailableError("Node returned no gas price")
            return FeeSample(max_fee_per_gas=gas_price, max_priority_fee_per_gas=gas_price)

        priority_fee = await self.node.get_max_priority_fee()
        return FeeSample(
            max_fee_per_gas=2 * base_fee + priority_fee,
            max_priority_fee_per_gas=priority_fee,
            base_fee_per_gas=base_fee,
        )

    def invalidate(self) -> None:
        self._cached = None
