"""
Profit Estimator.

Turns a classified opportunity and a fee sample into a profit verdict. The
gross yield comes from a pluggable yield model; the default assumes a fixed
spread on the trade size, which stands in for a real cross-venue price model.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from ..core.exceptions import FeeUnavailableError
from ..execution.fee_oracle import FeeOracle
from .opportunity_models import FeeSample, Opportunity, ProfitVerdict, wei_to_eth

logger = logging.getLogger(__name__)


class YieldModel(Protocol):
    """Maps an opportunity to its expected gross yield in ETH."""

    def __call__(self, opportunity: Opportunity) -> float:
        ...


class FixedSpreadYieldModel:
    """Gross yield as a fixed fraction of the opportunity's notional size."""

    def __init__(self, yield_rate: float = 0.003):
        self.yield_rate = yield_rate

    def __call__(self, opportunity: Opportunity) -> float:
        return max(0.0, opportunity.notional_eth * self.yield_rate)


@dataclass
class EstimatorConfig:
    """Configuration for profit estimation."""
    gas_limit: int = 500_000
    min_profit_usd: float = 50.0
    eth_price_usd: float = 3450.0
    yield_rate: float = 0.003

    @property
    def threshold_eth(self) -> float:
        """Minimum net yield in ETH, converted with the static price reference."""
        return self.min_profit_usd / self.eth_price_usd


class ProfitEstimator:
    """Computes profit verdicts for opportunities."""

    def __init__(
        self,
        config: EstimatorConfig,
        fee_oracle: Optional[FeeOracle] = None,
        yield_model: Optional[YieldModel] = None
    ):
        self.config = config
        self.fee_oracle = fee_oracle
        self.yield_model = yield_model or FixedSpreadYieldModel(config.yield_rate)

    def evaluate(self, opportunity: Opportunity, fee_sample: FeeSample) -> ProfitVerdict:
        """Evaluate an opportunity against a fee sample. Pure and deterministic."""
        threshold_eth = self.config.threshold_eth
        execution_cost_eth = wei_to_eth(fee_sample.max_fee_per_gas * self.config.gas_limit)
        gross_yield_eth = float(self.yield_model(opportunity))
        net_yield_eth = gross_yield_eth - execution_cost_eth

        return ProfitVerdict(
            profitable=net_yield_eth > threshold_eth,
            net_yield_eth=net_yield_eth,
            gross_yield_eth=gross_yield_eth,
            execution_cost_eth=execution_cost_eth,
            threshold_eth=threshold_eth,
            net_yield_usd=net_yield_eth * self.config.eth_price_usd,
        )

    async def estimate(self, opportunity: Opportunity) -> ProfitVerdict:
        """
        Fetch a fee sample and evaluate the opportunity.

        A missing fee quote never produces a profitable verdict.
        """
        if self.fee_oracle is None:
            return ProfitVerdict.unprofitable(self.config.threshold_eth)

        try:
            fee_sample = await self.fee_oracle.get_fee_sample()
        except FeeUnavailableError as e:
            logger.warning(f"No fee sample for {opportunity.source_tx_hash[:10]}...: {e}")
            return ProfitVerdict.unprofitable(self.config.threshold_eth)

        return self.evaluate(opportunity, fee_sample)
