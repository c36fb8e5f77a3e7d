"""
Bundle Submitter.

Builds the strategy call for a profitable opportunity, signs it under the
nonce lock, submits it as a single-transaction bundle for the next block and
resolves the outcome. A bundle is submitted at most once: there is no retry
against a later block.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from ..blockchain_connector.provider import NodeProvider
from ..core.exceptions import FeeUnavailableError, RelayError, StaleOpportunityError
from ..mev_detection.opportunity_models import (
    Bundle,
    Opportunity,
    ProfitVerdict,
    Resolution,
    eth_to_wei,
    gwei_to_wei,
    wei_to_eth,
)
from ..mev_protection.flashbots_client import FlashbotsClient, RelayResolution
from ..mev_protection.signer import TransactionSigner
from ..pipeline.counters import PipelineCounters
from .execution_contract import ExecutionContract
from .fee_oracle import FeeOracle

logger = logging.getLogger(__name__)

RELAY_RESOLUTION_MAP = {
    RelayResolution.BUNDLE_INCLUDED: Resolution.INCLUDED,
    RelayResolution.BLOCK_PASSED_WITHOUT_INCLUSION: Resolution.NOT_INCLUDED,
    RelayResolution.ACCOUNT_NONCE_TOO_HIGH: Resolution.REJECTED,
}


@dataclass
class SubmitterConfig:
    """Configuration for bundle submission."""
    flash_loan_asset: str = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"  # WETH
    flash_loan_amount_wei: int = eth_to_wei(100)
    strategy_path: List[int] = field(default_factory=lambda: [0, 1, 2, 50, 100])
    gas_limit: int = 500_000
    fallback_max_fee_per_gas: int = gwei_to_wei(50)
    fallback_priority_fee_per_gas: int = gwei_to_wei(2)
    block_interval_seconds: float = 12.0
    inclusion_grace_seconds: float = 2.0

    @property
    def inclusion_timeout(self) -> float:
        return self.block_interval_seconds + self.inclusion_grace_seconds


class BundleSubmitter:
    """Signs, submits and resolves execution bundles."""

    def __init__(
        self,
        config: SubmitterConfig,
        node: NodeProvider,
        contract: ExecutionContract,
        signer: TransactionSigner,
        relay: FlashbotsClient,
        fee_oracle: Optional[FeeOracle] = None,
        counters: Optional[PipelineCounters] = None
    ):
        self.config = config
        self.node = node
        self.contract = contract
        self.signer = signer
        self.relay = relay
        self.fee_oracle = fee_oracle
        self.counters = counters

    async def submit(
        self,
        opportunity: Opportunity,
        verdict: ProfitVerdict,
        observed_block: int
    ) -> Resolution:
        """
        Submit a bundle for a profitable opportunity targeting observed_block + 1.

        Raises:
            StaleOpportunityError: if the target block is produced before the
                bundle is sent; nothing is submitted and any reserved nonce is
                released unused
        """
        target_block = observed_block + 1
        source = opportunity.source_tx_hash[:10]

        calldata = self.contract.build_execute_strategy_call(
            self.config.flash_loan_asset,
            self.config.flash_loan_amount_wei,
            self.config.strategy_path
        )

        try:
            head = await self.node.get_block_number()
        except Exception as e:
            logger.error(f"❌ Could not read head before submitting for {source}...: {e}")
            return Resolution.SUBMISSION_FAILED

        if head >= target_block:
            raise StaleOpportunityError(target_block, head)

        if self.counters is not None:
            self.counters.record_attempt()

        max_fee, priority_fee = await self._fee_params()

        try:
            signed = await self.signer.sign_next(
                to=self.contract.address,
                data=calldata,
                gas_limit=self.config.gas_limit,
                max_fee_per_gas=max_fee,
                max_priority_fee_per_gas=priority_fee
            )
        except Exception as e:
            logger.error(f"❌ Signing failed for {source}...: {e}")
            if self.counters is not None:
                self.counters.record_resolution(Resolution.SUBMISSION_FAILED)
            return Resolution.SUBMISSION_FAILED

        bundle = Bundle(
            source_tx_hash=opportunity.source_tx_hash,
            target_block=target_block,
            nonce=signed.nonce,
            to=self.contract.address,
            calldata=calldata,
            signed_transaction=signed.raw_transaction,
            transaction_hash=signed.transaction_hash,
            max_fee_per_gas=max_fee,
            max_priority_fee_per_gas=priority_fee,
            gas_limit=self.config.gas_limit
        )

        logger.info(
            f"⚡ Submitting bundle for {source}... to block {target_block} "
            f"(nonce {bundle.nonce}, expected profit {verdict.net_yield_eth:.6f} ETH)"
        )

        resolution = Resolution.SUBMISSION_FAILED
        try:
            resolution = await self._submit_and_resolve(bundle)
        except StaleOpportunityError as e:
            logger.info(f"Target block {target_block} produced before send for {source}...: {e}")
            raise
        except Exception as e:
            logger.error(f"❌ Unexpected submission failure for block {target_block}: {e}")
        finally:
            self.signer.nonce_manager.release(bundle.nonce, landed=resolution is Resolution.INCLUDED)

        if self.counters is not None:
            self.counters.record_resolution(resolution, verdict.net_yield_eth)

        await self._log_resolution(resolution, bundle, verdict)
        return resolution

    async def _ensure_target_pending(self, target_block: int) -> None:
        head = await self.node.get_block_number()
        if head >= target_block:
            raise StaleOpportunityError(target_block, head)

    async def _submit_and_resolve(self, bundle: Bundle) -> Resolution:
        # Fee fetch, nonce lock and signing may have outlasted the target block
        await self._ensure_target_pending(bundle.target_block)

        try:
            simulation = await self.relay.simulate_bundle(bundle, state_block=bundle.target_block - 1)
            if not simulation.success:
                logger.warning(
                    f"Bundle simulation failed for block {bundle.target_block}: "
                    f"{simulation.error or simulation.revert_reason}"
                )
                return Resolution.REJECTED

            await self._ensure_target_pending(bundle.target_block)
            await self.relay.send_bundle(bundle)
        except RelayError as e:
            logger.error(f"❌ Relay submission failed for block {bundle.target_block}: {e}")
            return Resolution.SUBMISSION_FAILED

        try:
            relay_resolution = await asyncio.wait_for(
                self.relay.wait_for_resolution(bundle, self.signer.address),
                timeout=self.config.inclusion_timeout
            )
        except asyncio.TimeoutError:
            logger.info(f"No resolution for block {bundle.target_block} within {self.config.inclusion_timeout}s")
            return Resolution.NOT_INCLUDED
        except Exception as e:
            logger.warning(f"Inclusion check failed for block {bundle.target_block}: {e}")
            return Resolution.NOT_INCLUDED

        return RELAY_RESOLUTION_MAP[relay_resolution]

    async def _fee_params(self) -> Tuple[int, int]:
        """Fee parameters from the oracle, or the conservative fallback."""
        if self.fee_oracle is not None:
            try:
                sample = await self.fee_oracle.get_fee_sample()
                return sample.max_fee_per_gas, sample.max_priority_fee_per_gas
            except FeeUnavailableError as e:
                logger.warning(f"Fee oracle unavailable, using fallback fees: {e}")

        return self.config.fallback_max_fee_per_gas, self.config.fallback_priority_fee_per_gas

    async def _log_resolution(self, resolution: Resolution, bundle: Bundle, verdict: ProfitVerdict) -> None:
        if resolution is Resolution.INCLUDED:
            logger.info(f"✅ Bundle included in block {bundle.target_block}, profit {verdict.net_yield_eth:.6f} ETH")
            try:
                balance = await self.node.get_balance(self.contract.address)
                logger.info(f"  Contract balance: {wei_to_eth(balance):.6f} ETH")
            except Exception as e:
                logger.debug(f"Contract balance unavailable: {e}")
        elif resolution is Resolution.NOT_INCLUDED:
            logger.info(f"⏭️  Bundle not included in block {bundle.target_block}")
        elif resolution is Resolution.REJECTED:
            logger.warning(f"❌ Bundle rejected for block {bundle.target_block}")
        else:
            logger.error(f"❌ Bundle submission failed for block {bundle.target_block}")
