"""Main FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI

from mempool_arbitrage import __version__
from mempool_arbitrage.api.dependencies import AppServices
from mempool_arbitrage.api.status import router as status_router
from mempool_arbitrage.blockchain_connector.provider import NodeProvider
from mempool_arbitrage.config.settings import Settings, settings
from mempool_arbitrage.execution.admin_transactions import AdminTransactions
from mempool_arbitrage.execution.bundle_submitter import BundleSubmitter, SubmitterConfig
from mempool_arbitrage.execution.execution_contract import ExecutionContract
from mempool_arbitrage.execution.fee_oracle import FeeOracle
from mempool_arbitrage.mev_detection.classifier import ClassifierConfig, OpportunityClassifier
from mempool_arbitrage.mev_detection.opportunity_models import eth_to_wei, gwei_to_wei, wei_to_eth
from mempool_arbitrage.mev_detection.profit_estimator import EstimatorConfig, ProfitEstimator
from mempool_arbitrage.mev_protection.flashbots_client import FlashbotsClient
from mempool_arbitrage.mev_protection.nonce_manager import NonceManager
from mempool_arbitrage.mev_protection.signer import TransactionSigner, load_account
from mempool_arbitrage.pipeline.counters import PipelineCounters
from mempool_arbitrage.pipeline.orchestrator import OpportunityPipeline, PipelineConfig

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


async def build_services(config: Settings) -> AppServices:
    """
    Connect collaborators and wire the pipeline.

    Raises:
        StartupError: if the node or the signing wallet cannot be set up
    """
    account = load_account(config.private_key)

    node = NodeProvider(config.ethereum_rpc_url, chain_id=config.chain_id)
    await node.initialize()

    logger.info(f"Contract: {config.execution_contract_address}")
    logger.info(f"Wallet: {account.address}")

    balance_eth = wei_to_eth(await node.get_balance(account.address))
    logger.info(f"Wallet balance: {balance_eth:.6f} ETH")
    if balance_eth < config.low_balance_warning_eth:
        logger.warning(
            f"⚠️  Wallet balance < {config.low_balance_warning_eth} ETH - may not have enough for gas"
        )

    nonce_manager = NonceManager(node, account.address)
    await nonce_manager.initialize()
    signer = TransactionSigner(account, nonce_manager, chain_id=config.chain_id)

    relay = FlashbotsClient(
        node,
        auth_key=config.flashbots_auth_key,
        relay_url=config.flashbots_relay_url,
        block_poll_interval=min(1.0, config.block_interval_seconds / 4)
    )
    await relay.initialize()
    logger.info("✅ Flashbots initialized")

    fee_oracle = FeeOracle(node)
    contract = ExecutionContract(config.execution_contract_address)
    counters = PipelineCounters()

    classifier = OpportunityClassifier(
        ClassifierConfig.from_selectors(config.trade_selectors, config.min_notional_eth)
    )
    estimator = ProfitEstimator(
        EstimatorConfig(
            gas_limit=config.gas_limit,
            min_profit_usd=config.min_profit_usd,
            eth_price_usd=config.eth_price_usd,
            yield_rate=config.yield_rate,
        ),
        fee_oracle=fee_oracle
    )
    submitter = BundleSubmitter(
        SubmitterConfig(
            flash_loan_asset=config.flash_loan_asset,
            flash_loan_amount_wei=eth_to_wei(config.flash_loan_amount_eth),
            strategy_path=list(config.strategy_path),
            gas_limit=config.gas_limit,
            fallback_max_fee_per_gas=gwei_to_wei(config.fallback_max_fee_gwei),
            fallback_priority_fee_per_gas=gwei_to_wei(config.fallback_priority_fee_gwei),
            block_interval_seconds=config.block_interval_seconds,
            inclusion_grace_seconds=config.inclusion_grace_seconds,
        ),
        node=node,
        contract=contract,
        signer=signer,
        relay=relay,
        fee_oracle=fee_oracle,
        counters=counters
    )
    pipeline = OpportunityPipeline(
        PipelineConfig(
            worker_count=config.worker_count,
            queue_size=config.queue_size,
            pending_poll_interval_seconds=config.pending_poll_interval_seconds,
            status_log_interval_seconds=config.status_log_interval_seconds,
        ),
        node=node,
        classifier=classifier,
        estimator=estimator,
        submitter=submitter,
        counters=counters
    )
    admin = AdminTransactions(
        node,
        signer,
        contract,
        fee_oracle,
        fallback_max_fee_per_gas=gwei_to_wei(config.fallback_max_fee_gwei),
        fallback_priority_fee_per_gas=gwei_to_wei(config.fallback_priority_fee_gwei)
    )

    return AppServices(pipeline=pipeline, counters=counters, admin=admin)


async def shutdown_services(services: AppServices) -> None:
    await services.pipeline.stop()
    await services.pipeline.submitter.relay.close()
    await services.pipeline.node.close()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifespan - startup and shutdown events."""
    configure_logging(settings.log_level)

    # Startup; StartupError propagates and aborts the server
    logger.info("🚀 Mempool arbitrage pipeline starting...")
    services = await build_services(settings)
    app.state.services = services

    await services.pipeline.start()
    logger.info("✅ System ready. Scanning for profitable opportunities...")

    yield

    # Shutdown
    logger.info("🛑 Shutting down...")
    await shutdown_services(services)
    logger.info("✅ System shutdown complete!")


def create_app(services: Optional[AppServices] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    When services are given they are used as-is and no startup is run.
    """
    app = FastAPI(
        title="Mempool Arbitrage API",
        description="Mempool opportunity pipeline with private bundle submission",
        version=__version__,
        lifespan=lifespan if services is None else None,
    )

    if services is not None:
        app.state.services = services

    app.include_router(status_router, tags=["status"])

    return app


# Create the app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "mempool_arbitrage.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="info" if not settings.debug else "debug",
    )
