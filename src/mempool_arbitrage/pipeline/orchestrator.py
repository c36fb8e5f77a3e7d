"""
Opportunity Pipeline.

Feeds pending transaction hashes from the node into a bounded queue drained
by a fixed pool of workers. Each worker runs one independent pass per hash:

    Received -> Classified{Match|NoMatch} -> Evaluated{Profitable|Unprofitable}
             -> Submitted -> Resolved

A slow submission occupies one worker only; intake and the other workers keep
going. A full queue drops new hashes instead of blocking intake.
"""
import asyncio
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..blockchain_connector.provider import NodeProvider
from ..core.exceptions import StaleOpportunityError
from ..execution.bundle_submitter import BundleSubmitter
from ..mev_detection.classifier import OpportunityClassifier
from ..mev_detection.opportunity_models import ObservedTransaction, PassOutcome
from ..mev_detection.profit_estimator import ProfitEstimator
from .counters import PipelineCounters

logger = logging.getLogger(__name__)


@dataclass
class PipelineConfig:
    """Configuration for the opportunity pipeline."""
    worker_count: int = 32
    queue_size: int = 10_000
    pending_poll_interval_seconds: float = 0.2
    status_log_interval_seconds: float = 60.0
    recent_hash_window: int = 50_000


class OpportunityPipeline:
    """Orchestrates classification, evaluation and submission per pending transaction."""

    def __init__(
        self,
        config: PipelineConfig,
        node: NodeProvider,
        classifier: OpportunityClassifier,
        estimator: ProfitEstimator,
        submitter: BundleSubmitter,
        counters: Optional[PipelineCounters] = None
    ):
        self.config = config
        self.node = node
        self.classifier = classifier
        self.estimator = estimator
        self.submitter = submitter
        self.counters = counters or PipelineCounters()

        self.queue: asyncio.Queue = asyncio.Queue(maxsize=config.queue_size)
        self._recent_hashes: "OrderedDict[str, None]" = OrderedDict()

        # Running state
        self.is_running = False
        self.tasks: List[asyncio.Task] = []

    async def start(self):
        """Start intake, workers and the status logger."""
        if self.is_running:
            logger.warning("Opportunity pipeline already running")
            return

        logger.info(f"🚀 Starting opportunity pipeline with {self.config.worker_count} workers")
        self.is_running = True

        self.tasks = [
            asyncio.create_task(self._intake_loop(), name="pipeline-intake"),
            asyncio.create_task(self._status_loop(), name="pipeline-status"),
        ]
        self.tasks.extend(
            asyncio.create_task(self._worker(i), name=f"pipeline-worker-{i}")
            for i in range(self.config.worker_count)
        )

        logger.info(f"Min profit threshold: {self.estimator.config.min_profit_usd} USD")
        logger.info("✅ Mempool monitoring started")

    async def stop(self):
        """Stop all pipeline tasks."""
        logger.info("🛑 Stopping opportunity pipeline")
        self.is_running = False

        for task in self.tasks:
            task.cancel()

        await asyncio.gather(*self.tasks, return_exceptions=True)
        self.tasks.clear()

    def enqueue(self, tx_hash: str) -> bool:
        """Queue a pending hash for processing. Never blocks."""
        if tx_hash in self._recent_hashes:
            return False

        try:
            self.queue.put_nowait(tx_hash)
        except asyncio.QueueFull:
            self.counters.record_dropped()
            return False

        self._recent_hashes[tx_hash] = None
        if len(self._recent_hashes) > self.config.recent_hash_window:
            self._recent_hashes.popitem(last=False)
        return True

    async def process_hash(self, tx_hash: str) -> PassOutcome:
        """Run one pass for a pending transaction hash."""
        self.counters.record_scanned()

        try:
            tx = await self.node.get_transaction(tx_hash)
        except Exception as e:
            # Most pending transactions are gone or unknown by the time we ask
            logger.debug(f"Fetch failed for {tx_hash[:10]}...: {e}")
            tx = None

        if tx is None:
            self.counters.record_fetch_miss()
            return PassOutcome.UNFETCHABLE

        return await self.process_transaction(ObservedTransaction.from_node(tx))

    async def process_transaction(self, observed: ObservedTransaction) -> PassOutcome:
        """Classify, evaluate and maybe submit one observed transaction."""
        opportunity = self.classifier.classify(observed)
        if opportunity is None:
            return PassOutcome.NO_MATCH

        self.counters.record_opportunity()
        observed_block = await self.node.get_block_number()

        verdict = await self.estimator.estimate(opportunity)
        if not verdict.profitable:
            self.counters.record_unprofitable()
            logger.debug(
                f"Unprofitable {opportunity.selector_name} in {observed.hash[:10]}...: "
                f"net {verdict.net_yield_eth:.6f} ETH <= {verdict.threshold_eth:.6f} ETH"
            )
            return PassOutcome.UNPROFITABLE

        logger.info("💰 Profitable opportunity found")
        logger.info(f"  Trade size: {opportunity.notional_eth:.4f} ETH")
        logger.info(f"  Expected profit: {verdict.net_yield_usd:.2f} USD")
        logger.info(f"  Gas cost: {verdict.execution_cost_eth:.4f} ETH")
        logger.info(f"  Target tx: {observed.hash}")

        try:
            await self.submitter.submit(opportunity, verdict, observed_block)
        except StaleOpportunityError as e:
            self.counters.record_stale()
            logger.info(f"Discarded {observed.hash[:10]}...: {e}")
            return PassOutcome.STALE

        return PassOutcome.RESOLVED

    async def _intake_loop(self):
        """Move pending hashes from the node stream into the queue."""
        while self.is_running:
            try:
                async for tx_hash in self.node.pending_transaction_hashes(
                    self.config.pending_poll_interval_seconds
                ):
                    self.enqueue(tx_hash)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Pending transaction stream error: {e}")
                await asyncio.sleep(1)

    async def _worker(self, worker_id: int):
        while True:
            tx_hash = await self.queue.get()
            try:
                await self.process_hash(tx_hash)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Worker {worker_id} failed on {tx_hash[:10]}...: {e}")
            finally:
                self.queue.task_done()

    async def _status_loop(self):
        last_scanned = 0
        while self.is_running:
            await asyncio.sleep(self.config.status_log_interval_seconds)
            snapshot = self.counters.snapshot()
            logger.info(
                f"📊 MEV status: pending_scanned={snapshot.pending_scanned - last_scanned} "
                f"(total {snapshot.pending_scanned}), "
                f"opportunities_found={snapshot.opportunities_found}, "
                f"profitable_executed={snapshot.profitable_executions}, "
                f"total_profit_eth={snapshot.total_profit_eth:.6f}, "
                f"queue={self.queue.qsize()}"
            )
            last_scanned = snapshot.pending_scanned

    def get_stats(self) -> Dict[str, Any]:
        """Get pipeline statistics."""
        return {
            **self.counters.snapshot().to_dict(),
            "online": self.is_running,
            "queue_depth": self.queue.qsize(),
            "workers": self.config.worker_count,
            "timestamp": time.time(),
        }
