"""
Flashbots Integration for private bundle submission.

This module submits single-block bundles to a Flashbots-compatible relay,
simulates them before submission, and resolves their inclusion against the
node once the target block has been produced.
"""
import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional

import aiohttp
from eth_account import Account
from eth_account.messages import encode_defunct
from web3 import Web3

from ..blockchain_connector.provider import NodeProvider
from ..core.exceptions import RelayError, RelayTransportError
from ..mev_detection.opportunity_models import Bundle

logger = logging.getLogger(__name__)


class FlashbotsNetwork(str, Enum):
    """Supported Flashbots networks."""
    MAINNET = "mainnet"
    SEPOLIA = "sepolia"
    HOLESKY = "holesky"


class RelayResolution(IntEnum):
    """Relay-side outcome of a bundle once its target block is settled."""
    BUNDLE_INCLUDED = 0
    BLOCK_PASSED_WITHOUT_INCLUSION = 1
    ACCOUNT_NONCE_TOO_HIGH = 2


@dataclass
class FlashbotsBundleResponse:
    """Response from Flashbots bundle submission."""
    bundle_hash: str
    target_block: int
    submitted_at: float = field(default_factory=time.time)


@dataclass
class FlashbotsSimulationResult:
    """Result of Flashbots bundle simulation."""
    success: bool
    bundle_hash: str = ""

    # Gas analysis
    total_gas_used: int = 0
    coinbase_diff: int = 0

    # Transaction results
    transaction_results: List[Dict[str, Any]] = field(default_factory=list)
    state_block: int = 0

    # Error information
    error: Optional[str] = None
    revert_reason: Optional[str] = None


class FlashbotsClient:
    """
    Flashbots relay client.

    Requests are JSON-RPC posts signed with a dedicated auth key that carries
    no funds; the key only identifies the searcher to the relay.
    """

    def __init__(
        self,
        node: NodeProvider,
        auth_key: Optional[str] = None,
        network: FlashbotsNetwork = FlashbotsNetwork.MAINNET,
        relay_url: Optional[str] = None,
        request_timeout: float = 10.0,
        block_poll_interval: float = 1.0
    ):
        """
        Initialize Flashbots client.

        Args:
            node: Node provider used to follow blocks and receipts
            auth_key: Key for signing relay requests (random if None)
            network: Target network
            relay_url: Custom relay URL (uses default if None)
            request_timeout: HTTP timeout for relay calls in seconds
            block_poll_interval: Interval between head checks while waiting
        """
        self.node = node
        self.network = network
        self.auth_account = Account.from_key(auth_key) if auth_key else Account.create()
        self.relay_url = relay_url or self._get_default_relay_url(network)
        self.request_timeout = request_timeout
        self.block_poll_interval = block_poll_interval

        # HTTP session for API calls
        self.session: Optional[aiohttp.ClientSession] = None
        self._request_id = 0

        # Statistics
        self.stats = {
            "bundles_simulated": 0,
            "bundles_submitted": 0,
            "bundles_included": 0,
            "transport_errors": 0,
        }

    def _get_default_relay_url(self, network: FlashbotsNetwork) -> str:
        """Get default Flashbots relay URL for network."""
        urls = {
            FlashbotsNetwork.MAINNET: "https://relay.flashbots.net",
            FlashbotsNetwork.SEPOLIA: "https://relay-sepolia.flashbots.net",
            FlashbotsNetwork.HOLESKY: "https://relay-holesky.flashbots.net",
        }
        return urls[network]

    async def initialize(self):
        """Initialize the Flashbots client."""
        if self.session is None:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.request_timeout),
                headers={"User-Agent": "mempool-arbitrage/0.1"}
            )
        logger.info(f"Flashbots client initialized for {self.relay_url}")

    async def close(self):
        """Close the Flashbots client."""
        if self.session:
            await self.session.close()
            self.session = None

    async def simulate_bundle(self, bundle: Bundle, state_block: int) -> FlashbotsSimulationResult:
        """
        Simulate bundle execution through the relay (eth_callBundle).

        Raises:
            RelayTransportError: if the relay cannot be reached
        """
        try:
            result = await self._call("eth_callBundle", [{
                "txs": bundle.raw_transactions,
                "blockNumber": hex(bundle.target_block),
                "stateBlockNumber": hex(state_block),
            }])
        except RelayTransportError:
            raise
        except RelayError as e:
            return FlashbotsSimulationResult(success=False, error=str(e))

        self.stats["bundles_simulated"] += 1
        return self._parse_simulation_result(result)

    async def send_bundle(self, bundle: Bundle) -> FlashbotsBundleResponse:
        """
        Submit bundle to the relay (eth_sendBundle).

        Raises:
            RelayTransportError: if the relay cannot be reached
            RelayError: if the relay refuses the bundle
        """
        result = await self._call("eth_sendBundle", [{
            "txs": bundle.raw_transactions,
            "blockNumber": hex(bundle.target_block),
        }])

        bundle_hash = ""
        if isinstance(result, dict):
            bundle_hash = result.get("bundleHash", "")

        self.stats["bundles_submitted"] += 1
        logger.info(f"Bundle submitted for block {bundle.target_block}: {bundle_hash or 'no hash'}")
        return FlashbotsBundleResponse(bundle_hash=bundle_hash, target_block=bundle.target_block)

    async def wait_for_resolution(self, bundle: Bundle, sender: str) -> RelayResolution:
        """
        Wait until the target block is produced and resolve the bundle.

        Callers bound this with their own timeout.
        """
        while await self.node.get_block_number() < bundle.target_block:
            await asyncio.sleep(self.block_poll_interval)

        receipt = await self.node.get_transaction_receipt(bundle.transaction_hash)
        if receipt is not None and receipt.get("blockNumber") == bundle.target_block:
            self.stats["bundles_included"] += 1
            return RelayResolution.BUNDLE_INCLUDED

        # Our nonce was consumed by something else
        mined_nonce = await self.node.get_transaction_count(sender, "latest")
        if mined_nonce > bundle.nonce and receipt is None:
            return RelayResolution.ACCOUNT_NONCE_TOO_HIGH

        return RelayResolution.BLOCK_PASSED_WITHOUT_INCLUSION

    async def _call(self, method: str, params: List[Any]) -> Any:
        if not self.session:
            raise RuntimeError("Client not initialized")

        self._request_id += 1
        body = json.dumps({
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params,
        })

        try:
            async with self.session.post(
                self.relay_url,
                data=body,
                headers=self._get_flashbots_headers(body)
            ) as response:
                if response.status != 200:
                    error_text = await response.text()
                    self.stats["transport_errors"] += 1
                    raise RelayTransportError(f"HTTP {response.status}: {error_text}")
                try:
                    payload = await response.json(content_type=None)
                except ValueError as e:
                    self.stats["transport_errors"] += 1
                    raise RelayTransportError(f"{method} returned a non-JSON body: {e}") from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.stats["transport_errors"] += 1
            raise RelayTransportError(f"{method} failed: {e}") from e

        if not isinstance(payload, dict):
            self.stats["transport_errors"] += 1
            raise RelayTransportError(f"{method} returned an unexpected payload: {payload!r}")

        if "error" in payload:
            error = payload["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise RelayError(f"{method} error: {message}")

        return payload.get("result")

    def _get_flashbots_headers(self, body: str) -> Dict[str, str]:
        """Headers carrying the X-Flashbots-Signature of the request body."""
        message = encode_defunct(text=Web3.to_hex(Web3.keccak(text=body)))
        signature = Account.sign_message(message, private_key=self.auth_account.key)
        return {
            "Content-Type": "application/json",
            "X-Flashbots-Signature": f"{self.auth_account.address}:{Web3.to_hex(signature.signature)}"
        }

    def _parse_simulation_result(self, result: Any) -> FlashbotsSimulationResult:
        """Parse an eth_callBundle result."""
        if not isinstance(result, dict):
            return FlashbotsSimulationResult(success=False, error="Empty simulation result")

        tx_results = result.get("results", []) or []
        coinbase_diff = result.get("coinbaseDiff", 0)

        for tx_result in tx_results:
            if tx_result.get("error") or tx_result.get("revert"):
                return FlashbotsSimulationResult(
                    success=False,
                    bundle_hash=result.get("bundleHash", ""),
                    transaction_results=tx_results,
                    error=tx_result.get("error"),
                    revert_reason=tx_result.get("revert"),
                )

        return FlashbotsSimulationResult(
            success=True,
            bundle_hash=result.get("bundleHash", ""),
            total_gas_used=result.get("totalGasUsed", 0),
            coinbase_diff=int(coinbase_diff, 0) if isinstance(coinbase_diff, str) else int(coinbase_diff or 0),
            transaction_results=tx_results,
            state_block=result.get("stateBlockNumber", 0),
        )

    def get_stats(self) -> Dict[str, Any]:
        """Get Flashbots client statistics."""
        stats = self.stats.copy()

        if stats["bundles_submitted"] > 0:
            stats["inclusion_rate"] = stats["bundles_included"] / stats["bundles_submitted"] * 100
        else:
            stats["inclusion_rate"] = 0.0

        return stats
