"""Shared fixtures and fake collaborators for the test suite."""
import sys
from pathlib import Path
from typing import Any, Dict, Optional
from unittest.mock import AsyncMock, MagicMock, Mock

import pytest

# Add src to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

from mempool_arbitrage.mev_detection.opportunity_models import (  # noqa: E402
    ObservedTransaction,
    eth_to_wei,
)
from mempool_arbitrage.mev_protection.flashbots_client import (  # noqa: E402
    FlashbotsBundleResponse,
    FlashbotsSimulationResult,
    RelayResolution,
)

TEST_PRIVATE_KEY = "0x" + "1" * 64
CONTRACT_ADDRESS = "0x83EF5c401fAa5B9674BAfAcFb089b30bAc67C9A0"


class FakeNode:
    """In-memory stand-in for the node provider."""

    def __init__(self, block_number: int = 18_500_000, nonce: int = 7):
        self.block_number = block_number
        self.nonce = nonce
        self.transactions: Dict[str, Dict[str, Any]] = {}
        self.receipts: Dict[str, Dict[str, Any]] = {}
        self.balances: Dict[str, int] = {}
        self.base_fee = 10 * 10**9
        self.priority_fee = 2 * 10**9
        self.get_transaction_calls = 0

    async def get_transaction(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        self.get_transaction_calls += 1
        return self.transactions.get(tx_hash)

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        return self.receipts.get(tx_hash)

    async def get_block_number(self) -> int:
        return self.block_number

    async def get_block(self, block_identifier="latest") -> Dict[str, Any]:
        return {"number": self.block_number, "baseFeePerGas": self.base_fee}

    async def get_gas_price(self) -> int:
        return self.base_fee

    async def get_max_priority_fee(self) -> int:
        return self.priority_fee

    async def get_transaction_count(self, address: str, block_identifier: str = "pending") -> int:
        return self.nonce

    async def get_balance(self, address: str) -> int:
        return self.balances.get(address, 0)

    def add_pending(self, tx_hash: str, data: str, value_eth: float, sender: str = "0xsender") -> None:
        self.transactions[tx_hash] = {
            "hash": tx_hash,
            "input": data,
            "value": eth_to_wei(value_eth),
            "from": sender,
            "to": "0x7a250d5630b4cf539739df2c5dacb4c659f2488d",
        }


def make_observed(data: Any = "0x38ed1739" + "00" * 32, value_eth: float = 1.0,
                  tx_hash: str = "0x" + "ab" * 32) -> ObservedTransaction:
    """Build an observed transaction from a hex payload and an ETH value."""
    return ObservedTransaction.from_node({
        "hash": tx_hash,
        "input": data,
        "value": eth_to_wei(value_eth),
        "from": "0xsender",
    })


def make_relay(resolution: RelayResolution = RelayResolution.BUNDLE_INCLUDED,
               simulation_success: bool = True) -> Mock:
    """Relay double whose calls resolve immediately."""
    relay = Mock()
    relay.simulate_bundle = AsyncMock(return_value=FlashbotsSimulationResult(
        success=simulation_success,
        error=None if simulation_success else "execution reverted",
    ))
    relay.send_bundle = AsyncMock(return_value=FlashbotsBundleResponse(
        bundle_hash="0xbundle", target_block=0
    ))
    relay.wait_for_resolution = AsyncMock(return_value=resolution)
    relay.close = AsyncMock()
    return relay


def mock_relay_session(payload: Any = None, status: int = 200, text: str = "",
                       body_error: Optional[Exception] = None) -> MagicMock:
    """aiohttp session double whose post() yields a single response."""
    response = MagicMock()
    response.status = status
    response.json = AsyncMock(return_value=payload, side_effect=body_error)
    response.text = AsyncMock(return_value=text)

    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=response)
    context.__aexit__ = AsyncMock(return_value=False)

    session = MagicMock()
    session.post = MagicMock(return_value=context)
    session.close = AsyncMock()
    return session


@pytest.fixture
def fake_node():
    return FakeNode()


@pytest.fixture
def private_key():
    """Test private key."""
    return TEST_PRIVATE_KEY


@pytest.fixture
def contract_address():
    return CONTRACT_ADDRESS
