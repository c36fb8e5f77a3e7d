"""Unit tests for the node provider."""
import asyncio

import pytest
from hexbytes import HexBytes
from unittest.mock import AsyncMock, MagicMock, patch
from web3.exceptions import TransactionNotFound, Web3Exception

from mempool_arbitrage.blockchain_connector.provider import NodeProvider, to_hex_hash
from mempool_arbitrage.core.exceptions import StartupError


def connected_provider() -> NodeProvider:
    provider = NodeProvider("http://localhost:8545")
    provider.w3 = MagicMock()
    return provider


class TestToHexHash:

    @pytest.mark.parametrize("value,expected", [
        (HexBytes("0xabcd"), "0xabcd"),
        (b"\x01\x02", "0x0102"),
        ("0xabcd", "0xabcd"),
        ("abcd", "0xabcd"),
    ])
    def test_rendering(self, value, expected):
        assert to_hex_hash(value) == expected


class TestNodeProvider:

    async def test_initialize_without_url(self):
        with pytest.raises(StartupError):
            await NodeProvider(None).initialize()

    async def test_initialize_unreachable_node(self):
        w3 = MagicMock()
        w3.is_connected = AsyncMock(return_value=False)
        with patch("mempool_arbitrage.blockchain_connector.provider.AsyncWeb3", return_value=w3):
            with pytest.raises(StartupError):
                await NodeProvider("http://localhost:8545").initialize()

    async def test_initialize_connection_error(self):
        w3 = MagicMock()
        w3.is_connected = AsyncMock(side_effect=OSError("connection refused"))
        with patch("mempool_arbitrage.blockchain_connector.provider.AsyncWeb3", return_value=w3):
            with pytest.raises(StartupError):
                await NodeProvider("http://localhost:8545").initialize()

    def test_uninitialized_access(self):
        with pytest.raises(RuntimeError):
            NodeProvider("http://localhost:8545").get_web3()

    async def test_unknown_transaction_is_none(self):
        provider = connected_provider()
        provider.w3.eth.get_transaction = AsyncMock(side_effect=TransactionNotFound("unknown"))

        assert await provider.get_transaction("0x01") is None

    async def test_unmined_receipt_is_none(self):
        provider = connected_provider()
        provider.w3.eth.get_transaction_receipt = AsyncMock(side_effect=TransactionNotFound("pending"))

        assert await provider.get_transaction_receipt("0x01") is None

    async def test_send_raw_transaction_returns_hex(self):
        provider = connected_provider()
        provider.w3.eth.send_raw_transaction = AsyncMock(return_value=HexBytes("0x" + "ab" * 32))

        assert await provider.send_raw_transaction("0x02f8") == "0x" + "ab" * 32

    async def test_pending_stream(self):
        provider = connected_provider()
        pending_filter = MagicMock()
        pending_filter.get_new_entries = AsyncMock(side_effect=[
            [HexBytes("0x01"), HexBytes("0x02")],
            [HexBytes("0x03")],
        ])
        provider.w3.eth.filter = AsyncMock(return_value=pending_filter)

        stream = provider.pending_transaction_hashes(poll_interval=0)
        hashes = [await stream.__anext__() for _ in range(3)]
        await stream.aclose()

        assert hashes == ["0x01", "0x02", "0x03"]
        provider.w3.eth.filter.assert_awaited_once_with("pending")

    async def test_pending_stream_reinstalls_filter(self):
        provider = connected_provider()
        broken = MagicMock()
        broken.get_new_entries = AsyncMock(side_effect=Web3Exception("filter not found"))
        fresh = MagicMock()
        fresh.get_new_entries = AsyncMock(return_value=[HexBytes("0x0a")])
        provider.w3.eth.filter = AsyncMock(side_effect=[broken, fresh])

        with patch("mempool_arbitrage.blockchain_connector.provider.asyncio.sleep", new=AsyncMock()):
            stream = provider.pending_transaction_hashes(poll_interval=0)
            first = await asyncio.wait_for(stream.__anext__(), timeout=5)
            await stream.aclose()

        assert first == "0x0a"
        assert provider.w3.eth.filter.await_count == 2

    async def test_close(self):
        provider = connected_provider()
        w3 = provider.w3
        w3.provider.disconnect = AsyncMock()

        await provider.close()

        w3.provider.disconnect.assert_awaited_once()
        assert provider.w3 is None
