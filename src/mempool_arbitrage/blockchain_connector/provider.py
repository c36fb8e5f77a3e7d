"""Blockchain provider for the node collaborator."""
import asyncio
import logging
from typing import Any, AsyncIterator, Optional, Union

from web3 import AsyncWeb3
from web3.exceptions import TransactionNotFound, Web3Exception
from web3.providers import AsyncHTTPProvider

from ..core.exceptions import StartupError

logger = logging.getLogger(__name__)


def to_hex_hash(value: Union[str, bytes]) -> str:
    """Render a transaction hash as a 0x-prefixed hex string."""
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    value = str(value)
    return value if value.startswith("0x") else "0x" + value


class NodeProvider:
    """Async node provider wrapping a single AsyncWeb3 connection."""

    def __init__(self, rpc_url: Optional[str], chain_id: int = 1, request_timeout: int = 30):
        """Initialize the node provider."""
        self.rpc_url = rpc_url
        self.chain_id = chain_id
        self.request_timeout = request_timeout
        self.w3: Optional[AsyncWeb3] = None
        self._initialized = False

    async def initialize(self) -> None:
        """Connect to the node. Raises StartupError when it cannot be reached."""
        if self._initialized:
            return

        if not self.rpc_url:
            raise StartupError("No node RPC URL configured")

        logger.info("🔗 Connecting to node...")

        try:
            w3 = AsyncWeb3(AsyncHTTPProvider(
                self.rpc_url,
                request_kwargs={"timeout": self.request_timeout}
            ))

            if not await w3.is_connected():
                raise StartupError(f"Node at {self.rpc_url} is not reachable")

            chain_id = await w3.eth.chain_id
        except StartupError:
            raise
        except Exception as e:
            raise StartupError(f"Failed to connect to node: {e}") from e

        if chain_id != self.chain_id:
            logger.warning(
                f"⚠️ Chain ID mismatch: expected {self.chain_id}, got {chain_id}"
            )

        self.w3 = w3
        self._initialized = True
        logger.info(f"✅ Connected to node (chain ID: {chain_id})")

    def get_web3(self) -> AsyncWeb3:
        """Get the underlying AsyncWeb3 instance."""
        if self.w3 is None:
            raise RuntimeError("Node provider not initialized")
        return self.w3

    async def get_transaction(self, tx_hash: str) -> Optional[Any]:
        """Fetch a transaction body. Returns None when the node does not know it."""
        try:
            return await self.get_web3().eth.get_transaction(tx_hash)
        except TransactionNotFound:
            return None

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[Any]:
        """Fetch a transaction receipt. Returns None while it is not mined."""
        try:
            return await self.get_web3().eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            return None

    async def get_block_number(self) -> int:
        """Get current block number."""
        return await self.get_web3().eth.block_number

    async def get_block(self, block_identifier: Union[str, int] = "latest") -> Any:
        return await self.get_web3().eth.get_block(block_identifier)

    async def get_balance(self, address: str) -> int:
        """Get native balance for an address (in wei)."""
        w3 = self.get_web3()
        return await w3.eth.get_balance(w3.to_checksum_address(address))

    async def get_gas_price(self) -> int:
        return await self.get_web3().eth.gas_price

    async def get_max_priority_fee(self) -> int:
        return await self.get_web3().eth.max_priority_fee

    async def get_transaction_count(self, address: str, block_identifier: str = "pending") -> int:
        w3 = self.get_web3()
        return await w3.eth.get_transaction_count(
            w3.to_checksum_address(address), block_identifier
        )

    async def call(self, to: str, data: bytes) -> bytes:
        """Execute a read-only contract call."""
        w3 = self.get_web3()
        return await w3.eth.call({"to": w3.to_checksum_address(to), "data": data})

    async def send_raw_transaction(self, raw_transaction: Union[str, bytes]) -> str:
        tx_hash = await self.get_web3().eth.send_raw_transaction(raw_transaction)
        return to_hex_hash(tx_hash)

    async def wait_for_receipt(self, tx_hash: str, timeout: float = 120) -> Any:
        return await self.get_web3().eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)

    async def pending_transaction_hashes(self, poll_interval: float = 0.2) -> AsyncIterator[str]:
        """
        Stream pending transaction hashes from a node-side pending filter.

        The filter is recreated after polling errors (nodes drop idle filters);
        the stream itself only ends when the consuming task is cancelled.
        """
        w3 = self.get_web3()
        pending_filter = None

        while True:
            try:
                if pending_filter is None:
                    pending_filter = await w3.eth.filter("pending")
                    logger.info("Pending transaction filter installed")

                entries = await pending_filter.get_new_entries()
            except asyncio.CancelledError:
                raise
            except (Web3Exception, ValueError, OSError) as e:
                logger.warning(f"Pending filter poll failed, reinstalling: {e}")
                pending_filter = None
                await asyncio.sleep(1)
                continue

            for entry in entries:
                yield to_hex_hash(entry)

            await asyncio.sleep(poll_interval)

    async def close(self) -> None:
        """Close the node connection."""
        if self.w3 is None:
            return

        logger.info("🔒 Closing node connection...")
        try:
            # Close the provider if it has a close method
            provider = self.w3.provider
            if hasattr(provider, "disconnect"):
                await provider.disconnect()
        except Exception as e:
            logger.error(f"Error closing node connection: {e}")

        self.w3 = None
        self._initialized = False
