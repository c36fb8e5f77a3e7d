"""
Nonce Manager.

Single authoritative nonce counter for the executing wallet. The counter is
seeded from the chain at startup and then advanced in memory; every nonce
is handed out while holding one asyncio lock, and the caller signs inside
that same critical section.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Set

from ..blockchain_connector.provider import NodeProvider
from ..core.exceptions import StartupError

logger = logging.getLogger(__name__)


class NonceManager:
    """In-memory nonce counter guarded by a lock."""

    MAX_RETRIES: int = 3
    RETRY_DELAY: float = 1.0

    def __init__(self, node: NodeProvider, address: str):
        self.node = node
        self.address = address
        self.lock = asyncio.Lock()

        self._next_nonce: Optional[int] = None
        self._in_flight: Set[int] = set()
        self._needs_resync = False

    async def initialize(self) -> None:
        """Seed the counter from the chain. Raises StartupError on failure."""
        async with self.lock:
            try:
                await self._sync_with_chain()
            except Exception as e:
                raise StartupError(f"Could not read nonce for {self.address}: {e}") from e
        logger.info(f"Nonce manager seeded at {self._next_nonce} for {self.address}")

    @asynccontextmanager
    async def reserve(self) -> AsyncIterator[int]:
        """
        Reserve the next nonce for the duration of the block.

        The nonce is consumed only if the block exits normally; an exception
        (for example a signing failure) leaves the counter untouched.
        """
        async with self.lock:
            if self._next_nonce is None or (self._needs_resync and not self._in_flight):
                await self._sync_with_chain()

            nonce = self._next_nonce
            yield nonce

            self._next_nonce = nonce + 1
            self._in_flight.add(nonce)

    def release(self, nonce: int, landed: bool) -> None:
        """
        Mark a reserved nonce as settled.

        A nonce that did not land leaves a gap on chain, so the counter is
        resynced on the next reservation once nothing else is in flight.
        """
        self._in_flight.discard(nonce)
        if not landed:
            self._needs_resync = True

    @property
    def next_nonce(self) -> Optional[int]:
        return self._next_nonce

    @property
    def in_flight(self) -> Set[int]:
        return set(self._in_flight)

    async def _sync_with_chain(self) -> None:
        chain_nonce = await self._fetch_chain_nonce_with_retries()
        if self._next_nonce is not None and chain_nonce != self._next_nonce:
            logger.info(f"Nonce resynced from {self._next_nonce} to {chain_nonce}")
        self._next_nonce = chain_nonce
        self._needs_resync = False

    async def _fetch_chain_nonce_with_retries(self) -> int:
        backoff = self.RETRY_DELAY
        for attempt in range(self.MAX_RETRIES):
            try:
                return await self.node.get_transaction_count(self.address, "pending")
            except Exception as e:
                if attempt == self.MAX_RETRIES - 1:
                    raise
                logger.warning(f"Nonce fetch failed (attempt {attempt + 1}): {e}")
                await asyncio.sleep(backoff)
                backoff *= 2
        raise RuntimeError("unreachable")
