"""Transaction signing for the executing wallet."""
import logging
from dataclasses import dataclass

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3

from ..core.exceptions import StartupError
from .nonce_manager import NonceManager

logger = logging.getLogger(__name__)


def load_account(private_key: str) -> LocalAccount:
    """Load the executing wallet. Raises StartupError when the key is missing or invalid."""
    if not private_key:
        raise StartupError("No private key configured")
    try:
        return Account.from_key(private_key)
    except Exception as e:
        raise StartupError(f"Invalid private key: {e}") from e


@dataclass(frozen=True)
class SignedPayload:
    """Raw signed transaction and its hash, both 0x-prefixed hex."""
    raw_transaction: str
    transaction_hash: str
    nonce: int


class TransactionSigner:
    """Signs EIP-1559 transactions with nonces from the shared nonce manager."""

    def __init__(self, account: LocalAccount, nonce_manager: NonceManager, chain_id: int = 1):
        self.account = account
        self.nonce_manager = nonce_manager
        self.chain_id = chain_id

    @property
    def address(self) -> str:
        return self.account.address

    def sign(
        self,
        to: str,
        data: bytes,
        gas_limit: int,
        max_fee_per_gas: int,
        max_priority_fee_per_gas: int,
        nonce: int,
        value: int = 0
    ) -> SignedPayload:
        """Sign a transaction with explicit parameters."""
        transaction = {
            "type": 2,
            "chainId": self.chain_id,
            "to": Web3.to_checksum_address(to),
            "value": value,
            "data": Web3.to_hex(data) if data else "0x",
            "gas": gas_limit,
            "maxFeePerGas": max_fee_per_gas,
            "maxPriorityFeePerGas": min(max_priority_fee_per_gas, max_fee_per_gas),
            "nonce": nonce,
        }
        signed = self.account.sign_transaction(transaction)
        return SignedPayload(
            raw_transaction=Web3.to_hex(signed.raw_transaction),
            transaction_hash=Web3.to_hex(signed.hash),
            nonce=nonce,
        )

    async def sign_next(
        self,
        to: str,
        data: bytes,
        gas_limit: int,
        max_fee_per_gas: int,
        max_priority_fee_per_gas: int,
        value: int = 0
    ) -> SignedPayload:
        """Take the next nonce and sign in one critical section."""
        async with self.nonce_manager.reserve() as nonce:
            payload = self.sign(
                to, data, gas_limit, max_fee_per_gas, max_priority_fee_per_gas, nonce, value
            )
        logger.debug(f"Signed {payload.transaction_hash[:10]}... with nonce {nonce}")
        return payload
