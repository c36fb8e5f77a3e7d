"""
Administrative transactions.

Funding, withdrawal and balance reads issued alongside the pipeline. These
transactions take their nonce from the same nonce manager as bundles, so
they are serialized with bundle signing rather than racing it.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from ..blockchain_connector.provider import NodeProvider
from ..mev_protection.signer import TransactionSigner
from ..mev_detection.opportunity_models import eth_to_wei, wei_to_eth
from .execution_contract import ExecutionContract
from .fee_oracle import FeeOracle

logger = logging.getLogger(__name__)

ADMIN_GAS_LIMIT = 100_000


@dataclass(frozen=True)
class AdminReceipt:
    """Outcome of a confirmed administrative transaction."""
    tx_hash: str
    block_number: int
    status: int


class AdminTransactions:
    """Wallet and contract administration."""

    def __init__(
        self,
        node: NodeProvider,
        signer: TransactionSigner,
        contract: ExecutionContract,
        fee_oracle: FeeOracle,
        fallback_max_fee_per_gas: int,
        fallback_priority_fee_per_gas: int,
        receipt_timeout: float = 180
    ):
        self.node = node
        self.signer = signer
        self.contract = contract
        self.fee_oracle = fee_oracle
        self.fallback_max_fee_per_gas = fallback_max_fee_per_gas
        self.fallback_priority_fee_per_gas = fallback_priority_fee_per_gas
        self.receipt_timeout = receipt_timeout

    async def wallet_balance_eth(self) -> float:
        return wei_to_eth(await self.node.get_balance(self.signer.address))

    async def contract_balance_eth(self, address: Optional[str] = None) -> float:
        return wei_to_eth(await self.node.get_balance(address or self.contract.address))

    async def earnings_eth(self) -> float:
        return wei_to_eth(await self.contract.read_earnings(self.node, self.signer.address))

    async def fund_contract(self, amount_eth: float) -> AdminReceipt:
        """Transfer ETH from the wallet to the execution contract."""
        logger.info(f"Funding contract {self.contract.address} with {amount_eth} ETH")
        return await self._send(self.contract.address, b"", eth_to_wei(amount_eth))

    async def withdraw(self, amount_eth: float, contract_address: Optional[str] = None) -> AdminReceipt:
        """Call withdraw(amount) on the execution contract."""
        contract = ExecutionContract(contract_address) if contract_address else self.contract
        logger.info(f"Withdrawing {amount_eth} ETH from {contract.address}")
        return await self._send(contract.address, contract.build_withdraw_call(eth_to_wei(amount_eth)), 0)

    async def _send(self, to: str, data: bytes, value: int) -> AdminReceipt:
        try:
            sample = await self.fee_oracle.get_fee_sample()
            max_fee, priority_fee = sample.max_fee_per_gas, sample.max_priority_fee_per_gas
        except Exception as e:
            logger.warning(f"Fee oracle unavailable for admin transaction, using fallback: {e}")
            max_fee, priority_fee = self.fallback_max_fee_per_gas, self.fallback_priority_fee_per_gas

        signed = await self.signer.sign_next(
            to=to,
            data=data,
            gas_limit=ADMIN_GAS_LIMIT,
            max_fee_per_gas=max_fee,
            max_priority_fee_per_gas=priority_fee,
            value=value
        )

        try:
            tx_hash = await self.node.send_raw_transaction(signed.raw_transaction)
        except Exception:
            self.signer.nonce_manager.release(signed.nonce, landed=False)
            raise

        logger.info(f"Admin transaction sent: {tx_hash}")
        try:
            receipt = await self.node.wait_for_receipt(tx_hash, timeout=self.receipt_timeout)
        except Exception:
            self.signer.nonce_manager.release(signed.nonce, landed=False)
            raise

        self.signer.nonce_manager.release(signed.nonce, landed=True)
        logger.info(f"Admin transaction confirmed in block {receipt['blockNumber']}")
        return AdminReceipt(
            tx_hash=tx_hash,
            block_number=receipt["blockNumber"],
            status=receipt.get("status", 1),
        )
