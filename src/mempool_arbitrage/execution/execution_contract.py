"""
Execution contract calldata.

Encodes calls against the flash loan arbitrage contract:

    executeFlashLoanArbitrage(address asset, uint256 amount, uint256[] path)
    userEarnings(address user) view returns (uint256)
    withdraw(uint256 amount)
"""
import logging
from typing import Sequence

from eth_abi import decode, encode
from web3 import Web3

from ..blockchain_connector.provider import NodeProvider

logger = logging.getLogger(__name__)

EXECUTE_STRATEGY_SIGNATURE = "executeFlashLoanArbitrage(address,uint256,uint256[])"
USER_EARNINGS_SIGNATURE = "userEarnings(address)"
WITHDRAW_SIGNATURE = "withdraw(uint256)"


def function_selector(signature: str) -> bytes:
    """First four bytes of the keccak hash of a function signature."""
    return bytes(Web3.keccak(text=signature)[:4])


class ExecutionContract:
    """Calldata builder for the execution contract."""

    def __init__(self, address: str):
        self.address = Web3.to_checksum_address(address)

    def build_execute_strategy_call(self, asset: str, amount_wei: int, path: Sequence[int]) -> bytes:
        """Encode executeFlashLoanArbitrage(asset, amount, path)."""
        params = encode(
            ["address", "uint256", "uint256[]"],
            [Web3.to_checksum_address(asset), amount_wei, list(path)]
        )
        return function_selector(EXECUTE_STRATEGY_SIGNATURE) + params

    def build_withdraw_call(self, amount_wei: int) -> bytes:
        """Encode withdraw(amount)."""
        return function_selector(WITHDRAW_SIGNATURE) + encode(["uint256"], [amount_wei])

    def build_user_earnings_call(self, account: str) -> bytes:
        """Encode userEarnings(account)."""
        return function_selector(USER_EARNINGS_SIGNATURE) + encode(
            ["address"], [Web3.to_checksum_address(account)]
        )

    async def read_earnings(self, node: NodeProvider, account: str) -> int:
        """Read userEarnings(account) from the contract, in wei."""
        result = await node.call(self.address, self.build_user_earnings_call(account))
        (earnings,) = decode(["uint256"], bytes(result))
        return earnings
