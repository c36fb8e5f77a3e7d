"""Unit tests for transaction signing."""
import asyncio

import pytest
from eth_account import Account
from unittest.mock import Mock
from web3 import Web3

from conftest import CONTRACT_ADDRESS, TEST_PRIVATE_KEY, FakeNode
from mempool_arbitrage.core.exceptions import StartupError
from mempool_arbitrage.mev_protection.nonce_manager import NonceManager
from mempool_arbitrage.mev_protection.signer import TransactionSigner, load_account


class TestLoadAccount:

    def test_valid_key(self):
        account = load_account(TEST_PRIVATE_KEY)
        assert account.address == Account.from_key(TEST_PRIVATE_KEY).address

    @pytest.mark.parametrize("key", [None, "", "0xnothex", "0x1234"])
    def test_missing_or_invalid_key(self, key):
        with pytest.raises(StartupError):
            load_account(key)


class TestTransactionSigner:
    """Test signing with nonces from the shared manager."""

    @pytest.fixture
    async def signer(self):
        account = load_account(TEST_PRIVATE_KEY)
        nonce_manager = NonceManager(FakeNode(nonce=3), account.address)
        await nonce_manager.initialize()
        return TransactionSigner(account, nonce_manager, chain_id=1)

    def test_signature_recovers_to_wallet(self, signer):
        payload = signer.sign(
            to=CONTRACT_ADDRESS,
            data=b"\x12\x34\x56\x78",
            gas_limit=500_000,
            max_fee_per_gas=30 * 10**9,
            max_priority_fee_per_gas=2 * 10**9,
            nonce=42
        )

        assert payload.nonce == 42
        assert payload.raw_transaction.startswith("0x02")
        assert Account.recover_transaction(payload.raw_transaction) == signer.address
        assert payload.transaction_hash == Web3.to_hex(Web3.keccak(hexstr=payload.raw_transaction))

    def test_transaction_fields(self):
        account = Mock()
        account.sign_transaction.return_value = Mock(raw_transaction=b"\x02\x01", hash=b"\xaa" * 32)
        signer = TransactionSigner(account, Mock(), chain_id=11155111)

        signer.sign(
            to=CONTRACT_ADDRESS.lower(),
            data=b"",
            gas_limit=100_000,
            max_fee_per_gas=10,
            max_priority_fee_per_gas=50,
            nonce=5,
            value=123
        )

        transaction = account.sign_transaction.call_args[0][0]
        assert transaction["type"] == 2
        assert transaction["chainId"] == 11155111
        assert transaction["to"] == Web3.to_checksum_address(CONTRACT_ADDRESS)
        assert transaction["data"] == "0x"
        assert transaction["value"] == 123
        assert transaction["nonce"] == 5
        # Priority fee never exceeds the max fee
        assert transaction["maxPriorityFeePerGas"] == 10

    async def test_sign_next_takes_sequential_nonces(self, signer):
        first = await signer.sign_next(CONTRACT_ADDRESS, b"\x01", 21_000, 10**10, 10**9)
        second = await signer.sign_next(CONTRACT_ADDRESS, b"\x01", 21_000, 10**10, 10**9)

        assert (first.nonce, second.nonce) == (3, 4)
        assert first.transaction_hash != second.transaction_hash

    async def test_concurrent_sign_next_never_reuses_nonce(self, signer):
        payloads = await asyncio.gather(*(
            signer.sign_next(CONTRACT_ADDRESS, b"\x01", 21_000, 10**10, 10**9)
            for _ in range(10)
        ))

        assert sorted(p.nonce for p in payloads) == list(range(3, 13))

    async def test_failed_signing_keeps_nonce(self, signer):
        with pytest.raises(ValueError):
            await signer.sign_next("not-an-address", b"", 21_000, 10**10, 10**9)

        payload = await signer.sign_next(CONTRACT_ADDRESS, b"", 21_000, 10**10, 10**9)

        assert payload.nonce == 3
