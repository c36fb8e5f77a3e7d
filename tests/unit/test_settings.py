"""Unit tests for application settings."""
import pytest

from mempool_arbitrage.config.settings import Settings


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Run each test without a .env file or inherited variables."""
    monkeypatch.chdir(tmp_path)
    for name in ("MAINNET_RPC", "PRIVATE_KEY", "MIN_PROFIT_USD", "WORKER_COUNT",
                 "TRADE_SELECTORS", "STRATEGY_PATH", "PORT", "ETH_PRICE_USD"):
        monkeypatch.delenv(name, raising=False)


class TestSettings:

    def test_defaults(self):
        config = Settings()

        assert config.port == 3001
        assert config.min_profit_usd == 50.0
        assert config.eth_price_usd == 3450.0
        assert config.gas_limit == 500_000
        assert config.flash_loan_amount_eth == 100.0
        assert config.strategy_path == [0, 1, 2, 50, 100]
        assert config.min_notional_eth == 0.5
        assert config.fallback_max_fee_gwei == 50.0
        assert config.fallback_priority_fee_gwei == 2.0
        assert config.trade_selectors == []
        assert config.private_key is None

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("MAINNET_RPC", "https://node.example.org")
        monkeypatch.setenv("MIN_PROFIT_USD", "75")
        monkeypatch.setenv("WORKER_COUNT", "4")
        monkeypatch.setenv("TRADE_SELECTORS", '["0x38ed1739"]')
        monkeypatch.setenv("STRATEGY_PATH", "[1, 2]")

        config = Settings()

        assert config.ethereum_rpc_url == "https://node.example.org"
        assert config.min_profit_usd == 75.0
        assert config.worker_count == 4
        assert config.trade_selectors == ["0x38ed1739"]
        assert config.strategy_path == [1, 2]

    def test_dotenv_file(self, tmp_path):
        (tmp_path / ".env").write_text("ETH_PRICE_USD=2000\nUNRELATED_SETTING=1\n")

        assert Settings().eth_price_usd == 2000.0

    def test_field_names_accepted(self):
        assert Settings(min_profit_usd=10).min_profit_usd == 10
