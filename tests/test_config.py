"""
Tests for network configuration and environment settings
"""

from decimal import Decimal

import pytest

from x402_relay.config import FacilitatorSettings, NetworkConfig
from x402_relay.exceptions import ConfigurationError, UnsupportedNetworkError

ENV_KEYS = [
    "FACILITATOR_PRIVATE_KEY",
    "PAYMASTER_PIMLICO_API_KEY",
    "BUNDLER_CHAIN",
    "BUNDLER_URL",
    "GACHA_RECIPIENT_ADDRESS",
    "GACHA_PRICE_USD",
    "FORTUNE_API_KEY",
    "ORACLE_RPC_URL",
    "FACILITATOR_HOST",
    "FACILITATOR_PORT",
    "LOG_LEVEL",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return str(tmp_path / "missing.env")


class TestNetworkConfig:
    def test_chain_ids(self):
        assert NetworkConfig.get_chain_id("eip155:84532") == 84532
        assert NetworkConfig.get_chain_id(NetworkConfig.EVM_SEPOLIA) == 11155111

    def test_invalid_network(self):
        with pytest.raises(UnsupportedNetworkError):
            NetworkConfig.get_chain_id("tron:nile")
        with pytest.raises(UnsupportedNetworkError):
            NetworkConfig.get_chain_id("eip155:abc")

    def test_bundler_url(self):
        assert (
            NetworkConfig.get_bundler_url("base-sepolia", "pim_key")
            == "https://api.pimlico.io/v2/base-sepolia/rpc?apikey=pim_key"
        )
        with pytest.raises(UnsupportedNetworkError):
            NetworkConfig.get_bundler_url("polygon", "pim_key")


class TestFacilitatorSettings:
    def test_defaults(self, clean_env):
        settings = FacilitatorSettings.from_env(clean_env)
        assert settings.facilitator_configured is False
        assert settings.bundler_configured is False
        assert settings.bundler_chain == "base-sepolia"
        assert settings.gacha_price_usd == Decimal("0.50")
        assert settings.port == 8001
        with pytest.raises(ConfigurationError):
            settings.resolve_bundler_url()

    def test_from_env(self, clean_env, monkeypatch):
        monkeypatch.setenv("FACILITATOR_PRIVATE_KEY", "0x" + "01" * 32)
        monkeypatch.setenv("PAYMASTER_PIMLICO_API_KEY", "pim_key")
        monkeypatch.setenv("GACHA_PRICE_USD", "1.25")
        monkeypatch.setenv("FACILITATOR_PORT", "9000")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        settings = FacilitatorSettings.from_env(clean_env)
        assert settings.facilitator_configured is True
        assert settings.bundler_configured is True
        assert settings.gacha_price_usd == Decimal("1.25")
        assert settings.port == 9000
        assert settings.log_level == "DEBUG"
        assert settings.resolve_bundler_url().endswith("/base-sepolia/rpc?apikey=pim_key")

    def test_explicit_bundler_url_wins(self, clean_env, monkeypatch):
        monkeypatch.setenv("PAYMASTER_PIMLICO_API_KEY", "pim_key")
        monkeypatch.setenv("BUNDLER_URL", "http://localhost:4337")
        assert FacilitatorSettings.from_env(clean_env).resolve_bundler_url() == "http://localhost:4337"

    def test_invalid_price(self, clean_env, monkeypatch):
        monkeypatch.setenv("GACHA_PRICE_USD", "half a dollar")
        with pytest.raises(ConfigurationError):
            FacilitatorSettings.from_env(clean_env)
