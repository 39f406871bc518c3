"""
x402-relay Network Configuration
Centralized configuration for contract addresses, network settings and
process-level facilitator settings
"""

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Dict

from dotenv import load_dotenv

from x402_relay.exceptions import ConfigurationError, UnsupportedNetworkError


class NetworkConfig:
    """Network configuration for contract addresses and chain IDs"""

    # EVM Networks
    EVM_MAINNET = "eip155:1"
    EVM_SEPOLIA = "eip155:11155111"
    BASE_SEPOLIA = "eip155:84532"

    CHAIN_IDS: Dict[str, int] = {
        "eip155:1": 1,
        "eip155:11155111": 11155111,
        "eip155:84532": 84532,
    }

    # Bundler chain slugs (Pimlico naming)
    BUNDLER_CHAINS: Dict[str, str] = {
        "base-sepolia": "eip155:84532",
        "sepolia": "eip155:11155111",
    }

    # RPC URLs for EVM networks
    RPC_URLS: Dict[str, str] = {
        "eip155:1": "https://ethereum-rpc.publicnode.com",
        "eip155:11155111": "https://ethereum-sepolia-rpc.publicnode.com",
        "eip155:84532": "https://base-sepolia-rpc.publicnode.com",
    }

    # ERC-4337 EntryPoint contracts (same address on every chain)
    ENTRY_POINT_V06 = "0x5FF137D4b0FDCD49DcA30c7CF57E578a026d2789"
    ENTRY_POINT_V07 = "0x0000000071727De22E5E9d8BAf0edAc6f37da032"

    # Chainlink JPY/USD aggregator on Ethereum mainnet
    JPY_USD_FEED_ADDRESS = "0xBcE206caE7f0ec07b545EddE332A47C2F75bbeb3"
    ORACLE_NETWORK = "eip155:1"

    BUNDLER_URL_TEMPLATE = "https://api.pimlico.io/v2/{chain}/rpc?apikey={api_key}"

    @classmethod
    def get_rpc_url(cls, network: str) -> str | None:
        """Get RPC URL for an EVM network.

        Args:
            network: Network identifier (e.g., "eip155:84532")

        Returns:
            RPC URL string, or None if not configured
        """
        return cls.RPC_URLS.get(network)

    @classmethod
    def get_chain_id(cls, network: str) -> int:
        """Get chain ID for network

        Raises:
            UnsupportedNetworkError: If network is not an eip155 identifier
        """
        if network.startswith("eip155:"):
            try:
                return int(network.split(":", 1)[1])
            except (ValueError, IndexError):
                raise UnsupportedNetworkError(f"Invalid EVM network: {network}")

        chain_id = cls.CHAIN_IDS.get(network)
        if chain_id is None:
            raise UnsupportedNetworkError(f"Unsupported network: {network}")
        return chain_id

    @classmethod
    def network_for_chain_id(cls, chain_id: int) -> str:
        return f"eip155:{chain_id}"

    @classmethod
    def get_bundler_network(cls, chain: str) -> str:
        """Map a bundler chain slug (e.g. "base-sepolia") to its eip155 identifier."""
        network = cls.BUNDLER_CHAINS.get(chain)
        if network is None:
            raise UnsupportedNetworkError(
                f"Unsupported network. Only {', '.join(cls.BUNDLER_CHAINS)} are supported."
            )
        return network

    @classmethod
    def get_bundler_url(cls, chain: str, api_key: str) -> str:
        cls.get_bundler_network(chain)
        return cls.BUNDLER_URL_TEMPLATE.format(chain=chain, api_key=api_key)


DEFAULT_GACHA_RECIPIENT = "0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045"
DEFAULT_GACHA_PRICE_USD = Decimal("0.50")


@dataclass(frozen=True)
class FacilitatorSettings:
    """Process-wide settings, normally loaded from the environment."""

    facilitator_private_key: str | None = None
    bundler_api_key: str | None = None
    bundler_chain: str = "base-sepolia"
    bundler_url: str | None = None
    gacha_recipient: str = DEFAULT_GACHA_RECIPIENT
    gacha_price_usd: Decimal = DEFAULT_GACHA_PRICE_USD
    fortune_api_key: str | None = None
    oracle_rpc_url: str | None = None
    host: str = "0.0.0.0"
    port: int = 8001
    log_level: str = "INFO"

    @property
    def facilitator_configured(self) -> bool:
        return bool(self.facilitator_private_key)

    @property
    def bundler_configured(self) -> bool:
        return bool(self.bundler_url or self.bundler_api_key)

    def resolve_bundler_url(self) -> str:
        """Full bundler JSON-RPC URL

        Raises:
            ConfigurationError: If neither a URL nor an API key is set
        """
        if self.bundler_url:
            return self.bundler_url
        if not self.bundler_api_key:
            raise ConfigurationError("Bundler not configured")
        return NetworkConfig.get_bundler_url(self.bundler_chain, self.bundler_api_key)

    @classmethod
    def from_env(cls, dotenv_path: str | None = None) -> "FacilitatorSettings":
        """Load settings from environment variables (and a .env file when present)."""
        load_dotenv(dotenv_path)

        raw_price = os.getenv("GACHA_PRICE_USD")
        try:
            price = Decimal(raw_price) if raw_price else DEFAULT_GACHA_PRICE_USD
        except InvalidOperation:
            raise ConfigurationError(f"Invalid GACHA_PRICE_USD: {raw_price}")

        return cls(
            facilitator_private_key=os.getenv("FACILITATOR_PRIVATE_KEY") or None,
            bundler_api_key=os.getenv("PAYMASTER_PIMLICO_API_KEY") or None,
            bundler_chain=os.getenv("BUNDLER_CHAIN", "base-sepolia"),
            bundler_url=os.getenv("BUNDLER_URL") or None,
            gacha_recipient=os.getenv("GACHA_RECIPIENT_ADDRESS") or DEFAULT_GACHA_RECIPIENT,
            gacha_price_usd=price,
            fortune_api_key=os.getenv("FORTUNE_API_KEY") or None,
            oracle_rpc_url=os.getenv("ORACLE_RPC_URL") or None,
            host=os.getenv("FACILITATOR_HOST", "0.0.0.0"),
            port=int(os.getenv("FACILITATOR_PORT", "8001")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
