"""
Shared AsyncWeb3 client factory and read-only contract access.
"""

import json
import logging
from typing import Any

from x402_relay.config import NetworkConfig
from x402_relay.exceptions import ConfigurationError, UpstreamUnavailable

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_TIMEOUT = 30.0


def resolve_provider_uri(network: str) -> str | None:
    """Resolve a network identifier to an RPC provider URI.

    Checks in order:
    1. If network is already an HTTP/WS URL, return as-is
    2. Look up in NetworkConfig.RPC_URLS
    3. Return None (no provider available)
    """
    if network.startswith(("http://", "https://", "ws://", "wss://")):
        return network
    return NetworkConfig.get_rpc_url(network)


class EvmReadClient:
    """Read-only EVM access using web3.py, one lazily created client per network."""

    def __init__(
        self,
        rpc_urls: dict[str, str] | None = None,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        self._rpc_urls = rpc_urls or {}
        self._request_timeout = request_timeout
        self._async_web3_clients: dict[str, Any] = {}

    def get_web3(self, network: str) -> Any:
        """Lazy initialize async web3 client for the given network."""
        if network not in self._async_web3_clients:
            from web3 import AsyncHTTPProvider, AsyncWeb3

            provider_uri = self._rpc_urls.get(network) or resolve_provider_uri(network)
            if provider_uri is None:
                raise ConfigurationError(f"No RPC endpoint configured for {network}")

            w3 = AsyncWeb3(
                AsyncHTTPProvider(
                    provider_uri,
                    request_kwargs={"timeout": self._request_timeout},
                )
            )
            self._async_web3_clients[network] = w3
            logger.debug("Created AsyncWeb3 client for network=%s (%s)", network, provider_uri)

        return self._async_web3_clients[network]

    def contract(self, contract_address: str, abi: Any, network: str) -> Any:
        from web3 import Web3

        w3 = self.get_web3(network)
        abi_list = json.loads(abi) if isinstance(abi, str) else abi
        return w3.eth.contract(address=Web3.to_checksum_address(contract_address), abi=abi_list)

    async def read_contract(
        self,
        contract_address: str,
        abi: Any,
        method: str,
        args: list[Any],
        network: str,
    ) -> Any:
        """Execute a read-only contract call (eth_call).

        Raises:
            UpstreamUnavailable: If the RPC call fails
        """
        contract = self.contract(contract_address, abi, network)
        func = getattr(contract.functions, method)
        try:
            return await func(*args).call()
        except Exception as e:
            logger.error(
                "Contract read failed: %s",
                e,
                extra={"method": method, "contract": contract_address, "network": network},
            )
            raise UpstreamUnavailable(f"Contract read {method} failed", details=str(e)) from e
