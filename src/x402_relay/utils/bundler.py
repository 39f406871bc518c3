"""
BundlerClient - JSON-RPC client for an ERC-4337 bundler / paymaster (Pimlico API)
"""

import itertools
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from x402_relay.exceptions import BundlerRejected, UpstreamUnavailable
from x402_relay.utils.hexutil import to_int

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GasPrice:
    """EIP-1559 fee pair suggested by the bundler"""

    max_fee_per_gas: int
    max_priority_fee_per_gas: int


class BundlerClient:
    """
    Client for a bundler JSON-RPC endpoint.

    JSON-RPC ``error`` objects raise BundlerRejected with the upstream message;
    transport failures raise UpstreamUnavailable. Nothing here retries.
    """

    def __init__(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._url = url
        self._headers = {"Content-Type": "application/json", **(headers or {})}
        self._timeout = timeout
        self._ids = itertools.count(1)
        self._http_client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client"""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(headers=self._headers, timeout=self._timeout)
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client"""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def forward(self, body: dict[str, Any]) -> Any:
        """Forward a raw JSON-RPC body and return the raw JSON reply."""
        client = await self._get_client()
        try:
            response = await client.post(self._url, json=body)
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Bundler proxy request failed: %s", e)
            raise UpstreamUnavailable("Proxy request failed", details=str(e)) from e

    async def call(self, method: str, params: list[Any]) -> Any:
        """Perform a JSON-RPC call and return its ``result``."""
        request_body = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        client = await self._get_client()
        try:
            response = await client.post(self._url, json=request_body)
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Bundler call %s failed: %s", method, e)
            raise UpstreamUnavailable(f"Bundler call {method} failed", details=str(e)) from e

        if not isinstance(payload, dict):
            raise UpstreamUnavailable(f"Bundler call {method} returned a non-object body")

        error = payload.get("error")
        if error:
            message = error.get("message") if isinstance(error, dict) else str(error)
            code = error.get("code") if isinstance(error, dict) else None
            logger.warning("Bundler rejected %s: %s", method, message)
            raise BundlerRejected(message or "unknown error", code=code, method=method)

        if response.status_code >= 400:
            raise UpstreamUnavailable(
                f"Bundler call {method} failed with HTTP {response.status_code}",
                details=response.text,
            )
        return payload.get("result")

    async def send_user_operation(self, user_op: dict[str, Any], entry_point: str) -> str:
        """eth_sendUserOperation; returns the UserOperation hash"""
        return await self.call("eth_sendUserOperation", [user_op, entry_point])

    async def get_user_operation_receipt(self, user_op_hash: str) -> dict[str, Any] | None:
        """eth_getUserOperationReceipt; None until the operation is included"""
        return await self.call("eth_getUserOperationReceipt", [user_op_hash])

    async def estimate_user_operation_gas(
        self, user_op: dict[str, Any], entry_point: str
    ) -> dict[str, Any]:
        return await self.call("eth_estimateUserOperationGas", [user_op, entry_point])

    async def get_user_operation_gas_price(self, tier: str = "fast") -> GasPrice:
        """pimlico_getUserOperationGasPrice; returns the requested tier"""
        result = await self.call("pimlico_getUserOperationGasPrice", [])
        try:
            prices = result[tier]
            return GasPrice(
                max_fee_per_gas=to_int(prices["maxFeePerGas"]),
                max_priority_fee_per_gas=to_int(prices["maxPriorityFeePerGas"]),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise UpstreamUnavailable("Malformed gas price response", details=str(result)) from e

    async def sponsor_user_operation(
        self, user_op: dict[str, Any], entry_point: str
    ) -> dict[str, Any]:
        """pm_sponsorUserOperation"""
        return await self.call("pm_sponsorUserOperation", [user_op, entry_point])

    async def get_paymaster_stub_data(
        self,
        user_op: dict[str, Any],
        entry_point: str,
        chain_id: int,
        context: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """ERC-7677 pm_getPaymasterStubData; accepts a placeholder signature"""
        return await self.call(
            "pm_getPaymasterStubData",
            [user_op, entry_point, hex(chain_id), context or {}],
        )

    async def get_paymaster_data(
        self,
        user_op: dict[str, Any],
        entry_point: str,
        chain_id: int,
        context: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """ERC-7677 pm_getPaymasterData; final paymaster data for the given gas limits"""
        return await self.call(
            "pm_getPaymasterData",
            [user_op, entry_point, hex(chain_id), context or {}],
        )
