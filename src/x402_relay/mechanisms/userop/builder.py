"""
OperationBuilder - prepares unsigned UserOperations for smart-wallet payers.

The payer signs what this module returns; the facilitator never holds the
payer's key and never sets a signature itself.
"""

import logging
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from x402_relay.abi import ENTRY_POINT_ABI, ERC20_ABI, SMART_WALLET_ABI, encode_function_call
from x402_relay.config import NetworkConfig
from x402_relay.exceptions import (
    BadRequest,
    BundlerRejected,
    UnsupportedNetworkError,
    UpstreamUnavailable,
)
from x402_relay.mechanisms.userop.lifecycle import OperationLifecycle, OperationState
from x402_relay.mechanisms.userop.types import (
    DUMMY_SIGNATURE,
    EMPTY_BYTES,
    UserOperationV06,
    UserOperationV07,
)
from x402_relay.tokens import DEFAULT_TOKEN, TokenRegistry
from x402_relay.types import PreparedOperation
from x402_relay.utils.bundler import BundlerClient
from x402_relay.utils.evm_client import EvmReadClient
from x402_relay.utils.hexutil import hex_to_bytes, to_hex

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GasLimits:
    call_gas_limit: int
    verification_gas_limit: int
    pre_verification_gas: int


# Simulation fails for WebAuthn-signed wallets, so transfers use fixed limits
FALLBACK_GAS_LIMITS = GasLimits(
    call_gas_limit=150_000,
    verification_gas_limit=500_000,
    pre_verification_gas=80_000,
)

_GAS_FIELDS = (
    ("callGasLimit", "call_gas_limit"),
    ("verificationGasLimit", "verification_gas_limit"),
    ("preVerificationGas", "pre_verification_gas"),
)

_V07_PAYMASTER_FIELDS = (
    ("paymaster", "paymaster"),
    ("paymasterVerificationGasLimit", "paymaster_verification_gas_limit"),
    ("paymasterPostOpGasLimit", "paymaster_post_op_gas_limit"),
    ("paymasterData", "paymaster_data"),
)


def _gas_overrides(result: dict[str, Any] | None) -> dict[str, Any]:
    """Gas limits present in a bundler or paymaster reply, keyed by field name."""
    if not isinstance(result, dict):
        return {}
    return {attr: result[wire] for wire, attr in _GAS_FIELDS if result.get(wire)}


def _has_paymaster_and_data(result: Any) -> bool:
    if not isinstance(result, dict):
        return False
    data = result.get("paymasterAndData")
    return bool(data) and data != EMPTY_BYTES


def _checksum(address: str | None, field: str) -> str:
    from web3 import Web3

    if not address or not Web3.is_address(address):
        raise BadRequest(f"Invalid address for {field}: {address}")
    return Web3.to_checksum_address(address)


class OperationBuilder:
    """Builds sponsored (or sponsor-later) UserOperations on one bundler network."""

    def __init__(
        self,
        bundler: BundlerClient,
        read_client: EvmReadClient | None = None,
        network: str = NetworkConfig.BASE_SEPOLIA,
    ) -> None:
        self._bundler = bundler
        self._client = read_client or EvmReadClient()
        self._network = network
        self._chain_id = NetworkConfig.get_chain_id(network)

    @property
    def network(self) -> str:
        return self._network

    async def get_nonce(self, sender: str, entry_point: str, key: int = 0) -> int:
        """EntryPoint ``getNonce(sender, key)``"""
        nonce = await self._client.read_contract(
            contract_address=entry_point,
            abi=ENTRY_POINT_ABI,
            method="getNonce",
            args=[sender, key],
            network=self._network,
        )
        return int(nonce)

    @staticmethod
    def encode_transfer_call(token_address: str, to: str, raw_amount: int) -> str:
        """``execute(token, 0, transfer(to, amount))`` calldata for a smart wallet"""
        inner = encode_function_call(ERC20_ABI, "transfer", [to, raw_amount])
        return encode_function_call(
            SMART_WALLET_ABI, "execute", [token_address, 0, hex_to_bytes(inner)]
        )

    async def prepare_transfer(
        self,
        sender: str | None,
        to: str | None,
        amount: str | None,
        token: str = DEFAULT_TOKEN,
    ) -> PreparedOperation:
        """Prepare an EntryPoint v0.6 token transfer from a smart wallet.

        Raises:
            BadRequest: Missing fields, bad addresses or an unparseable amount
            UnsupportedToken: Unknown token symbol
            UnsupportedNetworkError: Token is not deployed on the bundler network
            UpstreamUnavailable: Nonce or gas price could not be read
            BundlerRejected: Gas price query rejected by the bundler
        """
        if not sender or not to or not amount:
            raise BadRequest("sender, to, and amount are required")
        sender = _checksum(sender, "sender")
        to = _checksum(to, "to")

        token_info = TokenRegistry.get_token(token)
        if token_info.network != self._network:
            raise UnsupportedNetworkError(
                f"{token_info.symbol} is not available on {self._network}"
            )
        raw_amount = TokenRegistry.parse_units(amount, token_info.symbol)
        call_data = self.encode_transfer_call(token_info.address, to, raw_amount)

        entry_point = UserOperationV06.ENTRY_POINT
        nonce = await self.get_nonce(sender, entry_point)
        gas_price = await self._bundler.get_user_operation_gas_price()

        op = UserOperationV06(
            sender=sender,
            nonce=str(nonce),
            initCode=EMPTY_BYTES,
            callData=call_data,
            callGasLimit=str(FALLBACK_GAS_LIMITS.call_gas_limit),
            verificationGasLimit=str(FALLBACK_GAS_LIMITS.verification_gas_limit),
            preVerificationGas=str(FALLBACK_GAS_LIMITS.pre_verification_gas),
            maxFeePerGas=str(gas_price.max_fee_per_gas),
            maxPriorityFeePerGas=str(gas_price.max_priority_fee_per_gas),
            paymasterAndData=EMPTY_BYTES,
        )

        lifecycle = OperationLifecycle()
        op = await self._sponsor_v06(op, lifecycle)

        logger.info(
            "Prepared v0.6 transfer: sender=%s to=%s amount=%s %s state=%s",
            sender,
            to,
            amount,
            token_info.symbol,
            lifecycle.state.value,
        )
        return PreparedOperation(
            userOperation=op.to_wire(),
            state=lifecycle.state.value,
            entryPoint=entry_point,
            transfer={
                "from": sender,
                "to": to,
                "amount": amount,
                "rawAmount": str(raw_amount),
                "token": token_info.address,
                "symbol": token_info.symbol,
            },
        )

    async def prepare_call(
        self,
        sender: str | None,
        call_data: str | None,
        nonce: int | str | None = None,
        factory: str | None = None,
        factory_data: str | None = None,
        signature: str | None = None,
    ) -> PreparedOperation:
        """Prepare an EntryPoint v0.7 operation for an arbitrary smart-wallet call.

        *signature* is only a placeholder used for gas estimation; it is not
        part of the returned operation.
        """
        if not sender or not call_data:
            raise BadRequest("Missing userOp fields")
        sender = _checksum(sender, "sender")

        entry_point = UserOperationV07.ENTRY_POINT
        if nonce is None:
            nonce = await self.get_nonce(sender, entry_point)
        gas_price = await self._bundler.get_user_operation_gas_price()

        try:
            op = UserOperationV07(
                sender=sender,
                nonce=nonce,
                callData=call_data,
                factory=factory or None,
                factoryData=factory_data or None,
                maxFeePerGas=to_hex(gas_price.max_fee_per_gas),
                maxPriorityFeePerGas=to_hex(gas_price.max_priority_fee_per_gas),
                signature=signature or DUMMY_SIGNATURE,
            )
        except PydanticValidationError as e:
            raise BadRequest("Invalid userOp fields", details=str(e)) from e
        op = op.model_copy(update={"nonce": to_hex(op.nonce), **await self._estimate_v07(op)})

        lifecycle = OperationLifecycle()
        op = await self._sponsor_v07(op, lifecycle)

        logger.info(
            "Prepared v0.7 call: sender=%s nonce=%s state=%s",
            sender,
            op.nonce,
            lifecycle.state.value,
        )
        return PreparedOperation(
            userOperation=op.model_copy(update={"signature": None}).to_wire(),
            state=lifecycle.state.value,
            entryPoint=entry_point,
        )

    async def _estimate_v07(self, op: UserOperationV07) -> dict[str, Any]:
        try:
            estimate = await self._bundler.estimate_user_operation_gas(
                op.to_rpc(drop_nulls=True), op.entry_point
            )
        except BundlerRejected as e:
            logger.warning("Gas estimation rejected, using fixed limits: %s", e.details)
            estimate = None

        limits = {
            "call_gas_limit": to_hex(FALLBACK_GAS_LIMITS.call_gas_limit),
            "verification_gas_limit": to_hex(FALLBACK_GAS_LIMITS.verification_gas_limit),
            "pre_verification_gas": to_hex(FALLBACK_GAS_LIMITS.pre_verification_gas),
        }
        limits.update(_gas_overrides(estimate))
        return limits

    async def _sponsor_v06(
        self, op: UserOperationV06, lifecycle: OperationLifecycle
    ) -> UserOperationV06:
        """ERC-7677 sponsorship before signing.

        Stub data is only good for gas estimation, so it is used as-is only when
        the paymaster marks it final. Otherwise ``pm_getPaymasterData`` is asked
        for the real data. Without final data the operation stays unsponsored
        and is sponsored after signing.
        """
        request = op.model_copy(update={"signature": DUMMY_SIGNATURE})
        try:
            stub = await self._bundler.get_paymaster_stub_data(
                request.to_rpc(), op.entry_point, self._chain_id
            )
            stub_gas = _gas_overrides(stub)
            if isinstance(stub, dict) and stub.get("isFinal") and _has_paymaster_and_data(stub):
                final = stub
            else:
                request = request.model_copy(update=stub_gas)
                final = await self._bundler.get_paymaster_data(
                    request.to_rpc(), op.entry_point, self._chain_id
                )
        except (BundlerRejected, UpstreamUnavailable) as e:
            logger.warning("Paymaster data unavailable, sponsoring after signing: %s", e)
            return op

        if not _has_paymaster_and_data(final):
            logger.warning("Paymaster returned no final data, sponsoring after signing")
            return op

        update = {
            **stub_gas,
            **_gas_overrides(final),
            "paymaster_and_data": final["paymasterAndData"],
        }
        lifecycle.transition(OperationState.SPONSORED)
        return op.model_copy(update=update)

    async def _sponsor_v07(
        self, op: UserOperationV07, lifecycle: OperationLifecycle
    ) -> UserOperationV07:
        try:
            result = await self._bundler.sponsor_user_operation(
                op.to_rpc(drop_nulls=True), op.entry_point
            )
        except (BundlerRejected, UpstreamUnavailable) as e:
            logger.warning("Paymaster sponsorship unavailable: %s", e)
            return op

        if not isinstance(result, dict) or not result.get("paymaster"):
            logger.warning("Paymaster returned no sponsorship for %s", op.sender)
            return op

        update = {attr: result.get(wire) for wire, attr in _V07_PAYMASTER_FIELDS}
        update.update(_gas_overrides(result))
        lifecycle.transition(OperationState.SPONSORED)
        return op.model_copy(update=update)
