"""
MetaTxRelayer - relays ERC-3009 transferWithAuthorization on behalf of a payer.
"""

import logging
import time
from typing import TYPE_CHECKING, Callable

from x402_relay.abi import get_transfer_with_authorization_abi_json
from x402_relay.exceptions import BadRequest, BadSignature, UpstreamUnavailable
from x402_relay.mechanisms.exact.codec import (
    TRANSFER_AUTH_EIP712_TYPES,
    TRANSFER_AUTH_PRIMARY_TYPE,
    build_eip712_domain,
    build_eip712_message,
    split_signature,
)
from x402_relay.mechanisms.exact.nonce_guard import NonceGuard
from x402_relay.tokens import DEFAULT_TOKEN, TokenInfo, TokenRegistry
from x402_relay.types import RelayRequest, RelayResult, TransferAuthorization
from x402_relay.utils.hexutil import hex_to_bytes

if TYPE_CHECKING:
    from x402_relay.signers.facilitator import FacilitatorSigner

logger = logging.getLogger(__name__)

CONFIRMATION_TIMEOUT_SECONDS = 60

UINT256_LIMIT = 2**256

_REQUIRED_FIELDS = (
    ("from", "from_address"),
    ("to", "to"),
    ("value", "value"),
    ("validAfter", "valid_after"),
    ("validBefore", "valid_before"),
    ("nonce", "nonce"),
    ("signature", "signature"),
)


class MetaTxRelayer:
    """ERC-3009 meta-transaction relayer.

    Checks run in a fixed order: request shape, token, signature, replay. Only
    when all pass is a single transaction submitted with the facilitator's key.
    The submission is never retried.
    """

    def __init__(
        self,
        signer: "FacilitatorSigner",
        nonce_guard: NonceGuard | None = None,
        confirmation_timeout: float = CONFIRMATION_TIMEOUT_SECONDS,
        verify_signatures: bool = False,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._signer = signer
        self._nonce_guard = nonce_guard or NonceGuard(signer)
        self._confirmation_timeout = confirmation_timeout
        self._verify_signatures = verify_signatures
        self._clock = clock

    def get_address(self) -> str:
        return self._signer.get_address()

    async def relay(self, request: RelayRequest) -> RelayResult:
        """Verify and execute a transfer authorization.

        Raises:
            BadRequest: Missing or malformed fields, or outside the validity window
            UnsupportedToken: Unknown token symbol
            BadSignature: Signature cannot be split or does not recover to ``from``
            ReplayRejected: Nonce already consumed
            UpstreamUnavailable: Transaction could not be submitted
            ConfirmationTimeout: Submitted but not mined within the timeout
        """
        auth = self.parse_authorization(request)
        token = TokenRegistry.get_token(request.token or DEFAULT_TOKEN)
        parts = split_signature(auth.signature or "")

        if self._verify_signatures:
            await self._verify_signature(auth, token)

        await self._nonce_guard.ensure_unused(token, auth.from_address, auth.nonce)

        logger.info(
            "Executing transferWithAuthorization (%s) on %s: from=%s to=%s value=%s "
            "nonce=%s v=%d r=%s... s=%s...",
            token.symbol,
            token.network,
            auth.from_address,
            auth.to,
            auth.value,
            auth.nonce,
            parts.v,
            parts.r.hex()[:8],
            parts.s.hex()[:8],
        )

        args = [
            auth.from_address,
            auth.to,
            int(auth.value),
            int(auth.valid_after),
            int(auth.valid_before),
            hex_to_bytes(auth.nonce),
            parts.v,
            parts.r,
            parts.s,
        ]

        tx_hash = await self._signer.write_contract(
            contract_address=token.address,
            abi=get_transfer_with_authorization_abi_json(),
            method="transferWithAuthorization",
            args=args,
            network=token.network,
        )
        if tx_hash is None:
            raise UpstreamUnavailable("Failed to execute transfer")

        logger.info("Transaction submitted: %s", tx_hash)

        receipt = await self._signer.wait_for_transaction_receipt(
            tx_hash, timeout=self._confirmation_timeout, network=token.network
        )
        status = receipt.get("status")
        if status not in ("confirmed", "failed", "pending"):
            status = "failed"
        if status == "failed":
            logger.error("transferWithAuthorization %s failed on-chain", tx_hash)

        return RelayResult(
            success=status == "confirmed",
            transactionHash=tx_hash,
            blockNumber=receipt.get("blockNumber"),
            status=status,
        )

    def parse_authorization(self, request: RelayRequest) -> TransferAuthorization:
        """Validate presence and shape of every authorization field."""
        from web3 import Web3

        missing = [
            wire for wire, attr in _REQUIRED_FIELDS if getattr(request, attr) in (None, "")
        ]
        if missing:
            raise BadRequest(f"Missing required fields: {', '.join(missing)}")

        addresses = {}
        for wire, value in (("from", request.from_address), ("to", request.to)):
            if not Web3.is_address(value):
                raise BadRequest(f"Invalid address for {wire}: {value}")
            addresses[wire] = Web3.to_checksum_address(value)

        numbers = {}
        for wire, value in (
            ("value", request.value),
            ("validAfter", request.valid_after),
            ("validBefore", request.valid_before),
        ):
            try:
                number = int(value)
            except (TypeError, ValueError):
                raise BadRequest(f"Invalid integer for {wire}: {value}")
            if number < 0:
                raise BadRequest(f"Negative value for {wire}: {value}")
            if number >= UINT256_LIMIT:
                raise BadRequest(f"Value out of uint256 range for {wire}: {value}")
            numbers[wire] = number

        try:
            nonce_bytes = hex_to_bytes(request.nonce)
        except (TypeError, ValueError, AttributeError):
            raise BadRequest("Nonce is not valid hex")
        if len(nonce_bytes) != 32:
            raise BadRequest("Nonce must be 32 bytes")

        now = int(self._clock())
        if numbers["validAfter"] > now:
            raise BadRequest("Authorization is not yet valid")
        if numbers["validBefore"] <= now:
            raise BadRequest("Authorization has expired")

        return TransferAuthorization(
            **{
                "from": addresses["from"],
                "to": addresses["to"],
                "value": str(numbers["value"]),
                "validAfter": str(numbers["validAfter"]),
                "validBefore": str(numbers["validBefore"]),
                "nonce": "0x" + nonce_bytes.hex(),
                "signature": request.signature,
            }
        )

    async def _verify_signature(self, auth: TransferAuthorization, token: TokenInfo) -> None:
        is_valid = await self._signer.verify_typed_data(
            address=auth.from_address,
            domain=build_eip712_domain(token),
            types=TRANSFER_AUTH_EIP712_TYPES,
            message=build_eip712_message(auth),
            signature=auth.signature or "",
            primary_type=TRANSFER_AUTH_PRIMARY_TYPE,
        )
        if not is_valid:
            raise BadSignature("Signature does not match authorizer")
