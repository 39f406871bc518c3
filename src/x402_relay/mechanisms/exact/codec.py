"""
Types and EIP-712 helpers for ERC-3009 TransferWithAuthorization.
"""

import secrets
import time
from dataclasses import dataclass
from typing import Any

from x402_relay.exceptions import BadSignature
from x402_relay.tokens import TokenInfo
from x402_relay.types import TransferAuthorization
from x402_relay.utils.hexutil import hex_to_bytes

# Default validity period (1 hour)
DEFAULT_VALIDITY_SECONDS = 3600

SIGNATURE_LENGTH = 65


# ---------------------------------------------------------------------------
# EIP-712 type definitions for TransferWithAuthorization
# ---------------------------------------------------------------------------

TRANSFER_AUTH_EIP712_TYPES = {
    "TransferWithAuthorization": [
        {"name": "from", "type": "address"},
        {"name": "to", "type": "address"},
        {"name": "value", "type": "uint256"},
        {"name": "validAfter", "type": "uint256"},
        {"name": "validBefore", "type": "uint256"},
        {"name": "nonce", "type": "bytes32"},
    ],
}

TRANSFER_AUTH_PRIMARY_TYPE = "TransferWithAuthorization"


@dataclass(frozen=True)
class SignatureParts:
    """(v, r, s) components of a 65-byte ECDSA signature"""

    v: int
    r: bytes
    s: bytes


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def create_nonce() -> str:
    """Generate a random 32-byte nonce (0x-prefixed hex)."""
    return "0x" + secrets.token_hex(32)


def build_transfer_authorization(
    from_address: str,
    to: str,
    value: int | str,
    valid_after: int | None = None,
    valid_before: int | None = None,
    nonce: str | None = None,
    now: int | None = None,
) -> TransferAuthorization:
    """Build an unsigned authorization.

    validAfter defaults to 0, validBefore to one hour from *now*.
    """
    if now is None:
        now = int(time.time())
    return TransferAuthorization(
        **{
            "from": from_address,
            "to": to,
            "value": str(value),
            "validAfter": str(valid_after if valid_after is not None else 0),
            "validBefore": str(
                valid_before if valid_before is not None else now + DEFAULT_VALIDITY_SECONDS
            ),
            "nonce": nonce or create_nonce(),
        }
    )


def build_eip712_domain(token: TokenInfo) -> dict[str, Any]:
    """EIP-712 domain of *token*, taken from the static token table."""
    return {
        "name": token.domain_name,
        "version": token.domain_version,
        "chainId": token.chain_id,
        "verifyingContract": token.address,
    }


def build_eip712_message(auth: TransferAuthorization) -> dict[str, Any]:
    """Build EIP-712 message dict from authorization."""
    return {
        "from": auth.from_address,
        "to": auth.to,
        "value": int(auth.value),
        "validAfter": int(auth.valid_after),
        "validBefore": int(auth.valid_before),
        "nonce": hex_to_bytes(auth.nonce),
    }


# ---------------------------------------------------------------------------
# Signature encoding
# ---------------------------------------------------------------------------


def split_signature(signature: str) -> SignatureParts:
    """Split a 65-byte signature into (v, r, s).

    A recovery id below 27 is normalized to the Ethereum ``v`` form by adding 27.

    Raises:
        BadSignature: If the signature is not 65 bytes of hex
    """
    try:
        sig_bytes = hex_to_bytes(signature)
    except (TypeError, ValueError, AttributeError):
        raise BadSignature("Signature is not valid hex")
    if len(sig_bytes) != SIGNATURE_LENGTH:
        raise BadSignature(
            f"Signature must be {SIGNATURE_LENGTH} bytes, got {len(sig_bytes)}"
        )

    v = sig_bytes[64]
    if v < 27:
        v += 27
    return SignatureParts(v=v, r=sig_bytes[:32], s=sig_bytes[32:64])


def join_signature(parts: SignatureParts) -> str:
    """Encode (v, r, s) back into a 0x-prefixed r || s || v signature."""
    return "0x" + (parts.r + parts.s + bytes([parts.v])).hex()
