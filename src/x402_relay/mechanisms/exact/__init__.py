"""
ERC-3009 meta-transaction path
"""

from x402_relay.mechanisms.exact.codec import (
    SignatureParts,
    build_eip712_domain,
    build_eip712_message,
    build_transfer_authorization,
    create_nonce,
    join_signature,
    split_signature,
)
from x402_relay.mechanisms.exact.facilitator import MetaTxRelayer
from x402_relay.mechanisms.exact.nonce_guard import NonceGuard

__all__ = [
    "SignatureParts",
    "build_eip712_domain",
    "build_eip712_message",
    "build_transfer_authorization",
    "create_nonce",
    "join_signature",
    "split_signature",
    "MetaTxRelayer",
    "NonceGuard",
]
