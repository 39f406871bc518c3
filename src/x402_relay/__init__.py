"""
x402-relay - gasless payment facilitator

Relays ERC-3009 transfer authorizations and ERC-4337 UserOperations on behalf
of payers, and prices resources in USDC and JPYC.
"""

__version__ = "0.1.0"

from x402_relay.exceptions import (
    X402Error,
    ValidationError,
    BadRequest,
    UnsupportedToken,
    WrongRecipient,
    InsufficientPayment,
    ReplayRejected,
    SignatureError,
    BadSignature,
    UpstreamError,
    BundlerRejected,
    UpstreamUnavailable,
    TransactionError,
    ConfirmationTimeout,
    TransactionFailed,
    InvalidOperationState,
    ConfigurationError,
    UnsupportedNetworkError,
)
from x402_relay.config import FacilitatorSettings, NetworkConfig
from x402_relay.tokens import TokenInfo, TokenRegistry
from x402_relay.types import (
    TransferAuthorization,
    RelayRequest,
    RelayResult,
    PreparedOperation,
    SubmitResult,
    PaymentRequirement,
    PaymentInfo,
    Fortune,
)

__all__ = [
    "__version__",
    # Exceptions
    "X402Error",
    "ValidationError",
    "BadRequest",
    "UnsupportedToken",
    "WrongRecipient",
    "InsufficientPayment",
    "ReplayRejected",
    "SignatureError",
    "BadSignature",
    "UpstreamError",
    "BundlerRejected",
    "UpstreamUnavailable",
    "TransactionError",
    "ConfirmationTimeout",
    "TransactionFailed",
    "InvalidOperationState",
    "ConfigurationError",
    "UnsupportedNetworkError",
    # Configuration
    "FacilitatorSettings",
    "NetworkConfig",
    "TokenInfo",
    "TokenRegistry",
    # Types
    "TransferAuthorization",
    "RelayRequest",
    "RelayResult",
    "PreparedOperation",
    "SubmitResult",
    "PaymentRequirement",
    "PaymentInfo",
    "Fortune",
]
