"""
x402-relay custom exception hierarchy
"""

from typing import Any


class X402Error(Exception):
    """x402 base exception"""

    reason = "internal_error"
    status_code = 500

    def __init__(self, message: str | None = None, details: str | None = None):
        self.details = details
        super().__init__(message or self.reason)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": str(self), "reason": self.reason}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(X402Error):
    """Validation-related error"""

    status_code = 400


class BadRequest(ValidationError):
    """Missing or malformed request fields"""

    reason = "bad_request"


class UnsupportedToken(ValidationError):
    """Token symbol is not in the registry"""

    reason = "unsupported_token"

    def __init__(self, symbol: str):
        self.symbol = symbol
        super().__init__(f"Unsupported token: {symbol}")


class WrongRecipient(ValidationError):
    """Payment is addressed to someone other than the configured recipient"""

    reason = "wrong_recipient"

    def __init__(self, recipient: str):
        self.recipient = recipient
        super().__init__("Invalid recipient address", details=recipient)


class InsufficientPayment(ValidationError):
    """Payment value is below the expected amount"""

    reason = "insufficient_payment"

    def __init__(self, paid: int, minimum: int):
        self.paid = paid
        self.minimum = minimum
        super().__init__(
            "Insufficient payment amount",
            details=f"paid={paid} minimum={minimum}",
        )


class SignatureError(X402Error):
    """Signature-related error"""

    status_code = 400


class BadSignature(SignatureError):
    """Signature could not be decoded or did not match the authorizer"""

    reason = "bad_signature"


class ReplayRejected(ValidationError):
    """Authorization nonce has already been consumed on-chain"""

    reason = "replay_rejected"

    def __init__(self, authorizer: str, nonce: str):
        self.authorizer = authorizer
        self.nonce = nonce
        super().__init__("Authorization nonce has already been used", details=nonce)


class UpstreamError(X402Error):
    """Error talking to a bundler, paymaster, RPC node or oracle"""


class BundlerRejected(UpstreamError):
    """Bundler or paymaster returned a JSON-RPC error"""

    reason = "bundler_rejected"
    status_code = 400

    def __init__(self, message: str, code: int | None = None, method: str | None = None):
        self.code = code
        self.method = method
        super().__init__("Bundler rejected UserOperation", details=message)


class UpstreamUnavailable(UpstreamError):
    """Transport failure against an upstream service"""

    reason = "upstream_unavailable"


class TransactionError(X402Error):
    """Transaction-related error"""


class ConfirmationTimeout(TransactionError):
    """Transaction was submitted but not mined within the wait window.

    The transaction may still land later; callers should report it as pending.
    """

    reason = "pending"
    status_code = 202

    def __init__(self, tx_hash: str, timeout: float):
        self.tx_hash = tx_hash
        self.timeout = timeout
        super().__init__(f"Transaction {tx_hash} not confirmed within {timeout:g}s")

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": True,
            "transactionHash": self.tx_hash,
            "status": "pending",
            "message": str(self),
        }


class TransactionFailed(TransactionError):
    """Transaction was mined but reverted"""

    reason = "transaction_failed"

    def __init__(self, tx_hash: str | None, message: str = "Payment transaction failed"):
        self.tx_hash = tx_hash
        super().__init__(message, details=tx_hash)


class InvalidOperationState(X402Error):
    """Illegal UserOperation lifecycle transition"""

    reason = "invalid_state"
    status_code = 409


class ConfigurationError(X402Error):
    """Configuration-related error"""

    reason = "not_configured"


class UnsupportedNetworkError(ConfigurationError):
    """Unsupported network"""

    reason = "unsupported_network"
    status_code = 400
