"""
ERC-4337 account-abstraction path
"""

from x402_relay.mechanisms.userop.builder import FALLBACK_GAS_LIMITS, GasLimits, OperationBuilder
from x402_relay.mechanisms.userop.lifecycle import OperationLifecycle, OperationState
from x402_relay.mechanisms.userop.submitter import RECEIPT_POLL_POLICY, OperationSubmitter
from x402_relay.mechanisms.userop.types import (
    DUMMY_SIGNATURE,
    UserOperation,
    UserOperationV06,
    UserOperationV07,
    parse_user_operation,
)

__all__ = [
    "OperationBuilder",
    "OperationSubmitter",
    "OperationLifecycle",
    "OperationState",
    "GasLimits",
    "FALLBACK_GAS_LIMITS",
    "RECEIPT_POLL_POLICY",
    "DUMMY_SIGNATURE",
    "UserOperation",
    "UserOperationV06",
    "UserOperationV07",
    "parse_user_operation",
]
