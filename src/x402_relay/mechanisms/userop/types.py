"""
ERC-4337 UserOperation wire types.

Two mutually exclusive shapes exist: EntryPoint v0.6 (``initCode`` and
``paymasterAndData``) and EntryPoint v0.7 (split ``factory``/``paymaster``
fields). A raw operation is classified once by :func:`parse_user_operation`
and each variant formats itself for the bundler.
"""

from typing import Any, ClassVar, Optional, Union

from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from x402_relay.config import NetworkConfig
from x402_relay.exceptions import BadRequest
from x402_relay.types import IntLike
from x402_relay.utils.hexutil import to_hex, to_int

EMPTY_BYTES = "0x"

# Placeholder signature accepted by bundlers for gas estimation and stub sponsorship
DUMMY_SIGNATURE = (
    "0xfffffffffffffffffffffffffffffff000000000000000000000000000000007aaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa1c"
)

V06_MARKERS = ("initCode", "paymasterAndData")


def _check_quantity(value: Optional[IntLike]) -> Optional[IntLike]:
    """Accept ints, decimal strings and 0x/0X hex strings that denote a non-negative integer."""
    if value is None:
        return value
    if isinstance(value, bool):
        raise ValueError("quantity must be an integer or numeric string")
    try:
        number = to_int(value)
    except (TypeError, ValueError):
        raise ValueError(f"invalid quantity: {value!r}")
    if number < 0:
        raise ValueError(f"quantity must be non-negative: {value!r}")
    return value


class _UserOperationBase(BaseModel):
    """Fields shared by both EntryPoint versions"""

    VERSION: ClassVar[str] = ""
    ENTRY_POINT: ClassVar[str] = ""

    sender: str
    nonce: Optional[IntLike] = None
    call_data: str = Field(alias="callData")
    call_gas_limit: Optional[IntLike] = Field(None, alias="callGasLimit")
    verification_gas_limit: Optional[IntLike] = Field(None, alias="verificationGasLimit")
    pre_verification_gas: Optional[IntLike] = Field(None, alias="preVerificationGas")
    max_fee_per_gas: Optional[IntLike] = Field(None, alias="maxFeePerGas")
    max_priority_fee_per_gas: Optional[IntLike] = Field(None, alias="maxPriorityFeePerGas")
    signature: Optional[str] = None

    class Config:
        populate_by_name = True

    validate_quantities = field_validator(
        "nonce",
        "call_gas_limit",
        "verification_gas_limit",
        "pre_verification_gas",
        "max_fee_per_gas",
        "max_priority_fee_per_gas",
    )(_check_quantity)

    @property
    def entry_point(self) -> str:
        return self.ENTRY_POINT

    @property
    def is_signed(self) -> bool:
        return bool(self.signature)

    def _shared_rpc_fields(self) -> dict[str, Any]:
        return {
            "sender": self.sender,
            "nonce": to_hex(self.nonce),
            "callData": self.call_data,
            "callGasLimit": to_hex(self.call_gas_limit),
            "verificationGasLimit": to_hex(self.verification_gas_limit),
            "preVerificationGas": to_hex(self.pre_verification_gas),
            "maxFeePerGas": to_hex(self.max_fee_per_gas),
            "maxPriorityFeePerGas": to_hex(self.max_priority_fee_per_gas),
        }

    def to_wire(self) -> dict[str, Any]:
        """Client-facing JSON shape (field names as sent by wallets)."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class UserOperationV06(_UserOperationBase):
    """EntryPoint v0.6 UserOperation (Coinbase Smart Wallet v1)"""

    VERSION: ClassVar[str] = "v0.6"
    ENTRY_POINT: ClassVar[str] = NetworkConfig.ENTRY_POINT_V06

    init_code: Optional[str] = Field(None, alias="initCode")
    paymaster_and_data: Optional[str] = Field(None, alias="paymasterAndData")

    @property
    def is_sponsored(self) -> bool:
        return bool(self.paymaster_and_data) and self.paymaster_and_data != EMPTY_BYTES

    def to_rpc(self) -> dict[str, Any]:
        """Bundler format: quantities hex-encoded, absent byte strings as ``0x``."""
        rpc = self._shared_rpc_fields()
        rpc["initCode"] = self.init_code or EMPTY_BYTES
        rpc["paymasterAndData"] = self.paymaster_and_data or EMPTY_BYTES
        rpc["signature"] = self.signature or EMPTY_BYTES
        return rpc


class UserOperationV07(_UserOperationBase):
    """EntryPoint v0.7 UserOperation (unpacked RPC form)"""

    VERSION: ClassVar[str] = "v0.7"
    ENTRY_POINT: ClassVar[str] = NetworkConfig.ENTRY_POINT_V07

    factory: Optional[str] = None
    factory_data: Optional[str] = Field(None, alias="factoryData")
    paymaster: Optional[str] = None
    paymaster_verification_gas_limit: Optional[IntLike] = Field(
        None, alias="paymasterVerificationGasLimit"
    )
    paymaster_post_op_gas_limit: Optional[IntLike] = Field(None, alias="paymasterPostOpGasLimit")
    paymaster_data: Optional[str] = Field(None, alias="paymasterData")

    validate_paymaster_limits = field_validator(
        "paymaster_verification_gas_limit", "paymaster_post_op_gas_limit"
    )(_check_quantity)

    @property
    def is_sponsored(self) -> bool:
        return bool(self.paymaster)

    def to_rpc(self, drop_nulls: bool = False) -> dict[str, Any]:
        """Bundler format: quantities hex-encoded, absent optional fields as null.

        ``drop_nulls`` omits the null fields instead, for estimation and
        sponsorship requests that predate the gas limits.
        """
        rpc = self._shared_rpc_fields()
        rpc["signature"] = self.signature or EMPTY_BYTES
        rpc["factory"] = self.factory or None
        rpc["factoryData"] = self.factory_data or None
        rpc["paymaster"] = self.paymaster or None
        rpc["paymasterVerificationGasLimit"] = (
            to_hex(self.paymaster_verification_gas_limit)
            if self.paymaster_verification_gas_limit is not None
            else None
        )
        rpc["paymasterPostOpGasLimit"] = (
            to_hex(self.paymaster_post_op_gas_limit)
            if self.paymaster_post_op_gas_limit is not None
            else None
        )
        rpc["paymasterData"] = self.paymaster_data or None
        if drop_nulls:
            rpc = {key: value for key, value in rpc.items() if value is not None}
        return rpc


UserOperation = Union[UserOperationV06, UserOperationV07]


def is_v06(raw: dict[str, Any]) -> bool:
    return any(marker in raw for marker in V06_MARKERS)


def parse_user_operation(raw: Any) -> UserOperation:
    """Classify and parse a raw UserOperation dict.

    The presence of ``initCode`` or ``paymasterAndData`` selects v0.6;
    anything else is treated as v0.7.

    Raises:
        BadRequest: If *raw* is not an object or lacks required fields
    """
    if not isinstance(raw, dict):
        raise BadRequest("userOperation must be an object")

    model = UserOperationV06 if is_v06(raw) else UserOperationV07
    try:
        return model.model_validate(raw)
    except PydanticValidationError as e:
        raise BadRequest(f"Invalid {model.VERSION} userOperation", details=str(e)) from e
