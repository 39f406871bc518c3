"""
Type definitions for the x402 relay
"""

from typing import Literal, Optional, Union

from pydantic import BaseModel, Field

TxStatus = Literal["confirmed", "failed", "pending"]

IntLike = Union[str, int]


class TransferAuthorization(BaseModel):
    """Signed ERC-3009 TransferWithAuthorization parameters"""

    from_address: str = Field(alias="from")
    to: str
    value: str
    valid_after: str = Field(alias="validAfter")
    valid_before: str = Field(alias="validBefore")
    nonce: str  # 32-byte hex string (0x...)
    signature: Optional[str] = None

    class Config:
        populate_by_name = True


class RelayRequest(BaseModel):
    """Inbound ERC-3009 relay request.

    Every field is optional at parse time so that missing fields are reported
    by the relayer as a bad request instead of a schema error.
    """

    from_address: Optional[str] = Field(None, alias="from")
    to: Optional[str] = None
    value: Optional[IntLike] = None
    valid_after: Optional[IntLike] = Field(None, alias="validAfter")
    valid_before: Optional[IntLike] = Field(None, alias="validBefore")
    nonce: Optional[str] = None
    signature: Optional[str] = None
    token: Optional[str] = None

    class Config:
        populate_by_name = True


class RelayResult(BaseModel):
    """Outcome of a relayed transferWithAuthorization"""

    success: bool
    transaction_hash: str = Field(alias="transactionHash")
    block_number: Optional[str] = Field(None, alias="blockNumber")
    status: TxStatus

    class Config:
        populate_by_name = True


class PrepareTransferRequest(BaseModel):
    """Smart-wallet token transfer to prepare as a UserOperation"""

    sender: Optional[str] = None
    to: Optional[str] = None
    amount: Optional[str] = None
    token: str = "USDC"


class PreparedOperation(BaseModel):
    """Unsigned UserOperation returned to the payer for signing"""

    success: bool = True
    user_operation: dict = Field(alias="userOperation")
    state: str
    entry_point: str = Field(alias="entryPoint")
    transfer: Optional[dict] = None

    class Config:
        populate_by_name = True


class SubmitResult(BaseModel):
    """Outcome of a submitted UserOperation"""

    success: bool
    user_op_hash: str = Field(alias="userOpHash")
    transaction_hash: Optional[str] = Field(None, alias="transactionHash")
    block_number: Optional[str] = Field(None, alias="blockNumber")
    status: TxStatus
    message: Optional[str] = None

    class Config:
        populate_by_name = True


class PaymentRequirement(BaseModel):
    """Priced payment option for a single token"""

    token: str
    chain_id: int = Field(alias="chainId")
    contract_address: str = Field(alias="contractAddress")
    required_amount: int = Field(alias="requiredAmount")
    decimals: int
    display_amount: str = Field(alias="displayAmount")
    recipient: str
    description: str
    exchange_rate: Optional[str] = Field(None, alias="exchangeRate")
    rate_stale: Optional[bool] = Field(None, alias="rateStale")

    class Config:
        populate_by_name = True


class TokenPrice(BaseModel):
    """Per-token entry of the 402 payment info body"""

    amount: str
    decimals: int
    chain_id: int = Field(alias="chainId")
    address: str
    display_amount: str = Field(alias="displayAmount")
    exchange_rate: Optional[str] = Field(None, alias="exchangeRate")

    class Config:
        populate_by_name = True


class PaymentInfo(BaseModel):
    """Payment required response body (402)"""

    version: str = "1"
    prices: dict[str, TokenPrice]
    recipient: str
    description: str

    @classmethod
    def from_requirements(cls, requirements: list[PaymentRequirement]) -> "PaymentInfo":
        if not requirements:
            raise ValueError("at least one payment requirement is needed")
        first = requirements[0]
        return cls(
            prices={
                req.token: TokenPrice(
                    amount=str(req.required_amount),
                    decimals=req.decimals,
                    chainId=req.chain_id,
                    address=req.contract_address,
                    displayAmount=req.display_amount,
                    exchangeRate=req.exchange_rate,
                )
                for req in requirements
            },
            recipient=first.recipient,
            description=first.description,
        )


class StatusResponse(BaseModel):
    """Fast status probe"""

    configured: bool
    address: Optional[str] = None
    network: Optional[str] = None
    message: Optional[str] = None


class Fortune(BaseModel):
    """Priced content delivered after payment"""

    fortune: str
    message: str
