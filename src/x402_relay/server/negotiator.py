"""
PaymentNegotiator - prices a fixed-USD resource in every supported token and
checks incoming payments against that price.
"""

import asyncio
import logging
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal

from x402_relay.config import DEFAULT_GACHA_PRICE_USD, DEFAULT_GACHA_RECIPIENT
from x402_relay.exceptions import BadRequest, InsufficientPayment, WrongRecipient
from x402_relay.oracle import PriceOracleCache
from x402_relay.tokens import TokenInfo, TokenRegistry
from x402_relay.types import IntLike, PaymentInfo, PaymentRequirement

logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTION = "Fortune Cookie Gacha - 1 Play"

# Oracle-priced tokens accept payments down to this share of the fresh quote
ORACLE_TOLERANCE_PERCENT = 99

_CENTS = Decimal("0.01")


def _display(amount: Decimal) -> str:
    return str(amount.quantize(_CENTS, rounding=ROUND_HALF_UP))


class PaymentNegotiator:
    """
    Computes payment requirements for a fixed USD price.

    USD-pegged tokens are priced at ``floor(price * 10**decimals)``; tokens
    pegged to another currency are converted through the oracle rate first.
    Requirements are built fresh on every call.
    """

    def __init__(
        self,
        price_usd: Decimal = DEFAULT_GACHA_PRICE_USD,
        recipient: str = DEFAULT_GACHA_RECIPIENT,
        oracle: PriceOracleCache | None = None,
        tokens: list[str] | None = None,
        description: str = DEFAULT_DESCRIPTION,
    ) -> None:
        self._price_usd = Decimal(price_usd)
        self._recipient = recipient
        self._oracle = oracle or PriceOracleCache()
        self._symbols = [s.upper() for s in tokens] if tokens else ["USDC", "JPYC"]
        self._description = description

    @property
    def price_usd(self) -> Decimal:
        return self._price_usd

    @property
    def recipient(self) -> str:
        return self._recipient

    async def requirement(self, symbol: str) -> PaymentRequirement:
        """Price the resource in one token.

        Raises:
            UnsupportedToken: Unknown token symbol
        """
        token = TokenRegistry.get_token(symbol)
        scale = Decimal(10) ** token.decimals

        if not token.oracle_priced:
            local_price = self._price_usd
            rate = None
            stale = None
        else:
            rate, stale = await self._oracle.get_rate()
            local_price = self._price_usd * rate

        amount = int((local_price * scale).to_integral_value(rounding=ROUND_FLOOR))
        return PaymentRequirement(
            token=token.symbol,
            chainId=token.chain_id,
            contractAddress=token.address,
            requiredAmount=amount,
            decimals=token.decimals,
            displayAmount=_display(local_price),
            recipient=self._recipient,
            description=self._description,
            exchangeRate=_display(rate) if rate is not None else None,
            rateStale=stale,
        )

    async def requirements(self) -> list[PaymentRequirement]:
        """Requirements for every configured token, priced concurrently."""
        return list(await asyncio.gather(*(self.requirement(s) for s in self._symbols)))

    async def payment_info(self) -> PaymentInfo:
        return PaymentInfo.from_requirements(await self.requirements())

    async def expected_amount(self, symbol: str) -> int:
        return (await self.requirement(symbol)).required_amount

    async def validate(self, to: str | None, value: IntLike | None, symbol: str) -> PaymentRequirement:
        """Check recipient, token and amount of an incoming payment.

        Oracle-priced tokens are checked against a freshly computed quote with
        a 1% tolerance; USD-pegged tokens must cover the exact price.

        Raises:
            WrongRecipient: *to* is not the configured recipient
            UnsupportedToken: Unknown token symbol
            BadRequest: *value* is missing or not an integer
            InsufficientPayment: *value* is below the minimum
        """
        if not to or to.lower() != self._recipient.lower():
            raise WrongRecipient(to or "")

        requirement = await self.requirement(symbol)
        token: TokenInfo = TokenRegistry.get_token(symbol)

        try:
            paid = int(value)
        except (TypeError, ValueError):
            raise BadRequest(f"Invalid payment value: {value}")

        minimum = requirement.required_amount
        if token.oracle_priced:
            minimum = minimum * ORACLE_TOLERANCE_PERCENT // 100

        if paid < minimum:
            logger.warning(
                "Insufficient %s payment: paid=%d minimum=%d", token.symbol, paid, minimum
            )
            raise InsufficientPayment(paid, minimum)
        return requirement
