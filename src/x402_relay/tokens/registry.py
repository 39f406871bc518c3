"""
Token registry - Centralized management of token configurations
"""

from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal, InvalidOperation

from x402_relay.config import NetworkConfig
from x402_relay.exceptions import BadRequest, UnsupportedToken


@dataclass(frozen=True)
class TokenInfo:
    """Token information

    ``domain_name``/``domain_version`` are the EIP-712 domain constants of the
    deployed contract. They are not read from the chain and must be kept in
    sync with the deployment.
    """

    address: str
    decimals: int
    name: str
    symbol: str
    chain_id: int
    domain_name: str
    domain_version: str = "1"
    pegged_currency: str = "USD"

    @property
    def network(self) -> str:
        return NetworkConfig.network_for_chain_id(self.chain_id)

    @property
    def rpc_url(self) -> str | None:
        return NetworkConfig.get_rpc_url(self.network)

    @property
    def oracle_priced(self) -> bool:
        return self.pegged_currency != "USD"


USDC_ADDRESS = "0x036CbD53842c5426634e7929541eC2318f3dCF7e"
JPYC_ADDRESS = "0x431D5dfF03120AFA4bDf332c61A6e1766eF37BDB"
DEFAULT_TOKEN = "USDC"


class TokenRegistry:
    """Token registry keyed by symbol"""

    _tokens: dict[str, TokenInfo] = {
        # Circle testnet USDC on Base Sepolia
        "USDC": TokenInfo(
            address=USDC_ADDRESS,
            decimals=6,
            name="USD Coin",
            symbol="USDC",
            chain_id=84532,
            domain_name="USDC",
            domain_version="2",
        ),
        # JPYC on Ethereum Sepolia
        "JPYC": TokenInfo(
            address=JPYC_ADDRESS,
            decimals=18,
            name="JPY Coin",
            symbol="JPYC",
            chain_id=11155111,
            domain_name="JPY Coin",
            domain_version="1",
            pegged_currency="JPY",
        ),
    }

    @classmethod
    def register_token(cls, token: TokenInfo) -> None:
        """Register a custom token under its symbol"""
        cls._tokens[token.symbol.upper()] = token

    @classmethod
    def get_token(cls, symbol: str) -> TokenInfo:
        """Get token information for a symbol

        Raises:
            UnsupportedToken: If token does not exist
        """
        token = cls._tokens.get((symbol or "").upper())
        if token is None:
            raise UnsupportedToken(symbol)
        return token

    @classmethod
    def parse_units(cls, amount: str, symbol: str) -> int:
        """Convert a human readable amount (e.g. "1.5") to the token's smallest unit.

        Raises:
            BadRequest: If the amount is not a non-negative decimal with at most
                ``decimals`` fractional digits
        """
        token = cls.get_token(symbol)
        try:
            value = Decimal(str(amount).strip())
        except InvalidOperation:
            raise BadRequest(f"Invalid amount: {amount}")
        if not value.is_finite() or value < 0:
            raise BadRequest(f"Invalid amount: {amount}")

        scaled = value.scaleb(token.decimals)
        if scaled != scaled.to_integral_value(rounding=ROUND_DOWN):
            raise BadRequest(f"Amount {amount} has more than {token.decimals} decimals")
        return int(scaled)
