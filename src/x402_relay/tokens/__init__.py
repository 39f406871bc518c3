"""
Token registry
"""

from x402_relay.tokens.registry import (
    DEFAULT_TOKEN,
    JPYC_ADDRESS,
    USDC_ADDRESS,
    TokenInfo,
    TokenRegistry,
)

__all__ = ["TokenInfo", "TokenRegistry", "DEFAULT_TOKEN", "USDC_ADDRESS", "JPYC_ADDRESS"]
