"""
Exchange-rate oracle
"""

from x402_relay.oracle.price_cache import (
    CACHE_TTL_SECONDS,
    FALLBACK_JPY_PER_USD,
    ChainlinkFeedReader,
    PriceOracleCache,
    PriceSnapshot,
)

__all__ = [
    "CACHE_TTL_SECONDS",
    "FALLBACK_JPY_PER_USD",
    "ChainlinkFeedReader",
    "PriceOracleCache",
    "PriceSnapshot",
]
