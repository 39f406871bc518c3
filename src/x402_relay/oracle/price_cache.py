"""
JPY/USD price oracle cache backed by the Chainlink aggregator on Ethereum mainnet.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Awaitable, Callable

from x402_relay.abi import AGGREGATOR_V3_ABI
from x402_relay.config import NetworkConfig
from x402_relay.utils.evm_client import EvmReadClient

logger = logging.getLogger(__name__)

CACHE_TTL_SECONDS = 60.0
FALLBACK_JPY_PER_USD = Decimal("150")
ORACLE_TIMEOUT_SECONDS = 10.0

FeedReader = Callable[[], Awaitable[Decimal]]


@dataclass(frozen=True)
class PriceSnapshot:
    """JPY per 1 USD, when it was observed, and whether it is a stale fallback."""

    rate: Decimal
    observed_at: float
    stale: bool = False


class ChainlinkFeedReader:
    """Reads one Chainlink aggregator and inverts its answer.

    The JPY/USD feed reports USD per 1 JPY; callers want JPY per 1 USD.
    """

    def __init__(
        self,
        feed_address: str = NetworkConfig.JPY_USD_FEED_ADDRESS,
        network: str = NetworkConfig.ORACLE_NETWORK,
        rpc_url: str | None = None,
        read_client: EvmReadClient | None = None,
    ) -> None:
        self._feed_address = feed_address
        self._network = network
        if read_client is None:
            rpc_urls = {network: rpc_url} if rpc_url else None
            read_client = EvmReadClient(rpc_urls, request_timeout=ORACLE_TIMEOUT_SECONDS)
        self._client = read_client

    async def __call__(self) -> Decimal:
        round_data, decimals = await asyncio.gather(
            self._client.read_contract(
                self._feed_address, AGGREGATOR_V3_ABI, "latestRoundData", [], self._network
            ),
            self._client.read_contract(
                self._feed_address, AGGREGATOR_V3_ABI, "decimals", [], self._network
            ),
        )
        answer = int(round_data[1])
        if answer <= 0:
            raise ValueError(f"Non-positive oracle answer: {answer}")
        usd_per_jpy = Decimal(answer).scaleb(-int(decimals))
        return Decimal(1) / usd_per_jpy


class PriceOracleCache:
    """
    Single-value cache of the JPY/USD rate.

    Reads within the TTL return the cached snapshot without locking. Expired
    reads go through one refresh at a time; concurrent callers wait for it and
    reuse its result. A failed refresh keeps the previous timestamp, so the
    next read retries, and returns the last good rate (or the fixed fallback)
    marked stale. Nothing here raises.
    """

    def __init__(
        self,
        feed_reader: FeedReader | None = None,
        ttl: float = CACHE_TTL_SECONDS,
        fallback_rate: Decimal = FALLBACK_JPY_PER_USD,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._feed_reader = feed_reader or ChainlinkFeedReader()
        self._ttl = ttl
        self._fallback_rate = fallback_rate
        self._clock = clock
        self._snapshot: PriceSnapshot | None = None
        self._refresh_lock = asyncio.Lock()

    @property
    def ttl(self) -> float:
        return self._ttl

    def _fresh(self, snapshot: PriceSnapshot | None) -> bool:
        return snapshot is not None and self._clock() - snapshot.observed_at < self._ttl

    async def get_rate(self) -> tuple[Decimal, bool]:
        """Return ``(jpy_per_usd, stale)``."""
        snapshot = await self.get_snapshot()
        return snapshot.rate, snapshot.stale

    async def get_snapshot(self) -> PriceSnapshot:
        snapshot = self._snapshot
        if self._fresh(snapshot):
            return snapshot

        async with self._refresh_lock:
            # Another caller may have refreshed while we waited
            snapshot = self._snapshot
            if self._fresh(snapshot):
                return snapshot
            return await self._refresh(snapshot)

    async def _refresh(self, previous: PriceSnapshot | None) -> PriceSnapshot:
        try:
            rate = await self._feed_reader()
        except Exception as e:
            if previous is not None:
                logger.warning("Oracle refresh failed, serving previous rate %s: %s", previous.rate, e)
                return PriceSnapshot(rate=previous.rate, observed_at=previous.observed_at, stale=True)
            logger.warning(
                "Oracle refresh failed, serving fallback rate %s: %s", self._fallback_rate, e
            )
            return PriceSnapshot(rate=self._fallback_rate, observed_at=self._clock(), stale=True)

        snapshot = PriceSnapshot(rate=rate, observed_at=self._clock())
        self._snapshot = snapshot
        logger.info("JPY/USD rate refreshed: %s JPY per USD", rate)
        return snapshot
