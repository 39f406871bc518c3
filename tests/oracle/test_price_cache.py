"""
Tests for the JPY/USD oracle cache
"""

import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from x402_relay.exceptions import UpstreamUnavailable
from x402_relay.oracle import ChainlinkFeedReader, PriceOracleCache


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


class TestPriceOracleCache:
    @pytest.mark.anyio
    async def test_fresh_reads_hit_cache(self, clock):
        reader = AsyncMock(return_value=Decimal("148.5"))
        cache = PriceOracleCache(reader, clock=clock)

        assert await cache.get_rate() == (Decimal("148.5"), False)
        clock.advance(59)
        assert await cache.get_rate() == (Decimal("148.5"), False)
        assert reader.await_count == 1

    @pytest.mark.anyio
    async def test_expired_value_is_refreshed(self, clock):
        reader = AsyncMock(side_effect=[Decimal("148.5"), Decimal("151.2")])
        cache = PriceOracleCache(reader, clock=clock)

        await cache.get_rate()
        clock.advance(60)
        assert await cache.get_rate() == (Decimal("151.2"), False)
        assert reader.await_count == 2

    @pytest.mark.anyio
    async def test_failure_without_history_uses_fallback(self, clock):
        reader = AsyncMock(side_effect=UpstreamUnavailable("rpc down"))
        cache = PriceOracleCache(reader, clock=clock)

        assert await cache.get_rate() == (Decimal("150"), True)
        # Nothing was cached, so the next read retries
        assert await cache.get_rate() == (Decimal("150"), True)
        assert reader.await_count == 2

    @pytest.mark.anyio
    async def test_failure_serves_previous_value_stale(self, clock):
        reader = AsyncMock(side_effect=[Decimal("148.5"), ValueError("bad answer"), Decimal("149")])
        cache = PriceOracleCache(reader, clock=clock)

        await cache.get_rate()
        clock.advance(120)
        snapshot = await cache.get_snapshot()
        assert snapshot.rate == Decimal("148.5")
        assert snapshot.stale is True
        assert snapshot.observed_at == 1000.0

        assert await cache.get_rate() == (Decimal("149"), False)

    @pytest.mark.anyio
    async def test_concurrent_reads_share_one_refresh(self, clock):
        gate = asyncio.Event()
        calls = 0

        async def reader():
            nonlocal calls
            calls += 1
            await gate.wait()
            return Decimal("150.25")

        cache = PriceOracleCache(reader, clock=clock)
        tasks = [asyncio.create_task(cache.get_rate()) for _ in range(5)]
        await asyncio.sleep(0)
        gate.set()
        results = await asyncio.gather(*tasks)

        assert calls == 1
        assert all(result == (Decimal("150.25"), False) for result in results)

    @pytest.mark.anyio
    async def test_custom_fallback(self, clock):
        reader = AsyncMock(side_effect=RuntimeError("boom"))
        cache = PriceOracleCache(reader, fallback_rate=Decimal("145"), clock=clock)
        assert await cache.get_rate() == (Decimal("145"), True)


class TestChainlinkFeedReader:
    @staticmethod
    def _read_client(answer, decimals=8):
        async def read_contract(contract_address, abi, method, args, network):
            if method == "latestRoundData":
                return (110680464442257314041, answer, 1700000000, 1700000000, 110680464442257314041)
            return decimals

        client = MagicMock()
        client.read_contract = AsyncMock(side_effect=read_contract)
        return client

    @pytest.mark.anyio
    async def test_inverts_usd_per_jpy(self):
        client = self._read_client(answer=500000)
        reader = ChainlinkFeedReader(read_client=client)

        assert await reader() == Decimal(200)
        addresses = {call.args[0] for call in client.read_contract.call_args_list}
        assert addresses == {"0xBcE206caE7f0ec07b545EddE332A47C2F75bbeb3"}
        assert {call.args[4] for call in client.read_contract.call_args_list} == {"eip155:1"}

    @pytest.mark.anyio
    async def test_rejects_non_positive_answer(self):
        reader = ChainlinkFeedReader(read_client=self._read_client(answer=0))
        with pytest.raises(ValueError):
            await reader()

    @pytest.mark.anyio
    async def test_feeds_cache(self):
        cache = PriceOracleCache(ChainlinkFeedReader(read_client=self._read_client(answer=666667)))
        rate, stale = await cache.get_rate()
        assert stale is False
        assert abs(rate - Decimal("149.99992500")) < Decimal("0.0001")
