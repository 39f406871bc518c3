"""
FortuneProvider - the paid content delivered after a successful payment
"""

import logging
import random

import httpx

from x402_relay.types import Fortune

logger = logging.getLogger(__name__)

FORTUNE_API_URL = "https://api.apiverve.com/v1/fortunecookie"
FORTUNE_API_TIMEOUT = 10.0

FORTUNE_RANKS = ["大吉", "中吉", "小吉", "吉", "末吉", "凶"]

FALLBACK_FORTUNES = [
    Fortune(fortune="大吉", message="Great luck awaits you today!"),
    Fortune(fortune="中吉", message="Good things are coming your way."),
    Fortune(fortune="小吉", message="A peaceful day with small joys."),
    Fortune(fortune="吉", message="Steady progress leads to success."),
    Fortune(fortune="末吉", message="Better luck in the afternoon."),
    Fortune(fortune="凶", message="Be cautious today."),
]


class FortuneProvider:
    """
    Fortune-cookie API client with a built-in fallback.

    ``draw()`` never raises: a missing API key, transport failure or a body
    without a fortune all produce a random built-in fortune.
    """

    def __init__(
        self,
        api_key: str | None = None,
        api_url: str = FORTUNE_API_URL,
        timeout: float = FORTUNE_API_TIMEOUT,
        rng: random.Random | None = None,
    ) -> None:
        self._api_key = api_key
        self._api_url = api_url
        self._timeout = timeout
        self._rng = rng or random.Random()
        self._http_client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client"""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client"""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    def fallback(self) -> Fortune:
        return self._rng.choice(FALLBACK_FORTUNES)

    async def draw(self) -> Fortune:
        if not self._api_key:
            logger.warning("FORTUNE_API_KEY not set, using fallback")
            return self.fallback()

        try:
            client = await self._get_client()
            response = await client.get(self._api_url, headers={"X-API-Key": self._api_key})
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Failed to fetch fortune from API: %s", e)
            return self.fallback()

        message = None
        if isinstance(data, dict) and data.get("status") == "ok":
            message = (data.get("data") or {}).get("fortune")
        if not message:
            logger.error("Invalid fortune API response: %s", data)
            return self.fallback()

        return Fortune(fortune=self._rng.choice(FORTUNE_RANKS), message=message)
