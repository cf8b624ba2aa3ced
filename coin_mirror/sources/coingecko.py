"""
Coin Mirror — CoinGecko price source
──────────────────────────────────────
Read-only. Two calls:
  /coins/markets  — top 20 coins by market cap (one page, no paging)
  /simple/price   — current price for a batch of coin ids

Any transport error, timeout or non-200 answer raises SourceUnavailable.
There is no retry here; the next scheduled pass is the retry.
"""

import logging
from typing import Dict, Iterable, List, Optional

import httpx

from ..errors import SourceUnavailable
from ..limits import RateLimiter
from ..models import RankedCoin

log = logging.getLogger("coin-mirror.coingecko")

TOP_PAGE_SIZE = 20
HEADERS = {"Accept": "application/json"}


class CoinGeckoSource:

    def __init__(self, client: httpx.AsyncClient, base_url: str,
                 quote_currency: str = "usd", timeout: Optional[float] = None,
                 rate_limiter: Optional[RateLimiter] = None):
        self.client         = client
        self.base_url       = base_url.rstrip("/")
        self.quote_currency = quote_currency.lower()
        self.timeout        = timeout
        self.rate_limiter   = rate_limiter

    async def _get(self, path: str, params: dict):
        url = f"{self.base_url}{path}"
        if self.rate_limiter is not None:
            await self.rate_limiter.wait()
        try:
            r = await self.client.get(url, params=params, headers=HEADERS,
                                      timeout=self.timeout)
        except httpx.TimeoutException as e:
            raise SourceUnavailable(f"Timeout calling {path}") from e
        except httpx.HTTPError as e:
            raise SourceUnavailable(f"Error calling {path}: {e}") from e
        if r.status_code != 200:
            raise SourceUnavailable(f"HTTP {r.status_code} from {path}: {r.text[:200]}")
        try:
            return r.json()
        except ValueError as e:
            raise SourceUnavailable(f"Malformed JSON from {path}") from e

    async def fetch_top_coins(self) -> List[RankedCoin]:
        """Top coins by market cap, highest first, quoted in the configured currency."""
        data = await self._get("/coins/markets", {
            "vs_currency": self.quote_currency,
            "order":       "market_cap_desc",
            "per_page":    TOP_PAGE_SIZE,
            "page":        1,
            "sparkline":   "false",
        })
        if not isinstance(data, list):
            raise SourceUnavailable("Unexpected /coins/markets payload")

        coins = []
        for row in data:
            if not isinstance(row, dict) or not row.get("id"):
                log.warning(f"Dropping market row without id: {str(row)[:80]}")
                continue
            coins.append(RankedCoin.from_market_row(row))
        log.info(f"CoinGecko: {len(coins)} ranked coins")
        return coins

    async def fetch_prices(self, ids: Iterable[str]) -> Dict[str, float]:
        """Current price per coin id. Ids the source does not answer for are absent."""
        id_list = sorted(set(ids))
        if not id_list:
            return {}

        data = await self._get("/simple/price", {
            "ids":           ",".join(id_list),
            "vs_currencies": self.quote_currency,
        })
        if not isinstance(data, dict):
            raise SourceUnavailable("Unexpected /simple/price payload")

        prices = {}
        for coin_id, quote in data.items():
            price = quote.get(self.quote_currency) if isinstance(quote, dict) else None
            if isinstance(price, bool) or not isinstance(price, (int, float)):
                continue
            prices[coin_id] = price
        return prices
