"""
Coin Mirror — Outbound call pacing
────────────────────────────────────
One RateLimiter per remote provider, owned by the TrackerContext and
handed to the client that talks to that provider.

Pacing is slot based: every call reserves the next free slot on the
provider's timeline, so N callers arriving together are spread out at
`rate` per second after the first `burst`, instead of all waking at once.

Provider budgets:
  CoinGecko (free tier): ~30 req/min → 0.5 req/s, burst 5
  Airtable:              5 req/s per base, burst 5
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Dict

log = logging.getLogger("coin-mirror.limits")

# provider → (rate_per_second, burst)
PROVIDER_RATES: Dict[str, tuple] = {
    "coingecko": (0.5, 5),
    "airtable":  (5.0, 5),
}


class RateLimiter:
    """Spaces calls `1/rate` seconds apart, letting `burst` calls through back to back."""

    def __init__(self, name: str, rate: float, burst: int = 1,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], Awaitable] = asyncio.sleep):
        if rate <= 0 or burst < 1:
            raise ValueError(f"{name}: rate must be > 0 and burst >= 1")
        self.name      = name
        self.rate      = rate
        self.burst     = burst
        self._interval = 1.0 / rate
        self._clock    = clock
        self._sleep    = sleep
        self._next_slot = float("-inf")

    def reserve(self) -> float:
        """Book the next slot. Returns how long the caller must wait before using it."""
        now = self._clock()
        # Idle time earns back at most `burst` slots
        slot = max(self._next_slot, now - (self.burst - 1) * self._interval)
        self._next_slot = slot + self._interval
        return max(0.0, slot - now)

    async def wait(self):
        delay = self.reserve()
        if delay > 0:
            log.debug(f"{self.name}: pacing {delay:.2f}s")
            await self._sleep(delay)


def build_rate_limiters() -> Dict[str, RateLimiter]:
    return {name: RateLimiter(name, rate, burst)
            for name, (rate, burst) in PROVIDER_RATES.items()}
