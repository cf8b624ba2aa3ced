"""
Coin Mirror — Tracker context
───────────────────────────────
One object owning everything a pass needs: settings, registry, source,
store, per-provider rate limiters, the fan-out semaphore and the recent
pass history. Built once at process start and handed explicitly to the
routines and the HTTP layer.
"""

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional

import httpx

from .config import Settings
from .limits import RateLimiter, build_rate_limiters
from .models import PassReport
from .registry import TrackedRegistry
from .sources import CoinGeckoSource
from .store import AirtableStore

log = logging.getLogger("coin-mirror.context")

HISTORY_SIZE = 20


@dataclass
class TrackerContext:
    settings: Settings
    registry: TrackedRegistry
    source:   CoinGeckoSource
    store:    AirtableStore
    fanout:   asyncio.Semaphore
    client:   Optional[httpx.AsyncClient] = None
    rate_limiters: Dict[str, RateLimiter] = field(default_factory=dict)
    history:  Deque[PassReport] = field(default_factory=lambda: deque(maxlen=HISTORY_SIZE))

    @classmethod
    def create(cls, settings: Settings,
               client: Optional[httpx.AsyncClient] = None) -> "TrackerContext":
        client = client or httpx.AsyncClient(
            limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
            timeout=settings.request_timeout,
        )
        rate_limiters = build_rate_limiters()
        source = CoinGeckoSource(
            client, settings.coingecko_api_url,
            quote_currency=settings.quote_currency,
            timeout=settings.request_timeout,
            rate_limiter=rate_limiters["coingecko"],
        )
        store = AirtableStore(
            client, settings.airtable_api_url, settings.airtable_base_id,
            settings.airtable_table, settings.airtable_token,
            timeout=settings.request_timeout,
            rate_limiter=rate_limiters["airtable"],
        )
        log.info(
            f"Tracker context ready — table={settings.airtable_table} "
            f"quote={settings.quote_currency} fanout={settings.fanout_concurrency}"
        )
        return cls(
            settings=settings,
            registry=TrackedRegistry(),
            source=source,
            store=store,
            fanout=asyncio.Semaphore(settings.fanout_concurrency),
            client=client,
            rate_limiters=rate_limiters,
        )

    def record(self, report: PassReport) -> PassReport:
        self.history.append(report)
        return report

    def recent_passes(self, limit: int = 5) -> List[dict]:
        return [r.to_dict() for r in list(self.history)[-limit:]]

    async def aclose(self):
        if self.client is not None and not self.client.is_closed:
            await self.client.aclose()
