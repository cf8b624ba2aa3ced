"""
Shared fixtures: in-memory price source and record store, and a fresh
TrackerContext per test.
"""

import asyncio
import itertools
import logging
from typing import Dict, List, Optional

import pytest

from coin_mirror.config import Settings
from coin_mirror.context import TrackerContext
from coin_mirror.errors import SourceUnavailable, StoreUnavailable
from coin_mirror.models import PriceRecord, RankedCoin
from coin_mirror.registry import TrackedRegistry

logger = logging.getLogger(__name__)


def make_coin(coin_id: str, symbol: Optional[str] = None, price: float = 1.0,
              market_cap: float = 1e9, name: Optional[str] = None) -> RankedCoin:
    return RankedCoin(
        external_id=coin_id,
        name=name or coin_id.title(),
        symbol=symbol or coin_id,
        current_price=price,
        market_cap=market_cap,
    )


class FakeSource:
    def __init__(self):
        self.top: List[RankedCoin] = []
        self.prices: Dict[str, float] = {}
        self.fail = False
        self.price_calls: List[List[str]] = []
        self.top_calls = 0

    async def fetch_top_coins(self) -> List[RankedCoin]:
        self.top_calls += 1
        if self.fail:
            raise SourceUnavailable("boom")
        return list(self.top)

    async def fetch_prices(self, ids) -> Dict[str, float]:
        id_list = sorted(ids)
        self.price_calls.append(id_list)
        if self.fail:
            raise SourceUnavailable("boom")
        return {i: p for i, p in self.prices.items() if i in id_list}


class FakeStore:
    def __init__(self):
        self.rows: Dict[str, dict] = {}
        self._ids = itertools.count(1)
        self.fail_create_for: set = set()
        self.fail_update_for: set = set()
        self.create_calls = 0
        self.update_calls: List[tuple] = []

    async def create(self, fields: dict) -> str:
        self.create_calls += 1
        if fields.get("symbol") in self.fail_create_for:
            raise StoreUnavailable("create failed")
        record_id = f"rec{next(self._ids)}"
        self.rows[record_id] = dict(fields)
        return record_id

    async def update(self, record_id: str, fields: dict) -> None:
        self.update_calls.append((record_id, dict(fields)))
        if record_id in self.fail_update_for:
            raise StoreUnavailable("update failed")
        self.rows[record_id].update(fields)

    async def select(self, max_records: int, formula=None, view=None) -> List[PriceRecord]:
        out = [PriceRecord.from_store({"id": rid, "fields": f}) for rid, f in self.rows.items()]
        return out[:max_records]

    async def find_by_symbol(self, symbol: str, limit: int = 2) -> List[PriceRecord]:
        out = [PriceRecord.from_store({"id": rid, "fields": f})
               for rid, f in self.rows.items() if f.get("symbol") == symbol]
        return out[:limit]


@pytest.fixture
def settings():
    return Settings(airtable_token="tok", airtable_base_id="appTEST")


@pytest.fixture
def fake_source():
    return FakeSource()


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def ctx(settings, fake_source, fake_store):
    return TrackerContext(
        settings=settings,
        registry=TrackedRegistry(),
        source=fake_source,
        store=fake_store,
        fanout=asyncio.Semaphore(settings.fanout_concurrency),
    )
