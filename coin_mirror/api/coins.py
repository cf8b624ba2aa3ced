"""
Coin Mirror — Coin query handlers
───────────────────────────────────
/coins and /coins/price/{coin_id}

These read the record store only. They never look at the registry;
freshness is whatever the last refresh pass wrote.
"""

import logging
from typing import Dict, Optional

from ..errors import AmbiguousSymbol, NotFound

log = logging.getLogger("coin-mirror.api.coins")

LIST_LIMIT = 20


async def list_coins(store, view: Optional[str] = None) -> Dict[str, dict]:
    """symbol → {"price": current_price} for up to LIST_LIMIT records."""
    records = await store.select(LIST_LIMIT, view=view)
    return {r.symbol: {"price": r.current_price} for r in records if r.symbol}


async def coin_price(store, symbol: str) -> dict:
    """{"coinId", "price"} for the one record whose symbol equals `symbol`."""
    matches = await store.find_by_symbol(symbol, limit=2)
    if not matches:
        raise NotFound(symbol)
    if len(matches) > 1:
        raise AmbiguousSymbol(f"{len(matches)}+ records carry symbol {symbol!r}")
    return {"coinId": symbol, "price": matches[0].current_price}
