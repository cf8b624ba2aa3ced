"""
Coin Mirror — Reconciliation
──────────────────────────────
Discover coins from the ranked page and create a record for each one the
registry does not know yet.

  1. Fetch the top-20 page           (failure → whole pass fails, nothing changes)
  2. Fan out one unit per coin       (bounded by the context's fan-out semaphore)
     claim id → still untracked? → create record → register
  3. Per-coin store failures are logged and counted; the coin stays
     untracked and is retried on the next pass

Coins that drop out of the page stay tracked.
"""

import asyncio
import logging
from typing import Dict, Optional

from ..errors import AmbiguousSymbol, SourceUnavailable, StoreRejected, StoreUnavailable
from ..models import RankedCoin
from .common import new_report

log = logging.getLogger("coin-mirror.reconcile")


async def _adopt_existing(ctx, coin: RankedCoin) -> Optional[str]:
    """Record id of the single existing row carrying this coin's symbol, if any."""
    matches = await ctx.store.find_by_symbol(coin.symbol, limit=2)
    if not matches:
        return None
    if len(matches) > 1:
        raise AmbiguousSymbol(f"{len(matches)} records already carry symbol {coin.symbol!r}")
    return matches[0].record_id


async def _track_one(ctx, coin: RankedCoin, pass_id: str) -> str:
    registry = ctx.registry
    if registry.has(coin.external_id):
        return "skipped"

    async with ctx.fanout:
        async with registry.claim(coin.external_id):
            # An overlapping pass may have registered it while we waited
            if registry.has(coin.external_id):
                return "skipped"
            try:
                if ctx.settings.adopt_existing_records:
                    record_id = await _adopt_existing(ctx, coin)
                    if record_id:
                        registry.register(coin.external_id, record_id)
                        log.info(f"[{pass_id}] Adopted existing record {record_id} for {coin.external_id}")
                        return "adopted"
                record_id = await ctx.store.create(coin.to_fields())
            except (StoreUnavailable, StoreRejected, AmbiguousSymbol) as e:
                log.error(f"[{pass_id}] Could not create record for {coin.external_id}: {e}")
                return "errors"

            registry.register(coin.external_id, record_id)
            log.info(f"[{pass_id}] Created record {record_id} for {coin.external_id} ({coin.symbol})")
            return "created"


async def reconcile_pass(ctx):
    """Run one reconciliation pass. Never raises for source/store failures."""
    report = new_report("reconcile")
    log.info(f"═══ Reconciliation {report.pass_id} starting — {len(ctx.registry)} tracked ═══")

    try:
        coins = await ctx.source.fetch_top_coins()
    except SourceUnavailable as e:
        log.error(f"[{report.pass_id}] Price source unavailable — pass aborted: {e}")
        return ctx.record(report.finish("failed", str(e)))

    report.fetched = len(coins)

    # Same id twice in one page: first occurrence wins
    unique: Dict[str, RankedCoin] = {}
    for coin in coins:
        unique.setdefault(coin.external_id, coin)

    outcomes = await asyncio.gather(
        *[_track_one(ctx, coin, report.pass_id) for coin in unique.values()],
        return_exceptions=True,
    )
    for coin, outcome in zip(unique.values(), outcomes):
        if isinstance(outcome, BaseException):
            log.error(f"[{report.pass_id}] Unexpected failure for {coin.external_id}: {outcome!r}",
                      exc_info=outcome)
            report.errors += 1
        else:
            setattr(report, outcome, getattr(report, outcome) + 1)

    report.finish("completed")
    log.info(
        f"═══ Reconciliation {report.pass_id} done in {report.elapsed_seconds}s — "
        f"created={report.created} adopted={report.adopted} skipped={report.skipped} "
        f"errors={report.errors} tracked={len(ctx.registry)} ═══"
    )
    return ctx.record(report)
