"""
Coin Mirror — Price refresh
─────────────────────────────
Re-read prices for every tracked coin in one batch call and patch
`current_price` on the matching records. Nothing else is ever written.

  empty registry           → no-op
  batch call fails         → pass fails, no record touched
  id missing from answer   → left stale
  one update fails         → logged, the rest carry on
"""

import asyncio
import logging

from ..errors import SourceUnavailable, StoreRejected, StoreUnavailable
from ..models import FIELD_CURRENT_PRICE
from .common import new_report

log = logging.getLogger("coin-mirror.refresh")


async def _update_one(ctx, external_id: str, record_id: str, price: float, pass_id: str) -> bool:
    async with ctx.fanout:
        try:
            await ctx.store.update(record_id, {FIELD_CURRENT_PRICE: price})
        except (StoreUnavailable, StoreRejected) as e:
            log.error(f"[{pass_id}] Could not update {external_id} ({record_id}): {e}")
            return False
    log.debug(f"[{pass_id}] {external_id} → {price}")
    return True


async def refresh_pass(ctx):
    """Run one refresh pass over the whole registry. Never raises for source/store failures."""
    report  = new_report("refresh")
    tracked = ctx.registry.snapshot()

    if not tracked:
        log.info(f"[{report.pass_id}] Registry empty — nothing to refresh")
        return ctx.record(report.finish("skipped", "registry empty"))

    log.info(f"═══ Refresh {report.pass_id} starting — {len(tracked)} tracked ═══")

    try:
        prices = await ctx.source.fetch_prices(tracked.keys())
    except SourceUnavailable as e:
        log.error(f"[{report.pass_id}] Price source unavailable — no updates applied: {e}")
        return ctx.record(report.finish("failed", str(e)))

    report.fetched = len(prices)

    jobs = []
    for external_id, price in prices.items():
        record_id = ctx.registry.record_id_for(external_id)
        if record_id is None:
            continue
        jobs.append((external_id, record_id, price))
    report.missing = sum(1 for external_id in tracked if external_id not in prices)

    outcomes = await asyncio.gather(
        *[_update_one(ctx, ext, rid, price, report.pass_id) for ext, rid, price in jobs],
        return_exceptions=True,
    )
    for (external_id, _, _), outcome in zip(jobs, outcomes):
        if isinstance(outcome, BaseException):
            log.error(f"[{report.pass_id}] Unexpected failure for {external_id}: {outcome!r}",
                      exc_info=outcome)
            report.errors += 1
        elif outcome:
            report.updated += 1
        else:
            report.errors += 1

    report.finish("completed")
    log.info(
        f"═══ Refresh {report.pass_id} done in {report.elapsed_seconds}s — "
        f"updated={report.updated} missing={report.missing} errors={report.errors} ═══"
    )
    return ctx.record(report)
