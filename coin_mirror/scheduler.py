"""
Coin Mirror — Pass scheduler
══════════════════════════════

  RECONCILE_CRON  (default */20 * * * *)   pick up new top-20 coins
  REFRESH_CRON    (default 1 * * * *)      re-price every tracked coin

Both run on APScheduler's AsyncIOScheduler inside the web process.
Passes may overlap up to MAX_OVERLAPPING_PASSES; a slow pass is never
cancelled by the next trigger. The registry's per-coin claim keeps
overlapping reconciliations from creating the same record twice.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from .sync import reconcile_pass, refresh_pass

log = logging.getLogger("coin-mirror.scheduler")

GRACE_S = 300   # 5-minute misfire grace window


async def job_reconcile(ctx):
    await reconcile_pass(ctx)


async def job_refresh(ctx):
    await refresh_pass(ctx)


def build_scheduler(ctx) -> AsyncIOScheduler:
    """Register both pass jobs on a fresh (not yet started) scheduler."""
    settings  = ctx.settings
    scheduler = AsyncIOScheduler(timezone="UTC")

    jobs = [
        (job_reconcile, settings.reconcile_cron, "reconcile", "Reconcile top-20 coins into the store"),
        (job_refresh,   settings.refresh_cron,   "refresh",   "Refresh prices of tracked coins"),
    ]
    log.info("Pass scheduler — registering jobs:")
    for func, cron, job_id, name in jobs:
        extra = {}
        if job_id == "reconcile" and settings.reconcile_on_startup:
            extra["next_run_time"] = datetime.now(timezone.utc)
        scheduler.add_job(
            func,
            CronTrigger.from_crontab(cron, timezone="UTC"),
            args                = [ctx],
            id                  = job_id,
            name                = name,
            max_instances       = settings.max_overlapping_passes,
            misfire_grace_time  = GRACE_S,
            coalesce            = True,
            replace_existing    = True,
            **extra,
        )
        log.info(f"  [{cron:>14}]  {name}")
    return scheduler


def start_scheduler(ctx) -> AsyncIOScheduler:
    scheduler = build_scheduler(ctx)
    scheduler.start()
    log.info(f"Scheduler live — {len(scheduler.get_jobs())} jobs registered")
    return scheduler


def stop_scheduler(scheduler: Optional[AsyncIOScheduler]):
    if scheduler and scheduler.running:
        scheduler.shutdown(wait=False)
        log.info("Scheduler stopped")


def get_scheduler_status(scheduler: Optional[AsyncIOScheduler]) -> dict:
    if not scheduler or not scheduler.running:
        return {"running": False, "jobs": []}

    jobs = []
    for job in scheduler.get_jobs():
        nxt = job.next_run_time
        jobs.append({
            "id":       job.id,
            "name":     job.name,
            "next_run": nxt.isoformat() if nxt else None,
        })
    jobs.sort(key=lambda j: j["next_run"] or "9999")
    return {"running": True, "job_count": len(jobs), "jobs": jobs}
