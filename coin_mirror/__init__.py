"""
Coin Mirror
─────────────
Keeps a record-store mirror of the top-ranked coins fresh on a schedule.

    from coin_mirror import Settings, TrackerContext, reconcile_pass, refresh_pass
    ctx = TrackerContext.create(Settings.from_env())
    report = await reconcile_pass(ctx)
"""

from .config import Settings
from .context import TrackerContext
from .registry import TrackedRegistry
from .sync import reconcile_pass, refresh_pass

__all__ = ["Settings", "TrackerContext", "TrackedRegistry", "reconcile_pass", "refresh_pass"]
