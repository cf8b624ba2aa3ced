"""
Coin Mirror — Tracked-Coin Registry
─────────────────────────────────────
In-process map external coin id → record store id.
The only answer to "have we created a record for this coin yet".

Rules:
  - one record id per external id, first registration wins
  - no removal; the map lives as long as the process
  - registering an id twice is a no-op that returns False; a second,
    different record id is logged as a duplicate-record anomaly

Creation is serialised per external id through `claim()`, so two
overlapping passes cannot both decide the same coin is untracked.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Dict, List, Optional

log = logging.getLogger("coin-mirror.registry")


class TrackedRegistry:

    def __init__(self):
        self._records: Dict[str, str] = {}
        self._locks:   Dict[str, asyncio.Lock] = {}
        self.anomalies: List[dict] = []

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, external_id: str) -> bool:
        return self.has(external_id)

    def has(self, external_id: str) -> bool:
        return external_id in self._records

    def record_id_for(self, external_id: str) -> Optional[str]:
        return self._records.get(external_id)

    def register(self, external_id: str, record_id: str) -> bool:
        """Map `external_id` to `record_id`. Returns False if already tracked."""
        existing = self._records.get(external_id)
        if existing is None:
            self._records[external_id] = record_id
            return True
        if existing != record_id:
            self.anomalies.append({
                "external_id": external_id,
                "kept":        existing,
                "duplicate":   record_id,
            })
            log.warning(
                f"Duplicate record for {external_id}: keeping {existing}, "
                f"ignoring {record_id}"
            )
        return False

    def external_ids(self) -> List[str]:
        return list(self._records.keys())

    def snapshot(self) -> Dict[str, str]:
        return dict(self._records)

    @asynccontextmanager
    async def claim(self, external_id: str):
        """Hold the per-id lock around a check-then-create-then-register sequence."""
        lock = self._locks.setdefault(external_id, asyncio.Lock())
        async with lock:
            yield self
