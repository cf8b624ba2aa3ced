"""
Coin Mirror — Data contracts
──────────────────────────────
RankedCoin   — one row of the price source's ranked market page
PriceRecord  — one row of the record store's coins table
PassReport   — summary of one reconciliation / refresh pass
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

# Field names of a coin row in the record store
FIELD_NAME          = "name"
FIELD_SYMBOL        = "symbol"
FIELD_CURRENT_PRICE = "current_price"
FIELD_MARKET_CAP    = "market_cap"


@dataclass(frozen=True)
class RankedCoin:
    external_id:   str
    name:          str
    symbol:        str
    current_price: Optional[float]
    market_cap:    Optional[float]

    @classmethod
    def from_market_row(cls, row: dict) -> "RankedCoin":
        return cls(
            external_id   = row["id"],
            name          = row.get("name") or row["id"],
            symbol        = row.get("symbol") or "",
            current_price = row.get("current_price"),
            market_cap    = row.get("market_cap"),
        )

    def to_fields(self) -> Dict[str, Any]:
        """Fields written verbatim when the record is created."""
        return {
            FIELD_NAME:          self.name,
            FIELD_SYMBOL:        self.symbol,
            FIELD_CURRENT_PRICE: self.current_price,
            FIELD_MARKET_CAP:    self.market_cap,
        }


@dataclass(frozen=True)
class PriceRecord:
    record_id:     str
    name:          Optional[str]
    symbol:        Optional[str]
    current_price: Optional[float]
    market_cap:    Optional[float]

    @classmethod
    def from_store(cls, row: dict) -> "PriceRecord":
        fields = row.get("fields") or {}
        return cls(
            record_id     = row["id"],
            name          = fields.get(FIELD_NAME),
            symbol        = fields.get(FIELD_SYMBOL),
            current_price = fields.get(FIELD_CURRENT_PRICE),
            market_cap    = fields.get(FIELD_MARKET_CAP),
        )


@dataclass
class PassReport:
    pass_id:  str
    routine:  str                 # "reconcile" | "refresh"
    status:   str = "running"     # "running" | "completed" | "failed" | "skipped"
    fetched:  int = 0
    created:  int = 0
    adopted:  int = 0
    skipped:  int = 0
    updated:  int = 0
    missing:  int = 0
    errors:   int = 0
    notes:    Optional[str] = None
    started_at:      float = field(default_factory=time.time)
    elapsed_seconds: float = 0.0

    def finish(self, status: str, notes: Optional[str] = None) -> "PassReport":
        self.status = status
        if notes:
            self.notes = notes
        self.elapsed_seconds = round(time.time() - self.started_at, 3)
        return self

    def to_dict(self) -> dict:
        return {
            "pass_id":         self.pass_id,
            "routine":         self.routine,
            "status":          self.status,
            "fetched":         self.fetched,
            "created":         self.created,
            "adopted":         self.adopted,
            "skipped":         self.skipped,
            "updated":         self.updated,
            "missing":         self.missing,
            "errors":          self.errors,
            "notes":           self.notes,
            "started_at":      int(self.started_at),
            "elapsed_seconds": self.elapsed_seconds,
        }
