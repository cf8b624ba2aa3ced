"""
Coin Mirror — Configuration
─────────────────────────────
Everything is read from the environment (a local .env is loaded first).

Environment variables:
  AIRTABLE_API_TOKEN      — personal access token (SECRET_API_TOKEN also accepted)
  AIRTABLE_BASE_ID        — base holding the coins table
  AIRTABLE_TABLE          — Coins
  AIRTABLE_VIEW           — Grid view
  QUOTE_CURRENCY          — usd
  RECONCILE_CRON          — */20 * * * *
  REFRESH_CRON            — 1 * * * *
  RECONCILE_ON_STARTUP    — true
  REQUEST_TIMEOUT         — 10
  FANOUT_CONCURRENCY      — 5
  MAX_OVERLAPPING_PASSES  — 2
  ADOPT_EXISTING_RECORDS  — false
  PORT                    — 3000
"""

import os
from dataclasses import dataclass
from typing import List

from dotenv import load_dotenv

load_dotenv()

DEFAULT_AIRTABLE_API_URL  = "https://api.airtable.com/v0"
DEFAULT_COINGECKO_API_URL = "https://api.coingecko.com/api/v3"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    airtable_token:         str = ""
    airtable_base_id:       str = ""
    airtable_table:         str = "Coins"
    airtable_view:          str = "Grid view"
    airtable_api_url:       str = DEFAULT_AIRTABLE_API_URL
    coingecko_api_url:      str = DEFAULT_COINGECKO_API_URL
    quote_currency:         str = "usd"
    reconcile_cron:         str = "*/20 * * * *"
    refresh_cron:           str = "1 * * * *"
    reconcile_on_startup:   bool = True
    request_timeout:        float = 10.0
    fanout_concurrency:     int = 5
    max_overlapping_passes: int = 2
    adopt_existing_records: bool = False
    port:                   int = 3000

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            airtable_token         = os.getenv("AIRTABLE_API_TOKEN") or os.getenv("SECRET_API_TOKEN", ""),
            airtable_base_id       = os.getenv("AIRTABLE_BASE_ID", ""),
            airtable_table         = os.getenv("AIRTABLE_TABLE", "Coins"),
            airtable_view          = os.getenv("AIRTABLE_VIEW", "Grid view"),
            airtable_api_url       = os.getenv("AIRTABLE_API_URL", DEFAULT_AIRTABLE_API_URL).rstrip("/"),
            coingecko_api_url      = os.getenv("COINGECKO_API_URL", DEFAULT_COINGECKO_API_URL).rstrip("/"),
            quote_currency         = os.getenv("QUOTE_CURRENCY", "usd").lower(),
            reconcile_cron         = os.getenv("RECONCILE_CRON", "*/20 * * * *"),
            refresh_cron           = os.getenv("REFRESH_CRON", "1 * * * *"),
            reconcile_on_startup   = _env_bool("RECONCILE_ON_STARTUP", True),
            request_timeout        = float(os.getenv("REQUEST_TIMEOUT", "10")),
            fanout_concurrency     = int(os.getenv("FANOUT_CONCURRENCY", "5")),
            max_overlapping_passes = int(os.getenv("MAX_OVERLAPPING_PASSES", "2")),
            adopt_existing_records = _env_bool("ADOPT_EXISTING_RECORDS", False),
            port                   = int(os.getenv("PORT", "3000")),
        )

    def validate(self) -> List[str]:
        """Return a list of configuration problems (empty when usable)."""
        problems = []
        if not self.airtable_token:
            problems.append("AIRTABLE_API_TOKEN is not set — record store calls will be rejected")
        if not self.airtable_base_id:
            problems.append("AIRTABLE_BASE_ID is not set — record store calls will fail")
        for name, expr in (("RECONCILE_CRON", self.reconcile_cron), ("REFRESH_CRON", self.refresh_cron)):
            if len(expr.split()) != 5:
                problems.append(f"{name}={expr!r} is not a 5-field crontab expression")
        if self.fanout_concurrency < 1:
            problems.append("FANOUT_CONCURRENCY must be at least 1")
        if self.max_overlapping_passes < 1:
            problems.append("MAX_OVERLAPPING_PASSES must be at least 1")
        if self.request_timeout <= 0:
            problems.append("REQUEST_TIMEOUT must be positive")
        return problems
