"""
Coin Mirror — Airtable record store
─────────────────────────────────────
Thin async wrapper over the Airtable REST API for one table.

  create(fields)                 POST  /{base}/{table}    → record id
  update(record_id, fields)      PATCH /{base}/{table}
  select(max_records, formula)   GET   /{base}/{table}    → [PriceRecord]

Errors:
  timeout / transport / 429 / 5xx   → StoreUnavailable
  any other non-2xx                 → StoreRejected
"""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from ..errors import StoreRejected, StoreUnavailable
from ..limits import RateLimiter
from ..models import FIELD_SYMBOL, PriceRecord

log = logging.getLogger("coin-mirror.airtable")


def symbol_formula(symbol: str) -> str:
    """filterByFormula matching one symbol exactly (case-sensitive)."""
    escaped = symbol.replace("\\", "\\\\").replace('"', '\\"')
    return f'{{{FIELD_SYMBOL}}} = "{escaped}"'


def _error_detail(r: httpx.Response):
    try:
        body = r.json()
    except ValueError:
        return None, r.text[:200]
    err = body.get("error") if isinstance(body, dict) else None
    if isinstance(err, dict):
        return err.get("type"), err.get("message")
    return err, None


class AirtableStore:

    def __init__(self, client: httpx.AsyncClient, api_url: str, base_id: str,
                 table: str, token: str, timeout: Optional[float] = None,
                 rate_limiter: Optional[RateLimiter] = None):
        self.client  = client
        self.url     = f"{api_url.rstrip('/')}/{base_id}/{quote(table, safe='')}"
        self.table   = table
        self.timeout = timeout
        self.rate_limiter = rate_limiter
        self.headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type":  "application/json",
        }

    async def _request(self, method: str, json: Optional[dict] = None,
                       params: Optional[dict] = None) -> dict:
        if self.rate_limiter is not None:
            await self.rate_limiter.wait()
        try:
            r = await self.client.request(method, self.url, json=json, params=params,
                                          headers=self.headers, timeout=self.timeout)
        except httpx.TimeoutException as e:
            raise StoreUnavailable(f"Timeout on {method} {self.table}") from e
        except httpx.HTTPError as e:
            raise StoreUnavailable(f"Error on {method} {self.table}: {e}") from e

        if r.status_code == 429 or r.status_code >= 500:
            raise StoreUnavailable(f"HTTP {r.status_code} on {method} {self.table}")
        if not 200 <= r.status_code < 300:
            error_type, message = _error_detail(r)
            raise StoreRejected(
                f"HTTP {r.status_code} on {method} {self.table}: {error_type} {message or ''}".strip(),
                status_code=r.status_code,
                error_type=error_type,
            )
        try:
            return r.json()
        except ValueError as e:
            raise StoreUnavailable(f"Malformed JSON on {method} {self.table}") from e

    async def create(self, fields: Dict[str, Any]) -> str:
        """Create one record; returns the store-assigned record id."""
        body = await self._request("POST", json={"records": [{"fields": fields}]})
        records = body.get("records") or []
        if not records or not records[0].get("id"):
            raise StoreRejected(f"Create on {self.table} returned no record id")
        return records[0]["id"]

    async def update(self, record_id: str, fields: Dict[str, Any]) -> None:
        """Patch only the given fields of one record."""
        await self._request("PATCH", json={"records": [{"id": record_id, "fields": fields}]})

    async def select(self, max_records: int, formula: Optional[str] = None,
                     view: Optional[str] = None) -> List[PriceRecord]:
        """Read up to `max_records` rows in store order, following pagination."""
        params: Dict[str, Any] = {"maxRecords": max_records}
        if formula:
            params["filterByFormula"] = formula
        if view:
            params["view"] = view

        out: List[PriceRecord] = []
        while True:
            body = await self._request("GET", params=params)
            for row in body.get("records") or []:
                out.append(PriceRecord.from_store(row))
            offset = body.get("offset")
            if not offset or len(out) >= max_records:
                break
            params = {**params, "offset": offset}
        return out[:max_records]

    async def find_by_symbol(self, symbol: str, limit: int = 2) -> List[PriceRecord]:
        return await self.select(limit, formula=symbol_formula(symbol))
