import json

import httpx
import pytest

from coin_mirror.errors import StoreRejected, StoreUnavailable
from coin_mirror.store import AirtableStore, symbol_formula

API = "https://api.airtable.test/v0"


def _store(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return AirtableStore(client, API, "appBASE", "Coins", "tok", timeout=5)


def _row(record_id, symbol, price):
    return {"id": record_id, "createdTime": "2024-01-01T00:00:00.000Z",
            "fields": {"name": symbol.upper(), "symbol": symbol,
                       "current_price": price, "market_cap": 10}}


@pytest.mark.asyncio
async def test_create_posts_fields_and_returns_record_id():
    seen = {}

    def handler(request: httpx.Request):
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"records": [_row("recABC", "btc", 1)]})

    fields = {"name": "Bitcoin", "symbol": "btc", "current_price": 1, "market_cap": 10}
    record_id = await _store(handler).create(fields)

    assert record_id == "recABC"
    assert seen["method"] == "POST"
    assert seen["path"] == "/v0/appBASE/Coins"
    assert seen["auth"] == "Bearer tok"
    assert seen["body"] == {"records": [{"fields": fields}]}


@pytest.mark.asyncio
async def test_update_patches_only_given_fields():
    seen = {}

    def handler(request: httpx.Request):
        seen["method"] = request.method
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"records": [_row("rec1", "btc", 51000)]})

    await _store(handler).update("rec1", {"current_price": 51000})

    assert seen["method"] == "PATCH"
    assert seen["body"] == {"records": [{"id": "rec1", "fields": {"current_price": 51000}}]}


@pytest.mark.asyncio
async def test_select_follows_offset_until_max_records():
    calls = []

    def handler(request: httpx.Request):
        params = dict(request.url.params)
        calls.append(params)
        if "offset" not in params:
            return httpx.Response(200, json={"records": [_row("rec1", "btc", 1)], "offset": "itr2"})
        return httpx.Response(200, json={"records": [_row("rec2", "eth", 2), _row("rec3", "sol", 3)]})

    records = await _store(handler).select(2, view="Grid view")

    assert [r.record_id for r in records] == ["rec1", "rec2"]
    assert calls[0] == {"maxRecords": "2", "view": "Grid view"}
    assert calls[1]["offset"] == "itr2"
    assert records[1].symbol == "eth"
    assert records[1].current_price == 2


@pytest.mark.asyncio
async def test_find_by_symbol_sends_formula():
    seen = {}

    def handler(request: httpx.Request):
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"records": []})

    assert await _store(handler).find_by_symbol("btc") == []
    assert seen["params"] == {"maxRecords": "2", "filterByFormula": '{symbol} = "btc"'}


def test_symbol_formula_escapes_quotes():
    assert symbol_formula('a"b') == '{symbol} = "a\\"b"'
    assert symbol_formula("a\\b") == '{symbol} = "a\\\\b"'


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [429, 500, 503])
async def test_throttle_and_server_errors_are_unavailable(status):
    store = _store(lambda request: httpx.Response(status, json={"error": "SERVER_ERROR"}))
    with pytest.raises(StoreUnavailable):
        await store.update("rec1", {"current_price": 1})


@pytest.mark.asyncio
async def test_validation_error_is_rejected():
    body = {"error": {"type": "INVALID_VALUE_FOR_COLUMN", "message": "Field current_price cannot accept"}}
    store = _store(lambda request: httpx.Response(422, json=body))

    with pytest.raises(StoreRejected) as exc:
        await store.create({"current_price": "x"})

    assert exc.value.status_code == 422
    assert exc.value.error_type == "INVALID_VALUE_FOR_COLUMN"


@pytest.mark.asyncio
async def test_timeout_is_unavailable():
    def handler(request):
        raise httpx.ConnectTimeout("slow", request=request)

    with pytest.raises(StoreUnavailable):
        await _store(handler).select(20)


@pytest.mark.asyncio
async def test_create_without_record_id_is_rejected():
    store = _store(lambda request: httpx.Response(200, json={"records": []}))
    with pytest.raises(StoreRejected):
        await store.create({"symbol": "btc"})
