from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path

import httpx
import pytest

from product_tags.record_store import (
    RecordStoreError,
    RecordStoreSettings,
    StaticRecordStore,
    WebApiRecordStore,
    build_select_query,
    load_static_records,
)

_SETTINGS = RecordStoreSettings(base_url="https://org.example.com/", token="secret", max_pages=3)


def _store(transport: httpx.MockTransport | None = None, *, max_pages: int = 3) -> WebApiRecordStore:
    return WebApiRecordStore(replace(_SETTINGS, max_pages=max_pages), transport=transport)


def test_build_select_query() -> None:
    assert build_select_query("keywords") == "?$select=keywords"


@pytest.mark.asyncio
async def test_retrieve_multiple_records_reads_value_list() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"value": [{"keywords": "red"}, {"keywords": "blue"}, "junk"]})

    async with _store(httpx.MockTransport(handler)) as store:
        records = await store.retrieve_multiple_records("products", "?$select=keywords")

    assert records == [{"keywords": "red"}, {"keywords": "blue"}]
    request = seen[0]
    assert request.url.path == "/api/data/v9.2/products"
    assert request.url.params["$select"] == "keywords"
    assert request.headers["Authorization"] == "Bearer secret"
    assert request.headers["OData-Version"] == "4.0"


@pytest.mark.asyncio
async def test_retrieve_follows_next_link() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if "page2" in str(request.url):
            return httpx.Response(200, json={"value": [{"keywords": "b"}]})
        return httpx.Response(
            200,
            json={
                "value": [{"keywords": "a"}],
                "@odata.nextLink": "https://org.example.com/api/data/v9.2/products?page2=1",
            },
        )

    async with _store(httpx.MockTransport(handler)) as store:
        records = await store.retrieve_multiple_records("products")

    assert records == [{"keywords": "a"}, {"keywords": "b"}]


@pytest.mark.asyncio
async def test_retrieve_stops_after_max_pages() -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(str(request.url))
        return httpx.Response(
            200,
            json={"value": [{"n": len(calls)}], "@odata.nextLink": f"https://org.example.com/next/{len(calls)}"},
        )

    async with _store(httpx.MockTransport(handler), max_pages=2) as store:
        records = await store.retrieve_multiple_records("products")

    assert len(calls) == 2
    assert records == [{"n": 1}, {"n": 2}]


@pytest.mark.asyncio
async def test_next_link_to_another_host_is_not_followed() -> None:
    seen: list[tuple[str, str | None]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.url.host, request.headers.get("Authorization")))
        return httpx.Response(
            200,
            json={"value": [{"keywords": "a"}], "@odata.nextLink": "https://elsewhere.example/collect"},
        )

    async with _store(httpx.MockTransport(handler)) as store:
        with pytest.raises(RecordStoreError, match="another host: elsewhere.example"):
            await store.retrieve_multiple_records("products")

    assert seen == [("org.example.com", "Bearer secret")]


@pytest.mark.asyncio
async def test_malformed_next_link_is_an_error() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"value": [{"keywords": "a"}], "@odata.nextLink": "http://[::1/x"})

    async with _store(httpx.MockTransport(handler)) as store:
        with pytest.raises(RecordStoreError, match="invalid next link"):
            await store.retrieve_multiple_records("products")


@pytest.mark.asyncio
async def test_http_error_uses_server_message() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"error": {"code": "0x80060888", "message": "Resource not found for segment"}})

    async with _store(httpx.MockTransport(handler)) as store:
        with pytest.raises(RecordStoreError, match=r"404.*Resource not found for segment"):
            await store.retrieve_multiple_records("missing")


@pytest.mark.asyncio
async def test_invalid_json_is_an_error() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"<html>login</html>")

    async with _store(httpx.MockTransport(handler)) as store:
        with pytest.raises(RecordStoreError, match="invalid JSON"):
            await store.retrieve_multiple_records("products")


@pytest.mark.asyncio
async def test_missing_value_list_is_an_error() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=json.dumps({"items": []}).encode())

    async with _store(httpx.MockTransport(handler)) as store:
        with pytest.raises(RecordStoreError, match="missing 'value'"):
            await store.retrieve_multiple_records("products")


@pytest.mark.asyncio
async def test_transport_error_is_wrapped() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _store(httpx.MockTransport(handler)) as store:
        with pytest.raises(RecordStoreError, match="request failed"):
            await store.retrieve_multiple_records("products")


@pytest.mark.asyncio
async def test_invalid_entity_type_is_rejected() -> None:
    async with _store() as store:
        with pytest.raises(RecordStoreError, match="Invalid entity type"):
            await store.retrieve_multiple_records("../accounts")


def test_missing_base_url_is_rejected() -> None:
    with pytest.raises(RecordStoreError, match="base_url"):
        WebApiRecordStore(RecordStoreSettings(base_url=" "))


def test_malformed_base_url_is_rejected() -> None:
    with pytest.raises(RecordStoreError, match="Invalid record store base_url"):
        WebApiRecordStore(RecordStoreSettings(base_url="https://[::1"))


@pytest.mark.asyncio
async def test_static_store_projects_selected_columns() -> None:
    store = StaticRecordStore({"products": [{"name": "Shirt", "keywords": "red"}, {"name": "Hat"}]})

    records = await store.retrieve_multiple_records("products", "?$select=keywords")

    assert records == [{"keywords": "red"}, {"keywords": None}]


@pytest.mark.asyncio
async def test_static_store_unknown_table() -> None:
    store = StaticRecordStore({})
    with pytest.raises(RecordStoreError, match="Table not found"):
        await store.retrieve_multiple_records("products")


@pytest.mark.asyncio
async def test_load_static_records_from_yaml(tmp_path: Path) -> None:
    path = tmp_path / "records.yaml"
    path.write_text("products:\n  - keywords: Red, Blue\n  - keywords: green\n", encoding="utf-8")

    store = load_static_records(path)
    records = await store.retrieve_multiple_records("products")

    assert records == [{"keywords": "Red, Blue"}, {"keywords": "green"}]


@pytest.mark.parametrize(
    ("content", "message"),
    [
        ("- a\n- b\n", "Expected mapping"),
        ("products: nope\n", "Expected a list of records"),
        ("products:\n  - just a string\n", "Expected mapping records"),
        ("products: [\n", "Invalid YAML"),
    ],
)
def test_load_static_records_rejects_bad_shapes(tmp_path: Path, content: str, message: str) -> None:
    path = tmp_path / "records.yaml"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(RecordStoreError, match=message):
        load_static_records(path)
