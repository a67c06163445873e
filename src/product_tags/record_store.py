from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol
from urllib.parse import parse_qs, urlparse

import httpx
import yaml

logger = logging.getLogger(__name__)

_ODATA_HEADERS = {
    "Accept": "application/json",
    "OData-MaxVersion": "4.0",
    "OData-Version": "4.0",
}


class RecordStoreError(RuntimeError):
    pass


class RecordStore(Protocol):
    async def retrieve_multiple_records(self, entity_type: str, options: str = "") -> list[dict[str, Any]]: ...


@dataclass(frozen=True)
class RecordStoreSettings:
    base_url: str
    token: str | None = None
    api_version: str = "9.2"
    timeout_seconds: float = 30.0
    max_pages: int = 10


def build_select_query(column: str) -> str:
    return f"?$select={column}"


class WebApiRecordStore:
    """Read-only client for an OData Web API (Dataverse style)."""

    def __init__(
        self,
        settings: RecordStoreSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not settings.base_url.strip():
            raise RecordStoreError("Record store base_url is not configured.")
        self._api_root = f"{settings.base_url.rstrip('/')}/api/data/v{settings.api_version}"
        try:
            self._origin = httpx.URL(self._api_root)
        except httpx.InvalidURL as exc:
            raise RecordStoreError(f"Invalid record store base_url: {exc}") from exc
        self._max_pages = max(1, settings.max_pages)
        headers = dict(_ODATA_HEADERS)
        if settings.token:
            headers["Authorization"] = f"Bearer {settings.token}"
        self._client = httpx.AsyncClient(
            headers=headers,
            timeout=settings.timeout_seconds,
            follow_redirects=True,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> WebApiRecordStore:
        return self

    async def __aexit__(self, exc_type: object, exc: object, tb: object) -> None:
        await self.aclose()

    async def retrieve_multiple_records(self, entity_type: str, options: str = "") -> list[dict[str, Any]]:
        entity = entity_type.strip()
        if not entity or "/" in entity:
            raise RecordStoreError(f"Invalid entity type: {entity_type!r}")
        url: str | None = f"{self._api_root}/{entity}{options}"
        records: list[dict[str, Any]] = []
        pages = 0
        while url is not None and pages < self._max_pages:
            payload = await _request_json(self._client, "GET", url)
            records.extend(_parse_records(payload))
            url = _next_link(payload)
            if url is not None:
                self._check_next_link(url)
            pages += 1
        if url is not None:
            logger.warning("Stopped reading %s after %d pages", entity, pages)
        return records

    def _check_next_link(self, link: str) -> None:
        # Every request carries the token; only follow links on the configured origin.
        try:
            target = httpx.URL(link)
        except httpx.InvalidURL as exc:
            raise RecordStoreError(f"Record store returned an invalid next link: {exc}") from exc
        if target.scheme != self._origin.scheme or target.netloc != self._origin.netloc:
            raise RecordStoreError(f"Record store next link points to another host: {target.host}")


class StaticRecordStore:
    """In-memory record store keyed by table name."""

    def __init__(self, tables: Mapping[str, Sequence[Mapping[str, Any]]]) -> None:
        self._tables = {name: [dict(record) for record in records] for name, records in tables.items()}

    async def aclose(self) -> None:
        return None

    async def retrieve_multiple_records(self, entity_type: str, options: str = "") -> list[dict[str, Any]]:
        records = self._tables.get(entity_type)
        if records is None:
            raise RecordStoreError(f"Table not found: {entity_type}")
        columns = _selected_columns(options)
        if not columns:
            return [dict(record) for record in records]
        return [{column: record.get(column) for column in columns} for record in records]


def load_static_records(path: Path) -> StaticRecordStore:
    try:
        loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise RecordStoreError(f"Failed to read records file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise RecordStoreError(f"Invalid YAML at {path}: {exc}") from exc

    if loaded is None:
        return StaticRecordStore({})
    if not isinstance(loaded, Mapping):
        raise RecordStoreError(f"Expected mapping of table -> records at {path}")

    tables: dict[str, list[dict[str, Any]]] = {}
    for name, records in loaded.items():
        if not isinstance(records, Sequence) or isinstance(records, (str, bytes, bytearray)):
            raise RecordStoreError(f"Expected a list of records for table {name!r} in {path}")
        rows: list[dict[str, Any]] = []
        for record in records:
            if not isinstance(record, Mapping):
                raise RecordStoreError(f"Expected mapping records for table {name!r} in {path}")
            rows.append({str(key): value for key, value in record.items()})
        tables[str(name)] = rows
    return StaticRecordStore(tables)


async def _request_json(client: httpx.AsyncClient, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
    try:
        response = await client.request(method, url, **kwargs)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise RecordStoreError(f"Record store request failed: {exc}") from exc

    try:
        payload = response.json()
    except ValueError as exc:
        raise RecordStoreError(f"Record store returned invalid JSON (status {response.status_code}).") from exc

    if response.status_code >= 400:
        message = _extract_error_message(payload) or f"HTTP {response.status_code}"
        raise RecordStoreError(f"Record store error ({response.status_code}): {message}")
    if not isinstance(payload, Mapping):
        raise RecordStoreError("Record store response is not a JSON object.")
    return dict(payload)


def _extract_error_message(payload: object) -> str | None:
    if not isinstance(payload, Mapping):
        return None
    error = payload.get("error")
    if isinstance(error, Mapping):
        message = error.get("message")
        if isinstance(message, str) and message.strip():
            return message.strip()
    for key in ("error", "message", "detail"):
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _parse_records(payload: Mapping[str, Any]) -> list[dict[str, Any]]:
    raw = payload.get("value")
    if not isinstance(raw, Sequence) or isinstance(raw, (str, bytes, bytearray)):
        raise RecordStoreError("Record store response missing 'value' list.")
    return [dict(item) for item in raw if isinstance(item, Mapping)]


def _next_link(payload: Mapping[str, Any]) -> str | None:
    link = payload.get("@odata.nextLink")
    if isinstance(link, str) and link.strip():
        return link.strip()
    return None


def _selected_columns(options: str) -> list[str]:
    query = urlparse(options).query if options.startswith("?") else options
    values = parse_qs(query).get("$select", [])
    columns: list[str] = []
    for value in values:
        columns.extend(part.strip() for part in value.split(",") if part.strip())
    return columns
