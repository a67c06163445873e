from __future__ import annotations

import asyncio
from pathlib import Path

import typer

from product_tags.entrypoints.common import open_record_store, resolve_parameters
from product_tags.keyword_cache import KeywordCache, KeywordFetchError
from product_tags.record_store import StaticRecordStore, WebApiRecordStore


def run_keywords(*, table: str | None, column: str | None, records: Path | None) -> None:
    parameters = resolve_parameters(table=table, column=column)
    if not parameters.keyword_source.enabled:
        raise typer.BadParameter("Both --table and --column are required (or set them under widget: in the config).")

    store = open_record_store(records=records)
    try:
        keywords = asyncio.run(_load_keywords(store, parameters.table_name, parameters.keywords_field))
    except KeywordFetchError as exc:
        raise typer.BadParameter(str(exc)) from exc

    if not keywords:
        typer.echo(f"No keywords found in {parameters.table_name}.{parameters.keywords_field}", err=True)
        return
    for keyword in sorted(keywords):
        typer.echo(keyword)


async def _load_keywords(
    store: WebApiRecordStore | StaticRecordStore,
    table: str | None,
    column: str | None,
) -> frozenset[str]:
    cache = KeywordCache(store)
    try:
        await cache.load(table, column)
    finally:
        await store.aclose()
    return cache.keywords
