from __future__ import annotations

from pathlib import Path

import typer

from product_tags.entrypoints.common import open_record_store, resolve_parameters
from product_tags.entrypoints.widget_web import run_widget_web
from product_tags.widget import OUTPUT_FIELD, ProductTagsWidget


def run_serve(
    *,
    table: str | None,
    column: str | None,
    existing: str | None,
    records: Path | None,
    open_browser: bool,
) -> None:
    parameters = resolve_parameters(table=table, column=column, existing=existing)
    if not parameters.keyword_source.enabled:
        typer.echo("No table/column configured: every tag will be rejected.", err=True)

    store = open_record_store(records=records)
    output = run_widget_web(
        widget=ProductTagsWidget(store),
        parameters=parameters,
        on_close=store.aclose,
        open_browser=open_browser,
    )
    typer.echo(f"{OUTPUT_FIELD}: {output[OUTPUT_FIELD]}")
