from __future__ import annotations

import asyncio
from collections.abc import Sequence
from pathlib import Path

import typer

from product_tags.controller import AddOutcome, AddStatus
from product_tags.entrypoints.common import open_record_store, resolve_parameters
from product_tags.models import WidgetParameters
from product_tags.record_store import StaticRecordStore, WebApiRecordStore
from product_tags.widget import OUTPUT_FIELD, ProductTagsWidget


def run_check(
    *,
    tags: Sequence[str],
    table: str | None,
    column: str | None,
    existing: str | None,
    records: Path | None,
) -> None:
    parameters = resolve_parameters(table=table, column=column, existing=existing)
    store = open_record_store(records=records)
    outcomes, output = asyncio.run(_run_widget(store, parameters, tags))

    for outcome in outcomes:
        typer.echo(_format_outcome(outcome))
        if outcome.fetch_error:
            typer.echo(f"  {outcome.fetch_error}", err=True)
    typer.echo(f"{OUTPUT_FIELD}: {output[OUTPUT_FIELD]}")

    if any(outcome.status == AddStatus.rejected for outcome in outcomes):
        raise typer.Exit(code=1)


async def _run_widget(
    store: WebApiRecordStore | StaticRecordStore,
    parameters: WidgetParameters,
    tags: Sequence[str],
) -> tuple[list[AddOutcome], dict[str, str]]:
    widget = ProductTagsWidget(store)
    widget.initialize(parameters, lambda: None)
    outcomes: list[AddOutcome] = []
    try:
        for tag in tags:
            outcomes.append(await widget.add_tag(tag))
    finally:
        widget.dispose()
        await store.aclose()
    return outcomes, widget.current_output()


def _format_outcome(outcome: AddOutcome) -> str:
    label = outcome.candidate or "(empty)"
    if outcome.status == AddStatus.rejected:
        return f"rejected {label}: {outcome.message}"
    return f"{outcome.status.value} {label}"
