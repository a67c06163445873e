from pathlib import Path
from typing import Annotated

import typer

app = typer.Typer(add_completion=False)


@app.callback()
def main_callback(
    *,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
) -> None:
    """Keyword-validated product tags."""
    from product_tags.entrypoints.common import configure_logging

    configure_logging(verbose=verbose)


@app.command()
def version() -> None:
    """Print version."""
    from product_tags import __version__

    typer.echo(__version__)


@app.command()
def keywords(
    *,
    table: Annotated[str | None, typer.Option(help="Table to read keywords from (default: config).")] = None,
    column: Annotated[str | None, typer.Option(help="Column holding comma-separated keywords.")] = None,
    records: Annotated[
        Path | None,
        typer.Option(
            exists=True,
            dir_okay=False,
            help="YAML file of table -> records to use instead of the Web API.",
        ),
    ] = None,
) -> None:
    """Load and print the allowed keyword set."""
    from product_tags.entrypoints.keywords import run_keywords

    run_keywords(table=table, column=column, records=records)


@app.command()
def check(
    tags: Annotated[list[str], typer.Argument(help="Candidate tags, added in order.")],
    *,
    table: Annotated[str | None, typer.Option(help="Table to read keywords from (default: config).")] = None,
    column: Annotated[str | None, typer.Option(help="Column holding comma-separated keywords.")] = None,
    existing: Annotated[
        str | None,
        typer.Option("--existing", help="Comma-separated tags already stored on the record."),
    ] = None,
    records: Annotated[
        Path | None,
        typer.Option(
            exists=True,
            dir_okay=False,
            help="YAML file of table -> records to use instead of the Web API.",
        ),
    ] = None,
) -> None:
    """Add tags one by one and print the resulting tags field."""
    from product_tags.entrypoints.check import run_check

    run_check(tags=tags, table=table, column=column, existing=existing, records=records)


@app.command()
def serve(
    *,
    table: Annotated[str | None, typer.Option(help="Table to read keywords from (default: config).")] = None,
    column: Annotated[str | None, typer.Option(help="Column holding comma-separated keywords.")] = None,
    existing: Annotated[
        str | None,
        typer.Option("--existing", help="Comma-separated tags already stored on the record."),
    ] = None,
    records: Annotated[
        Path | None,
        typer.Option(
            exists=True,
            dir_okay=False,
            help="YAML file of table -> records to use instead of the Web API.",
        ),
    ] = None,
    browser: Annotated[bool, typer.Option(help="Open the widget in a browser.")] = True,
) -> None:
    """Launch the tags widget in a local web page."""
    from product_tags.entrypoints.serve import run_serve

    run_serve(table=table, column=column, existing=existing, records=records, open_browser=browser)


def main() -> None:
    app()
