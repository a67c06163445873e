from __future__ import annotations

import logging
from pathlib import Path

import typer

from product_tags.config import AppConfig, ConfigError, load_app_config
from product_tags.models import WidgetParameters
from product_tags.record_store import RecordStoreError, StaticRecordStore, WebApiRecordStore, load_static_records

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(*, verbose: bool) -> None:
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format=_LOG_FORMAT)


def resolve_parameters(
    *,
    table: str | None,
    column: str | None,
    existing: str | None = None,
) -> WidgetParameters:
    """Merge command line values over the widget section of the config file."""
    defaults = _load_config().widget
    return defaults.merged({"tableName": table, "keywordsField": column, "tagsField": existing})


def open_record_store(*, records: Path | None) -> WebApiRecordStore | StaticRecordStore:
    try:
        if records is not None:
            return load_static_records(records)
        return WebApiRecordStore(_load_config().record_store)
    except RecordStoreError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _load_config() -> AppConfig:
    try:
        return load_app_config()
    except ConfigError as exc:
        raise typer.BadParameter(str(exc)) from exc
