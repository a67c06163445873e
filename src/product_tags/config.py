from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from product_tags.models import WidgetParameters
from product_tags.record_store import RecordStoreSettings


class ConfigError(RuntimeError):
    pass


@dataclass(frozen=True)
class AppConfig:
    record_store: RecordStoreSettings
    widget: WidgetParameters = field(default_factory=WidgetParameters)
    source: str = "defaults"


_DEFAULT_BASE_URL = ""
_DEFAULT_API_VERSION = "9.2"
_DEFAULT_TIMEOUT_SECONDS = 30.0
_DEFAULT_MAX_PAGES = 10


def global_config_path() -> Path:
    override = os.environ.get("PRODUCT_TAGS_CONFIG")
    if override:
        return Path(override).expanduser()
    root = os.environ.get("XDG_CONFIG_HOME")
    if root:
        base = Path(root)
    else:
        base = Path.home() / ".config"
    return base / "product-tags" / "config.yaml"


def load_app_config(*, path: Path | None = None) -> AppConfig:
    config_path = path or global_config_path()
    data = _load_yaml_mapping(config_path)

    store_raw = _extract_section(data, "record_store", source=config_path)
    widget_raw = _extract_section(data, "widget", source=config_path)

    settings = _parse_record_store_settings(store_raw, source=config_path)
    try:
        widget = WidgetParameters.model_validate(dict(widget_raw))
    except ValidationError as exc:
        raise ConfigError(f"Invalid widget section in {config_path}: {exc}") from exc

    source = str(config_path) if config_path.exists() else "defaults"
    return AppConfig(record_store=settings, widget=widget, source=source)


def _load_yaml_mapping(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML at {path}: {exc}") from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"Expected mapping YAML at {path}")
    return dict(loaded)


def _extract_section(data: Mapping[str, Any], key: str, *, source: Path) -> Mapping[str, Any]:
    raw = data.get(key)
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise ConfigError(f"Expected mapping for {key} in {source}")
    return raw


def _parse_record_store_settings(raw: Mapping[str, Any], *, source: Path) -> RecordStoreSettings:
    base_url = os.environ.get("PRODUCT_TAGS_BASE_URL") or _optional_str(
        raw.get("base_url"),
        key="base_url",
        source=source,
    )
    api_version = _optional_str(raw.get("api_version"), key="api_version", source=source)
    timeout_seconds = _optional_number(raw.get("timeout_seconds"), key="timeout_seconds", source=source)
    max_pages = _optional_number(raw.get("max_pages"), key="max_pages", source=source)
    if "token" in raw:
        raise ConfigError(f"Do not store tokens in {source}; set PRODUCT_TAGS_TOKEN instead.")

    return RecordStoreSettings(
        base_url=base_url or _DEFAULT_BASE_URL,
        token=os.environ.get("PRODUCT_TAGS_TOKEN") or None,
        api_version=api_version or _DEFAULT_API_VERSION,
        timeout_seconds=float(timeout_seconds) if timeout_seconds is not None else _DEFAULT_TIMEOUT_SECONDS,
        max_pages=int(max_pages) if max_pages is not None else _DEFAULT_MAX_PAGES,
    )


def _optional_str(value: object, *, key: str, source: Path) -> str | None:
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        # Unquoted YAML versions like 9.2 parse as floats.
        return str(value)
    if not isinstance(value, str):
        raise ConfigError(f"Expected string for record_store.{key} in {source}")
    stripped = value.strip()
    return stripped or None


def _optional_number(value: object, *, key: str, source: Path) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigError(f"Expected positive number for record_store.{key} in {source}")
    return float(value)
