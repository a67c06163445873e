from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from product_tags import __version__
from product_tags.entrypoints.cli import app


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("PRODUCT_TAGS_CONFIG", str(tmp_path / "config.yaml"))
    monkeypatch.delenv("PRODUCT_TAGS_BASE_URL", raising=False)


def _records_file(tmp_path: Path) -> Path:
    path = tmp_path / "records.yaml"
    path.write_text(
        "products:\n  - name: Shirt\n    keywords: Red, Blue\n  - name: Hat\n    keywords: green\n",
        encoding="utf-8",
    )
    return path


def test_cli_version() -> None:
    result = CliRunner().invoke(app, ["version"])
    assert result.exit_code == 0
    assert result.stdout.strip() == __version__


def test_cli_keywords_prints_sorted_set(tmp_path: Path) -> None:
    result = CliRunner().invoke(
        app,
        ["keywords", "--table", "products", "--column", "keywords", "--records", str(_records_file(tmp_path))],
    )

    assert result.exit_code == 0, result.stdout
    assert result.stdout.splitlines() == ["blue", "green", "red"]


def test_cli_keywords_uses_widget_config(tmp_path: Path) -> None:
    (tmp_path / "config.yaml").write_text("widget:\n  tableName: products\n  keywordsField: keywords\n")

    result = CliRunner().invoke(app, ["keywords", "--records", str(_records_file(tmp_path))])

    assert result.exit_code == 0, result.stdout
    assert "green" in result.stdout


def test_cli_keywords_requires_table_and_column(tmp_path: Path) -> None:
    result = CliRunner().invoke(app, ["keywords", "--records", str(_records_file(tmp_path))])
    assert result.exit_code != 0


def test_cli_keywords_unknown_table_fails(tmp_path: Path) -> None:
    result = CliRunner().invoke(
        app,
        ["keywords", "--table", "orders", "--column", "keywords", "--records", str(_records_file(tmp_path))],
    )
    assert result.exit_code != 0


def test_cli_check_accepts_valid_tags(tmp_path: Path) -> None:
    result = CliRunner().invoke(
        app,
        [
            "check",
            "Red",
            "green",
            "Red",
            "--table",
            "products",
            "--column",
            "keywords",
            "--existing",
            "legacy",
            "--records",
            str(_records_file(tmp_path)),
        ],
    )

    assert result.exit_code == 0, result.stdout
    assert "added Red" in result.stdout
    assert "duplicate Red" in result.stdout
    assert "tagsField: legacy,Red,green" in result.stdout


def test_cli_check_exits_nonzero_on_rejection(tmp_path: Path) -> None:
    result = CliRunner().invoke(
        app,
        [
            "check",
            "purple",
            "--table",
            "products",
            "--column",
            "keywords",
            "--records",
            str(_records_file(tmp_path)),
        ],
    )

    assert result.exit_code == 1
    assert "rejected purple: Product not found with the specified keyword" in result.stdout
    assert "tagsField: " in result.stdout


def test_cli_invalid_config_is_reported(tmp_path: Path) -> None:
    (tmp_path / "config.yaml").write_text("record_store: [\n")
    result = CliRunner().invoke(app, ["keywords", "--table", "products", "--column", "keywords"])
    assert result.exit_code != 0
