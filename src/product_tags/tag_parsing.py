from __future__ import annotations

from collections.abc import Iterable, Sequence

FIELD_SEPARATOR = ","


def parse_tag_field(text: str | None) -> list[str]:
    if text is None:
        return []
    return [value for value in (part.strip() for part in text.split(FIELD_SEPARATOR)) if value]


def format_tag_field(tags: Sequence[str]) -> str:
    # Embedded commas are not escaped; they split into separate tags on re-read.
    return FIELD_SEPARATOR.join(tags)


def normalize_keyword(text: str) -> str:
    return text.strip().lower()


def split_keyword_fragments(value: str) -> list[str]:
    out: list[str] = []
    for raw in value.split(FIELD_SEPARATOR):
        keyword = normalize_keyword(raw)
        if keyword:
            out.append(keyword)
    return out


def collect_keywords(values: Iterable[object]) -> set[str]:
    """Union of the keyword fragments of every string value; other values are skipped."""
    keywords: set[str] = set()
    for value in values:
        if not isinstance(value, str):
            continue
        keywords.update(split_keyword_fragments(value))
    return keywords
