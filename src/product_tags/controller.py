from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from product_tags.keyword_cache import KeywordCache, KeywordFetchError
from product_tags.tag_parsing import format_tag_field, parse_tag_field

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "Product not found with the specified keyword"


class AddStatus(StrEnum):
    added = "added"
    duplicate = "duplicate"
    rejected = "rejected"
    ignored = "ignored"


@dataclass(frozen=True)
class AddOutcome:
    status: AddStatus
    candidate: str
    message: str | None = None
    fetch_error: str | None = None

    @property
    def accepted(self) -> bool:
        return self.status in (AddStatus.added, AddStatus.duplicate)


@dataclass(frozen=True)
class KeywordSource:
    table: str | None = None
    column: str | None = None

    @property
    def enabled(self) -> bool:
        return bool(self.table and self.column)


class TagListController:
    """Ordered, duplicate-free tag list whose additions are checked against a ``KeywordCache``."""

    def __init__(
        self,
        cache: KeywordCache,
        *,
        source: KeywordSource | None = None,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self.cache = cache
        self.source = source or KeywordSource()
        self.on_change = on_change
        self._tags: list[str] = []

    @property
    def tags(self) -> tuple[str, ...]:
        return tuple(self._tags)

    def __len__(self) -> int:
        return len(self._tags)

    def initialize(self, raw_csv: str | None) -> None:
        # Persisted tags are trusted: no keyword check, no dedup.
        self._tags = parse_tag_field(raw_csv)

    async def add_candidate(self, text: str) -> AddOutcome:
        candidate = text.strip()
        if not candidate:
            return AddOutcome(status=AddStatus.ignored, candidate=candidate)

        fetch_error: str | None = None
        if self.cache.is_empty():
            try:
                await self.cache.load(self.source.table, self.source.column)
            except KeywordFetchError as exc:
                logger.warning("%s", exc)
                fetch_error = str(exc)

        if not self.cache.is_valid(candidate):
            return AddOutcome(
                status=AddStatus.rejected,
                candidate=candidate,
                message=NOT_FOUND_MESSAGE,
                fetch_error=fetch_error,
            )

        if candidate in self._tags:
            return AddOutcome(status=AddStatus.duplicate, candidate=candidate, fetch_error=fetch_error)

        self._tags.append(candidate)
        self._notify()
        return AddOutcome(status=AddStatus.added, candidate=candidate, fetch_error=fetch_error)

    def remove_at(self, index: int) -> str:
        if not 0 <= index < len(self._tags):
            raise IndexError(f"Tag index {index} out of range for {len(self._tags)} tags")
        removed = self._tags.pop(index)
        self._notify()
        return removed

    def serialize(self) -> str:
        return format_tag_field(self._tags)

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change()
