from __future__ import annotations

import logging

from product_tags.record_store import RecordStore, RecordStoreError, build_select_query
from product_tags.tag_parsing import collect_keywords, normalize_keyword

logger = logging.getLogger(__name__)


class KeywordFetchError(RuntimeError):
    pass


class KeywordCache:
    """Normalized set of allowed keywords, filled from one column of a record store table."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store
        self._keywords: set[str] = set()
        self._loaded = False

    @property
    def keywords(self) -> frozenset[str]:
        return frozenset(self._keywords)

    @property
    def loaded(self) -> bool:
        return self._loaded

    def __len__(self) -> int:
        return len(self._keywords)

    async def load(self, source: str | None, column: str | None) -> None:
        """Replace the keyword set with the fragments of ``column`` across all records of ``source``.

        A missing table or column disables loading. On failure the previous
        keywords are kept and ``KeywordFetchError`` is raised.
        """
        if not source or not column:
            return

        try:
            records = await self._store.retrieve_multiple_records(source, build_select_query(column))
        except RecordStoreError as exc:
            raise KeywordFetchError(f"Error fetching keywords from {source}.{column}: {exc}") from exc

        # Build the new set before touching the current one.
        keywords = collect_keywords(record.get(column) for record in records)
        self._keywords.clear()
        self._keywords.update(keywords)
        self._loaded = True
        logger.debug("Loaded %d keywords from %s.%s", len(keywords), source, column)

    def is_valid(self, candidate: str) -> bool:
        return normalize_keyword(candidate) in self._keywords

    def is_empty(self) -> bool:
        return not self._keywords
