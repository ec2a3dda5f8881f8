from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from typing import Generic, TypeVar

from ..config.loader import ArchiveSource
from ..models.merged_result import MergedResult, MergeStats
from ..models.sheet_documents import ParsedSheetDocument, RawSheetDocument, Row
from ..sheets.csv_codec import to_csv
from ..store.local_store import ArchiveFound, DocumentNotFound, LocalStore, StoreError

"""Merge/cache service.

Per ``get_merged_data`` call:

1. cache check: a result younger than the TTL is returned as-is (no I/O)
2. load current parsed rows (required) and current metadata (optional,
   fallback for ``lastUpdated``)
3. load archives in configured order, each optional
4. merge: archive 1 rows, archive 2 rows, then current rows
5. regenerate CSV and stats
6. stamp ``timestamp`` / ``etag`` and publish to the cache

A missing or unreadable current document yields a degraded empty result
(never an exception) and is not cached. Writes by the sync orchestrator do
not invalidate the cache; new data shows up once the TTL has elapsed.
"""

logger = logging.getLogger(__name__)

CURRENT_LABEL = "Current"

T = TypeVar("T")


class TTLCache(Generic[T]):
    """Single-slot cache with an injectable clock (seconds)."""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.time) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self.value: T | None = None
        self.computed_at: float | None = None

    def get(self) -> T | None:
        if self.value is None or self.computed_at is None:
            return None
        if self._clock() - self.computed_at < self.ttl_seconds:
            return self.value
        return None

    def put(self, value: T, computed_at: float) -> None:
        # single assignment pair; concurrent misses simply overwrite each other
        self.value, self.computed_at = value, computed_at

    def clear(self) -> None:
        self.value, self.computed_at = None, None


def merge_headers(primary: Sequence[str], others: Sequence[Sequence[str]]) -> list[str]:
    headers = list(primary)
    seen = set(headers)
    for extra in others:
        for h in extra:
            if h not in seen:
                seen.add(h)
                headers.append(h)
    return headers


def _row_keys(rows: Sequence[Row]) -> list[str]:
    keys: dict[str, None] = {}
    for row in rows:
        for k in row:
            keys.setdefault(k, None)
    return list(keys)


class MergeCacheService:
    def __init__(
        self,
        store: LocalStore,
        archives: Sequence[ArchiveSource] = (),
        *,
        ttl_seconds: float = 10.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.archives = tuple(archives)
        self._clock = clock
        self.cache: TTLCache[MergedResult] = TTLCache(ttl_seconds, clock)

    def invalidate(self) -> None:
        self.cache.clear()

    def _load_current(self) -> tuple[ParsedSheetDocument, str | None]:
        parsed = ParsedSheetDocument.from_dict(self.store.read("current_parsed"))
        fallback: str | None = None
        try:
            fallback = RawSheetDocument.from_dict(self.store.read("current_metadata")).last_updated
        except StoreError as e:
            logger.debug(f"current metadata unavailable: {e}")
        return parsed, parsed.last_updated or fallback

    def get_merged_data(self) -> MergedResult:
        cached = self.cache.get()
        if cached is not None:
            return cached

        try:
            current, last_updated = self._load_current()
        except DocumentNotFound as e:
            logger.error(f"current sheet data missing, serving empty result: {e}")
            return MergedResult.empty(self._clock())
        except (StoreError, ValueError) as e:
            logger.error(f"current sheet data unreadable, serving empty result: {e}")
            return MergedResult.empty(self._clock())

        merged: list[Row] = []
        sources: dict[str, int] = {}
        archive_headers: list[list[str]] = []
        for source in self.archives:
            lookup = self.store.read_archive(source.key)
            if not isinstance(lookup, ArchiveFound):
                continue
            merged.extend(lookup.rows)
            sources[source.label] = len(lookup.rows)
            archive_headers.append(lookup.archive.headers or _row_keys(lookup.rows))
        historical = len(merged)

        merged.extend(current.rows)
        sources[CURRENT_LABEL] = len(current.rows)

        headers = merge_headers(current.headers, archive_headers)
        csv_text = to_csv(headers, merged)
        total = len(merged)
        stats = MergeStats(
            size=len(csv_text),
            lines=total + 1,
            historical=historical,
            current=len(current.rows),
            total=total,
            sources=sources,
        )

        now = self._clock()
        result = MergedResult(
            csv=csv_text,
            last_updated=last_updated,
            stats=stats,
            timestamp=now,
            etag=f"{int(now * 1000)}-{total}",
            rows=merged,
        )
        self.cache.put(result, now)
        logger.info(f"merged data rebuilt: historical={historical} current={len(current.rows)} total={total}")
        return result
