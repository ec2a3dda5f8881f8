from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

"""Merged result models produced by the merge/cache service."""

__all__ = [
    "MergeStats",
    "MergedResult",
]


@dataclass(frozen=True)
class MergeStats:
    size: int = 0  # len(csv)
    lines: int = 0  # total + 1 header line, 0 when degraded
    historical: int = 0
    current: int = 0
    total: int = 0
    sources: dict[str, int] = field(default_factory=dict)  # label -> rows, merge order
    degraded: bool = False

    def to_dict(self) -> dict[str, Any]:
        if self.degraded:
            return {"size": 0, "lines": 0}
        return {
            "size": self.size,
            "lines": self.lines,
            "historical": self.historical,
            "current": self.current,
            "total": self.total,
            "sources": dict(self.sources),
        }


@dataclass(frozen=True)
class MergedResult:
    """Cached, derived view over current + historical rows.

    ``timestamp`` is the clock value (seconds) at computation time and
    ``etag`` is ``"<timestamp ms>-<total>"``; neither is a content hash.
    ``rows`` is kept for in-process consumers (metrics) and is not part of
    the wire payload.
    """
    csv: str
    last_updated: str | None
    stats: MergeStats
    timestamp: float
    etag: str | None
    rows: list[dict[str, str]] = field(default_factory=list, repr=False)

    @property
    def degraded(self) -> bool:
        return self.stats.degraded

    def to_payload(self) -> dict[str, Any]:
        return {"csv": self.csv, "lastUpdated": self.last_updated, "stats": self.stats.to_dict()}

    @classmethod
    def empty(cls, timestamp: float) -> MergedResult:
        return cls(csv="", last_updated=None, stats=MergeStats(degraded=True), timestamp=timestamp, etag=None)
