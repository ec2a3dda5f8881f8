from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

"""On-disk sheet documents.

Three document shapes live in the data directory:

- RawSheetDocument: downloaded CSV text plus size/line stats (current metadata)
- ParsedSheetDocument: headers + row mappings for the current snapshot
- HistoricalArchive: frozen, pre-parsed rows from an older sheet

JSON keys stay camelCase (``lastUpdated``) so files written by earlier
deployments keep loading.
"""

__all__ = [
    "Row",
    "RawSheetStats",
    "RawSheetDocument",
    "ParsedSheetDocument",
    "HistoricalArchive",
]

Row = dict[str, str]


def _rows_list(data: dict[str, Any], what: str) -> list[Row]:
    """Return ``data["rows"]``; raises ValueError unless it is a list of objects."""
    rows = data.get("rows")
    if not isinstance(rows, list):
        raise ValueError(f"{what} has no 'rows' list")
    for i, row in enumerate(rows):
        if not isinstance(row, dict):
            raise ValueError(f"{what} row {i} is {type(row).__name__}, expected an object")
    return rows


@dataclass(frozen=True)
class RawSheetStats:
    size: int  # len(csv)
    lines: int  # non-trimmed line count of the downloaded text
    rows: int | None = None  # parsed data rows, when known

    def to_dict(self) -> dict[str, int]:
        out = {"size": self.size, "lines": self.lines}
        if self.rows is not None:
            out["rows"] = self.rows
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> RawSheetStats:
        data = data or {}
        rows = data.get("rows")
        return cls(
            size=int(data.get("size") or 0),
            lines=int(data.get("lines") or 0),
            rows=int(rows) if rows is not None else None,
        )


@dataclass(frozen=True)
class RawSheetDocument:
    csv: str
    last_updated: str | None
    stats: RawSheetStats

    def to_dict(self) -> dict[str, Any]:
        return {"csv": self.csv, "lastUpdated": self.last_updated, "stats": self.stats.to_dict()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RawSheetDocument:
        return cls(
            csv=data.get("csv") or "",
            last_updated=data.get("lastUpdated"),
            stats=RawSheetStats.from_dict(data.get("stats")),
        )


@dataclass(frozen=True)
class ParsedSheetDocument:
    headers: list[str]
    rows: list[Row]
    last_updated: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"headers": list(self.headers), "rows": self.rows, "lastUpdated": self.last_updated}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ParsedSheetDocument:
        rows = _rows_list(data, "parsed document")
        headers = data.get("headers")
        if not isinstance(headers, list):
            headers = list(rows[0].keys()) if rows else []
        return cls(headers=[str(h) for h in headers], rows=rows, last_updated=data.get("lastUpdated"))


@dataclass(frozen=True)
class HistoricalArchive:
    rows: list[Row]
    headers: list[str] = field(default_factory=list)
    source: str | None = None
    downloaded_at: str | None = None
    stats: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "downloadedAt": self.downloaded_at,
            "stats": self.stats,
            "headers": list(self.headers),
            "rows": self.rows,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HistoricalArchive:
        rows = _rows_list(data, "archive")
        headers = data.get("headers")
        return cls(
            rows=rows,
            headers=[str(h) for h in headers] if isinstance(headers, list) else [],
            source=data.get("source"),
            downloaded_at=data.get("downloadedAt"),
            stats=data.get("stats") or {},
        )
