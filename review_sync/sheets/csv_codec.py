from __future__ import annotations

import io
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import unquote

import pandas as pd

"""CSV <-> row conversion.

``to_csv`` re-serializes parsed rows (archives are stored pre-parsed) with a
minimal quoting rule: a field is quoted iff it contains a comma, a double
quote or a newline, and inner quotes are doubled. Lines are joined with
``\\n``; there is no trailing newline.

``parse_csv`` reads a downloaded sheet into header + row mappings with
pandas, treating every cell as text.
"""

__all__ = [
    "ParsedSheet",
    "quote_field",
    "to_csv",
    "parse_csv",
]

_NEEDS_QUOTES = (",", '"', "\n")
_AGENT_HEADER = re.compile(r"agent", re.I)
_URL_HEADER = re.compile(r"source|url|link|page", re.I)
_AGENT_PARAM = re.compile(r"[?&]agent=([^&]+)", re.I)


@dataclass
class ParsedSheet:
    headers: list[str] = field(default_factory=list)
    rows: list[dict[str, str]] = field(default_factory=list)


def quote_field(value: Any) -> str:
    text = "" if value is None else str(value)
    if any(ch in text for ch in _NEEDS_QUOTES):
        return '"' + text.replace('"', '""') + '"'
    return text


def to_csv(headers: Sequence[str], rows: Iterable[Mapping[str, Any]]) -> str:
    """Serialize ``rows`` in ``headers`` order; missing keys become empty fields."""
    lines = [",".join(quote_field(h) for h in headers)]
    for row in rows:
        lines.append(",".join(quote_field(row.get(h, "")) for h in headers))
    return "\n".join(lines)


def _agent_from_url(url: str) -> str | None:
    m = _AGENT_PARAM.search(unquote(url))
    if not m:
        return None
    agent = unquote(m.group(1))
    if agent.endswith("%21"):
        agent = agent[:-3]
    return agent.removesuffix("!")


def _normalize_agent(headers: list[str], row: dict[str, str]) -> None:
    agent_keys = [h for h in headers if _AGENT_HEADER.search(h)]
    if agent_keys:
        key = agent_keys[0]
        if key != "Agent":
            row["Agent"] = row.get(key, "")
        return
    url_key = next((h for h in headers if _URL_HEADER.search(h)), None)
    if url_key is None:
        return
    agent = _agent_from_url(row.get(url_key, ""))
    if agent:
        row["Agent"] = agent


def _read_frame(text: str, **kwargs: Any) -> pd.DataFrame:
    return pd.read_csv(
        io.StringIO(text),
        header=None,
        dtype=str,
        keep_default_na=False,
        na_filter=False,
        skip_blank_lines=True,
        index_col=False,
        skipinitialspace=True,
        engine="python",
        **kwargs,
    )


def parse_csv(text: str) -> ParsedSheet:
    """Parse sheet CSV text into headers and row dicts.

    - quoted fields may hold commas, doubled quotes and newlines
    - blank lines are skipped, cells are trimmed
    - empty header cells are named ``col_<index>``
    - short rows are padded with "", cells beyond the header are dropped
    - an ``Agent`` key is derived from an agent column or a URL ``agent=`` param

    ``parse_csv(to_csv(headers, rows))`` gives back ``rows`` except that
    leading/trailing spaces are lost and, with a single header, a row whose
    only value is "" serializes to a blank line and is dropped.
    """
    if not text or not text.strip():
        return ParsedSheet()

    try:
        head = _read_frame(text, nrows=1)
    except pd.errors.EmptyDataError:
        return ParsedSheet()
    width = head.shape[1]

    frame = _read_frame(text, on_bad_lines=lambda fields: fields[:width])
    frame = frame.fillna("")

    records = list(frame.itertuples(index=False, name=None))
    headers = [str(v).strip() or f"col_{i}" for i, v in enumerate(records[0])][:width]

    rows: list[dict[str, str]] = []
    for record in records[1:]:
        cells = [str(v).strip() for v in record]
        row: dict[str, str] = {}
        for j, key in enumerate(headers):
            row[key] = cells[j] if j < len(cells) else ""
        _normalize_agent(headers, row)
        rows.append(row)

    return ParsedSheet(headers=headers, rows=rows)
