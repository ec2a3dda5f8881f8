from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import asdict, dataclass
from typing import Any

import pandas as pd

from ..models.sheet_documents import Row

"""Aggregate and per-agent review metrics over merged rows.

Ratings come from the first column whose name looks like a rating
(rating, or star/stars/score as a whole word); only whole ratings 1..5 are counted. Agents come
from the ``Agent`` key the CSV parser normalizes.
"""

_RATING_COLUMN = re.compile(r"rating|\bstars?\b|\bscore\b", re.I)
_DATE_COLUMN = re.compile(r"date|time|timestamp", re.I)
AGENT_KEY = "Agent"


@dataclass(frozen=True)
class MetricsSummary:
    star_1: int = 0
    star_2: int = 0
    star_3: int = 0
    star_4: int = 0
    star_5: int = 0
    total: int = 0
    avg_rating: float = 0.0
    percent_5_star: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AgentMetrics:
    agent_name: str
    summary: MetricsSummary
    last_review_date: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"agent_name": self.agent_name, **self.summary.to_dict(), "last_review_date": self.last_review_date}


def _find_column(columns: Sequence[str], pattern: re.Pattern[str], exclude: str | None = None) -> str | None:
    return next((c for c in columns if c != exclude and pattern.search(c)), None)


def _frame(rows: Sequence[Row]) -> pd.DataFrame:
    return pd.DataFrame.from_records(list(rows)) if rows else pd.DataFrame()


def _summarize(ratings: pd.Series) -> MetricsSummary:
    valid = ratings[ratings.isin([1, 2, 3, 4, 5])].astype(int)
    total = int(valid.size)
    if total == 0:
        return MetricsSummary()
    counts = valid.value_counts()
    star_5 = int(counts.get(5, 0))
    return MetricsSummary(
        star_1=int(counts.get(1, 0)),
        star_2=int(counts.get(2, 0)),
        star_3=int(counts.get(3, 0)),
        star_4=int(counts.get(4, 0)),
        star_5=star_5,
        total=total,
        avg_rating=round(float(valid.mean()), 2),
        percent_5_star=round(star_5 / total * 100, 2),
    )


def _ratings(frame: pd.DataFrame) -> pd.Series | None:
    column = _find_column(list(frame.columns), _RATING_COLUMN)
    if column is None:
        return None
    return pd.to_numeric(frame[column], errors="coerce")


def calculate_metrics(rows: Sequence[Row]) -> MetricsSummary:
    frame = _frame(rows)
    ratings = _ratings(frame)
    if ratings is None:
        return MetricsSummary()
    return _summarize(ratings)


def agent_metrics(rows: Sequence[Row]) -> list[AgentMetrics]:
    """Per-agent summaries, most-reviewed first (ties by name)."""
    frame = _frame(rows)
    if AGENT_KEY not in frame.columns:
        return []
    rating_column = _find_column(list(frame.columns), _RATING_COLUMN)
    if rating_column is None:
        return []
    date_column = _find_column(list(frame.columns), _DATE_COLUMN, exclude=rating_column)
    ratings = pd.to_numeric(frame[rating_column], errors="coerce")

    frame = frame.assign(_rating=ratings, _agent=frame[AGENT_KEY].fillna("").astype(str).str.strip())
    frame = frame[frame["_agent"] != ""]
    if date_column is not None:
        frame = frame.assign(_date=pd.to_datetime(frame[date_column], errors="coerce", format="mixed", utc=True))

    out: list[AgentMetrics] = []
    for agent, group in frame.groupby("_agent", sort=False):
        last_review: str | None = None
        if date_column is not None:
            latest = group["_date"].max()
            if not pd.isna(latest):
                last_review = latest.date().isoformat()
        out.append(AgentMetrics(agent_name=str(agent), summary=_summarize(group["_rating"]), last_review_date=last_review))

    out.sort(key=lambda m: (-m.summary.total, m.agent_name))
    return out
