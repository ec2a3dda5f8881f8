# Shared pytest fixtures
from __future__ import annotations

import json
import tempfile
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from review_sync.config.loader import load_config
from review_sync.logging.init import reset_logging


class FakeClock:
    """Manually advanced clock (seconds)."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_response(status_code: int = 200, text: str = "", reason: str = "OK") -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.reason = reason
    response.ok = 200 <= status_code < 400  # same as requests: 3xx counts as ok
    response.text = text
    return response


def tagged_rows(tag: str, count: int) -> list[dict[str, str]]:
    return [
        {"Name": f"{tag}-{i}", "Rating": "5", "Agent": "Dana", "Source": tag}
        for i in range(count)
    ]


@pytest.fixture(autouse=True)
def _fresh_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        for var in ("SHEET_CSV_URL", "REVIEW_SYNC_DATA_DIR", "REVIEW_SYNC_CACHE_TTL", "REVIEW_SYNC_CONFIG"):
            monkeypatch.delenv(var, raising=False)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """csv_url: https://example.test/pub?output=csv
data_directory: ./data
timezone: UTC
archives:
  - key: archive_1
    label: May 2024 Archive
  - key: archive_2
    label: Older Archive
fetch:
  timeout_seconds: 5
  max_attempts: 2
  backoff_seconds: 2.0
cache:
  ttl_seconds: 10
sheets:
  sheet_name: Reviews
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "sync.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def config(write_config: Path):
    return load_config(write_config, environ={})


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def write_json(temp_workdir: Path):
    def _write(name: str, payload: Any) -> Path:
        path = temp_workdir / "data" / name
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        return path
    return _write


@pytest.fixture()
def seeded_data(write_json) -> dict[str, int]:
    """H1=3, H2=2, current=5 rows, each row tagged with its source."""
    write_json("historical-reviews-may2024.json", {"rows": tagged_rows("h1", 3)})
    write_json("historical-reviews.json", {"rows": tagged_rows("h2", 2)})
    write_json(
        "cached-sheets-parsed.json",
        {
            "headers": ["Name", "Rating", "Agent", "Source"],
            "rows": tagged_rows("cur", 5),
            "lastUpdated": "2024-06-01T08:00:00.000Z",
        },
    )
    write_json(
        "cached-sheets-data.json",
        {"csv": "", "lastUpdated": "2024-06-01T07:59:59.000Z", "stats": {"size": 0, "lines": 0}},
    )
    return {"h1": 3, "h2": 2, "current": 5}
