from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from review_sync.models.error_record import SyncErrorRecord

"""Sync error log buffering.

- JSON Lines with the fixed SyncErrorRecord schema
- One file per process: ``logs/sync-errors-YYYYMMDD-HHMMSS.log`` (UTC),
  created lazily on the first flush that has records
- Serial use per orchestrator; the orchestrator flushes after every failure
"""

__all__ = [
    "SyncErrorRecord",
    "SyncErrorLog",
    "LOGS_DIR",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class SyncErrorLog:
    """In-memory buffer for sync error records. Flush appends JSON Lines."""

    def __init__(self, logs_dir: Path | None = None) -> None:
        self._records: list[SyncErrorRecord] = []
        self._logs_dir = logs_dir
        self._file_path: Path | None = None

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            logs_dir = self._logs_dir if self._logs_dir is not None else LOGS_DIR
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = logs_dir / f"sync-errors-{stamp}.log"
        return self._file_path

    def append(self, record: SyncErrorRecord) -> None:
        self._records.append(record)

    def __len__(self) -> int:  # pragma: no cover (trivial)
        return len(self._records)

    def flush(self) -> Path | None:
        if not self._records:
            return None
        fp = self.file_path
        fp.parent.mkdir(parents=True, exist_ok=True)
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
