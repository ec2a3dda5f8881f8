from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""SyncErrorRecord model for the JSON-lines sync error log.

The record schema is fixed; ``to_json_line`` never adds keys.
"""

__all__ = [
    "SyncErrorRecord",
]


@dataclass(frozen=True)
class SyncErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        stage: Pipeline stage that failed (fetch, status, parse, write, ...)
        source: URL or store key the stage was working on
        attempt: Fetch attempt number (1-based), -1 when not applicable
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Human readable error message
    """
    timestamp: str
    stage: str
    source: str
    attempt: int
    error_type: str
    message: str

    @staticmethod
    def create(stage: str, source: str, error_type: str, message: str, attempt: int = -1) -> SyncErrorRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return SyncErrorRecord(
            timestamp=ts,
            stage=stage,
            source=source,
            attempt=attempt,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)
