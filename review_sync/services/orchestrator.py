from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from ..config.loader import SyncConfig
from ..logging.error_log import SyncErrorLog
from ..models.error_record import SyncErrorRecord
from ..models.sheet_documents import ParsedSheetDocument, RawSheetDocument, RawSheetStats
from ..models.sync_report import SyncReport, SyncStage
from ..sheets.csv_codec import parse_csv
from ..sheets.fetcher import FetchError, fetch_with_retry
from ..store.local_store import LocalStore, StoreError, StoreWriteError
from .progress import NullProgress, SyncProgress
from .sync_guard import SyncGuard

"""Sync orchestration: download the published CSV and replace the current snapshot.

One run:
1. take the in-process guard (a second concurrent run is refused)
2. fetch with retry; non-2xx is a failure and nothing is written
3. parse the CSV and write the parsed rows, then the raw metadata document
4. report success, ``lastUpdated`` and stats

Archives are never touched and the merge cache is never invalidated here.
Every failure is recorded in the JSON-lines sync error log before the
exception propagates.
"""

logger = logging.getLogger(__name__)


class SyncError(Exception):
    """A sync run failed. ``report`` is the failure report for the caller."""

    def __init__(self, message: str, *, stage: str = "sync") -> None:
        super().__init__(message)
        self.stage = stage
        self.report = SyncReport(
            success=False,
            last_updated=None,
            stats=RawSheetStats(size=0, lines=0),
            message=message,
        )

    def to_dict(self) -> dict[str, Any]:
        return {"success": False, "error": str(self)}


class SyncInProgressError(SyncError):
    def __init__(self) -> None:
        super().__init__("Sync already in progress", stage="guard")


def utc_now() -> datetime:
    return datetime.now(UTC)


def iso_timestamp(moment: datetime) -> str:
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def count_lines(text: str) -> int:
    return len(text.strip().split("\n"))


class SheetSyncOrchestrator:
    def __init__(
        self,
        config: SyncConfig,
        store: LocalStore,
        *,
        fetch: Callable[..., Any] = fetch_with_retry,
        guard: SyncGuard | None = None,
        error_log: SyncErrorLog | None = None,
        now: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self.store = store
        self.guard = guard if guard is not None else SyncGuard()
        self.error_log = error_log if error_log is not None else SyncErrorLog()
        self._fetch = fetch
        self._now = now
        self._sleep = sleep

    def _record(self, stage: str, source: str, error_type: str, message: str, attempt: int = -1) -> None:
        self.error_log.append(SyncErrorRecord.create(stage, source, error_type, message, attempt))

    def _previous_row_count(self) -> int:
        try:
            return RawSheetDocument.from_dict(self.store.read("current_metadata")).stats.rows or 0
        except StoreError:
            return 0

    def _download(self) -> str:
        url = self.config.csv_url
        fetch_cfg = self.config.fetch

        def on_attempt_failed(attempt: int, error: BaseException) -> None:
            self._record("fetch", url, "FETCH_ATTEMPT_FAILED", str(error), attempt)

        try:
            response = self._fetch(
                url,
                fetch_cfg.timeout_seconds,
                fetch_cfg.max_attempts,
                backoff_seconds=fetch_cfg.backoff_seconds,
                sleep=self._sleep,
                on_attempt_failed=on_attempt_failed,
            )
        except FetchError as e:
            reason = "timed out" if e.timed_out else "failed"
            raise SyncError(
                f"Download {reason} after {e.attempts} attempt(s): {e.last_error}", stage="fetch"
            ) from e

        if not 200 <= response.status_code < 300:
            message = f"Failed to download CSV: {response.status_code} {response.reason or ''}".rstrip()
            self._record("status", url, "HTTP_STATUS", message)
            raise SyncError(message, stage="status")
        return response.text

    def sync(self, progress: SyncProgress | None = None) -> SyncReport:
        """Run one sync. Raises SyncError (SyncInProgressError when busy)."""
        progress = progress if progress is not None else NullProgress()
        if not self.guard.try_acquire():
            logger.warning("sync requested while another sync is running")
            raise SyncInProgressError()

        started = time.monotonic()
        success = False
        try:
            logger.info(f"sync started: {self.config.csv_url}")
            progress.update(SyncStage.DOWNLOADING, 10, "Connecting...")
            text = self._download()
            progress.update(SyncStage.DOWNLOADING, 30, f"Downloaded {len(text)} bytes")

            progress.update(SyncStage.PROCESSING, 60, f"Processing {count_lines(text)} lines...")
            try:
                parsed = parse_csv(text)
            except ValueError as e:
                self._record("parse", self.config.csv_url, "CSV_PARSE_ERROR", str(e))
                raise SyncError(f"Failed to parse CSV: {e}", stage="parse") from e

            stats = RawSheetStats(size=len(text), lines=count_lines(text), rows=len(parsed.rows))
            last_updated = iso_timestamp(self._now())

            previous = self._previous_row_count() if self.config.skip_unchanged else 0
            if previous > 0 and previous == stats.rows:
                success = True
                message = f"Already up to date ({stats.rows} rows)"
                logger.info(f"sync skipped: {message}")
                progress.update(SyncStage.COMPLETE, 100, message)
                return SyncReport(
                    success=True,
                    last_updated=last_updated,
                    stats=stats,
                    message=message,
                    skipped=True,
                    elapsed_seconds=time.monotonic() - started,
                )

            progress.update(SyncStage.SAVING, 90, "Saving...")
            try:
                self.store.write(
                    "current_parsed",
                    ParsedSheetDocument(headers=parsed.headers, rows=parsed.rows, last_updated=last_updated).to_dict(),
                )
                self.store.write(
                    "current_metadata",
                    RawSheetDocument(csv=text, last_updated=last_updated, stats=stats).to_dict(),
                )
            except StoreWriteError as e:
                self._record("write", e.key, "WRITE_FAILED", str(e))
                raise SyncError(f"Failed to save sheet data: {e}", stage="write") from e

            success = True
            progress.update(SyncStage.COMPLETE, 100, "Complete!")
            logger.info(f"sync complete: rows={stats.rows} size={stats.size} lines={stats.lines}")
            return SyncReport(
                success=True,
                last_updated=last_updated,
                stats=stats,
                elapsed_seconds=time.monotonic() - started,
            )
        except SyncError as e:
            logger.error(f"sync failed ({e.stage}): {e}")
            raise
        finally:
            self.guard.release(success)
            path = self.error_log.flush()
            if path is not None:
                logger.info(f"sync errors written to {path}")
