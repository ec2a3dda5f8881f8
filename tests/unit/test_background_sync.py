from __future__ import annotations

import threading
from unittest.mock import MagicMock

from conftest import FakeClock
from review_sync.models.sheet_documents import RawSheetStats
from review_sync.models.sync_report import SyncReport, SyncStage, SyncStatus
from review_sync.services.background import MAX_TRACKED_RUNS, SyncStatusBoard
from review_sync.services.orchestrator import SyncError, SyncInProgressError


def _orchestrator(report=None, error=None) -> MagicMock:
    orchestrator = MagicMock()

    def sync(progress=None):
        progress.update(SyncStage.DOWNLOADING, 10, "Connecting...")
        if error is not None:
            raise error
        return report

    orchestrator.sync.side_effect = sync
    return orchestrator


def test_sync_ids_use_epoch_millis_and_stay_unique():
    board = SyncStatusBoard(clock=FakeClock(1_700_000_000.5))
    first = board.new_sync_id()
    assert first == "sync-1700000000500"
    assert board.get(first).to_dict() == {"status": "idle", "progress": 0, "message": "Starting..."}
    assert board.new_sync_id() == "sync-1700000000500-2"


def test_same_millisecond_starts_get_distinct_ids():
    board = SyncStatusBoard(clock=FakeClock(1_700_000_000.0))
    barrier = threading.Barrier(8)
    ids: list[str] = []
    lock = threading.Lock()

    def reserve():
        barrier.wait()
        sync_id = board.new_sync_id()
        with lock:
            ids.append(sync_id)

    threads = [threading.Thread(target=reserve) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(set(ids)) == 8
    assert all(board.get(i) is not None for i in ids)


def test_successful_run_is_complete_with_stats():
    report = SyncReport(success=True, last_updated="2024-06-01T08:00:00.000Z", stats=RawSheetStats(10, 3, 2))
    board = SyncStatusBoard(clock=FakeClock())

    sync_id = board.start(_orchestrator(report=report), background=False)

    status = board.get(sync_id).to_dict()
    assert status == {
        "status": "complete",
        "progress": 100,
        "message": "Complete!",
        "lastUpdated": "2024-06-01T08:00:00.000Z",
        "stats": {"size": 10, "lines": 3, "rows": 2},
    }


def test_skipped_run_reports_skip_message():
    report = SyncReport(
        success=True, last_updated="x", stats=RawSheetStats(1, 1, 1),
        message="Already up to date (1 rows)", skipped=True,
    )
    board = SyncStatusBoard(clock=FakeClock())
    sync_id = board.start(_orchestrator(report=report), background=False)
    assert board.get(sync_id).message == "Already up to date (1 rows)"


def test_failed_run_records_error():
    board = SyncStatusBoard(clock=FakeClock())
    sync_id = board.start(_orchestrator(error=SyncError("Failed to download CSV: 500")), background=False)

    status = board.get(sync_id)
    assert status.status is SyncStage.ERROR
    assert status.error == "Failed to download CSV: 500"
    assert status.status.finished


def test_busy_run_records_in_progress_error():
    board = SyncStatusBoard(clock=FakeClock())
    sync_id = board.start(_orchestrator(error=SyncInProgressError()), background=False)
    assert board.get(sync_id).error == "Sync already in progress"


def test_unexpected_exception_becomes_error_status():
    board = SyncStatusBoard(clock=FakeClock())
    sync_id = board.start(_orchestrator(error=RuntimeError("boom")), background=False)
    assert board.get(sync_id).to_dict()["error"] == "boom"


def test_background_thread_finishes():
    report = SyncReport(success=True, last_updated="x", stats=RawSheetStats(1, 1))
    done = threading.Event()
    orchestrator = MagicMock()

    def sync(progress=None):
        try:
            return report
        finally:
            done.set()

    orchestrator.sync.side_effect = sync
    board = SyncStatusBoard(clock=FakeClock())
    sync_id = board.start(orchestrator)

    assert done.wait(5)
    for t in threading.enumerate():
        if t.name == sync_id:
            t.join(5)
    assert board.get(sync_id).status is SyncStage.COMPLETE


def test_unknown_id_is_none():
    assert SyncStatusBoard().get("sync-0") is None


def test_board_keeps_bounded_history():
    board = SyncStatusBoard(clock=FakeClock())
    for i in range(MAX_TRACKED_RUNS + 5):
        board.set(f"sync-{i}", SyncStatus(status=SyncStage.IDLE, progress=0, message=""))
    assert board.get("sync-0") is None
    assert board.get(f"sync-{MAX_TRACKED_RUNS + 4}") is not None
