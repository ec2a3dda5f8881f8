from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

from ..models.sync_report import SyncStage, SyncStatus
from .orchestrator import SheetSyncOrchestrator, SyncError

"""Background sync runs with pollable status.

``start`` registers ``sync-<epoch ms>`` and runs the orchestrator on a daemon
thread; clients poll ``get(sync_id)`` until the status is complete or error.
Statuses live in memory only and are lost on restart.
"""

logger = logging.getLogger(__name__)

MAX_TRACKED_RUNS = 50


class _BoardProgress:
    def __init__(self, board: SyncStatusBoard, sync_id: str) -> None:
        self._board = board
        self._sync_id = sync_id

    def update(self, stage: SyncStage, progress: int, message: str) -> None:
        self._board.advance(self._sync_id, stage, progress, message)


class SyncStatusBoard:
    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._lock = threading.Lock()
        self._statuses: dict[str, SyncStatus] = {}
        self._clock = clock

    def get(self, sync_id: str) -> SyncStatus | None:
        with self._lock:
            return self._statuses.get(sync_id)

    def set(self, sync_id: str, status: SyncStatus) -> None:
        with self._lock:
            self._statuses[sync_id] = status
            self._trim()

    def _trim(self) -> None:
        # oldest runs are dropped first (dict keeps insertion order); caller holds the lock
        while len(self._statuses) > MAX_TRACKED_RUNS:
            self._statuses.pop(next(iter(self._statuses)))

    def advance(self, sync_id: str, stage: SyncStage, progress: int, message: str) -> None:
        with self._lock:
            current = self._statuses.get(sync_id)
            if current is None:
                return
            self._statuses[sync_id] = current.advance(stage, progress, message)

    def new_sync_id(self) -> str:
        """Pick an unused ``sync-<ms>`` id and record it as idle in one locked step."""
        sync_id = f"sync-{int(self._clock() * 1000)}"
        with self._lock:
            suffix = 1
            candidate = sync_id
            while candidate in self._statuses:
                suffix += 1
                candidate = f"{sync_id}-{suffix}"
            self._statuses[candidate] = SyncStatus(status=SyncStage.IDLE, progress=0, message="Starting...")
            self._trim()
        return candidate

    def run(self, orchestrator: SheetSyncOrchestrator, sync_id: str) -> None:
        """Run one sync to completion, recording the outcome under ``sync_id``."""
        try:
            report = orchestrator.sync(progress=_BoardProgress(self, sync_id))
        except SyncError as e:
            self.set(sync_id, SyncStatus(status=SyncStage.ERROR, progress=0, message="Sync failed", error=str(e)))
            return
        except Exception as e:
            logger.exception(f"background sync {sync_id} crashed")
            self.set(sync_id, SyncStatus(status=SyncStage.ERROR, progress=0, message="Sync failed", error=str(e)))
            return
        self.set(
            sync_id,
            SyncStatus(
                status=SyncStage.COMPLETE,
                progress=100,
                message=report.message if report.skipped else "Complete!",
                last_updated=report.last_updated,
                stats=report.stats,
            ),
        )

    def start(self, orchestrator: SheetSyncOrchestrator, *, background: bool = True) -> str:
        sync_id = self.new_sync_id()
        logger.info(f"background sync {sync_id} started")
        if background:
            threading.Thread(target=self.run, args=(orchestrator, sync_id), name=sync_id, daemon=True).start()
        else:
            self.run(orchestrator, sync_id)
        return sync_id
