from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from .sheet_documents import RawSheetStats

"""Sync lifecycle models.

SyncState is the guard's state machine; SyncStage/SyncStatus describe the
progress of one (background) sync run; SyncReport is what a finished sync
returns to its caller.
"""


class SyncState(Enum):
    """Sync guard lifecycle.

    State transitions: idle → syncing → (complete | failed) → syncing → ...
    """
    IDLE = "idle"
    SYNCING = "syncing"
    COMPLETE = "complete"
    FAILED = "failed"


class SyncStage(Enum):
    IDLE = "idle"
    DOWNLOADING = "downloading"
    PROCESSING = "processing"
    SAVING = "saving"
    COMPLETE = "complete"
    ERROR = "error"

    @property
    def finished(self) -> bool:
        return self in (SyncStage.COMPLETE, SyncStage.ERROR)


@dataclass(frozen=True)
class SyncStatus:
    status: SyncStage
    progress: int
    message: str
    error: str | None = None
    last_updated: str | None = None
    stats: RawSheetStats | None = None

    def advance(self, stage: SyncStage, progress: int, message: str) -> SyncStatus:
        return replace(self, status=stage, progress=progress, message=message)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "status": self.status.value,
            "progress": self.progress,
            "message": self.message,
        }
        if self.error is not None:
            out["error"] = self.error
        if self.last_updated is not None:
            out["lastUpdated"] = self.last_updated
        if self.stats is not None:
            out["stats"] = self.stats.to_dict()
        return out


@dataclass(frozen=True)
class SyncReport:
    success: bool
    last_updated: str | None
    stats: RawSheetStats
    message: str = "Data synced successfully"
    skipped: bool = False
    elapsed_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "lastUpdated": self.last_updated,
            "stats": self.stats.to_dict(),
        }
