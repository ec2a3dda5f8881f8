from __future__ import annotations

import sys
from typing import Any, Protocol

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

from ..models.sync_report import SyncStage

"""Sync progress reporting.

The orchestrator reports ``(stage, percent, message)`` through the
SyncProgress protocol. Two implementations exist: the background status
board (web) and ProgressTracker, a tqdm bar shown only on a TTY so CI logs
stay free of control sequences.
"""

__all__ = [
    "SyncProgress",
    "NullProgress",
    "ProgressTracker",
    "is_tty_enabled",
]


class SyncProgress(Protocol):
    def update(self, stage: SyncStage, progress: int, message: str) -> None: ...


class NullProgress:
    def update(self, stage: SyncStage, progress: int, message: str) -> None:
        return None


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class ProgressTracker:
    """Percent-based tqdm bar for a single sync run."""

    def __init__(self, *, description: str = "Syncing sheet") -> None:
        self.description = description
        self.position = 0
        self.stage = SyncStage.IDLE

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=100,
                desc=description,
                unit="%",
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def update(self, stage: SyncStage, progress: int, message: str) -> None:
        self.stage = stage
        progress = max(self.position, min(progress, 100))
        step = progress - self.position
        self.position = progress
        if self.enabled and self.pbar is not None:
            self.pbar.set_description(f"{self.description} ({stage.value})")
            self.pbar.set_postfix_str(message)
            if step:
                self.pbar.update(step)

    def close(self) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
