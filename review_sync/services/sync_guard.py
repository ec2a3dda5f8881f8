from __future__ import annotations

import threading

from ..models.sync_report import SyncState

"""Re-entrancy guard for sync runs.

Advisory, in-process only: it stops a second sync from starting while one is
in flight inside this process. Separate processes are not coordinated here
(store writes take their own file lock).
"""


class SyncStateError(Exception):
    """Raised on an invalid guard transition."""


class SyncGuard:
    """State machine ``idle → syncing → (complete | failed)``."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._state = SyncState.IDLE

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def busy(self) -> bool:
        return self._state is SyncState.SYNCING

    def try_acquire(self) -> bool:
        """Enter SYNCING unless a sync is already running."""
        with self._lock:
            if self._state is SyncState.SYNCING:
                return False
            self._state = SyncState.SYNCING
            return True

    def release(self, success: bool) -> SyncState:
        with self._lock:
            if self._state is not SyncState.SYNCING:
                raise SyncStateError(f"release() while {self._state.value}")
            self._state = SyncState.COMPLETE if success else SyncState.FAILED
            return self._state
