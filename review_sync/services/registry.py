from __future__ import annotations

from dataclasses import dataclass

from ..config.loader import SyncConfig
from ..store.local_store import LocalStore
from .background import SyncStatusBoard
from .merge_cache import MergeCacheService
from .orchestrator import SheetSyncOrchestrator


@dataclass
class ReviewSyncServices:
    """Process-wide service instances built from one config."""
    config: SyncConfig
    store: LocalStore
    merge: MergeCacheService
    orchestrator: SheetSyncOrchestrator
    board: SyncStatusBoard

    @classmethod
    def from_config(cls, config: SyncConfig) -> ReviewSyncServices:
        store = LocalStore(config.data_path, config.files)
        return cls(
            config=config,
            store=store,
            merge=MergeCacheService(store, config.archives, ttl_seconds=config.cache_ttl_seconds),
            orchestrator=SheetSyncOrchestrator(config, store),
            board=SyncStatusBoard(),
        )
