"""Domain models for the review sheet sync service.

Documents stored in the data directory, the merged in-memory view and the
sync lifecycle types are all plain dataclasses.
"""

from .error_record import SyncErrorRecord
from .merged_result import MergedResult, MergeStats
from .sheet_documents import (
    HistoricalArchive,
    ParsedSheetDocument,
    RawSheetDocument,
    RawSheetStats,
    Row,
)
from .sync_report import SyncReport, SyncStage, SyncState, SyncStatus

__all__ = [
    # Stored documents
    "HistoricalArchive",
    "ParsedSheetDocument",
    "RawSheetDocument",
    "RawSheetStats",
    "Row",
    # Derived view
    "MergedResult",
    "MergeStats",
    # Sync lifecycle
    "SyncErrorRecord",
    "SyncReport",
    "SyncStage",
    "SyncState",
    "SyncStatus",
]
