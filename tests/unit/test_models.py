from __future__ import annotations

import pytest

from review_sync.models import (
    HistoricalArchive,
    MergedResult,
    MergeStats,
    ParsedSheetDocument,
    RawSheetDocument,
    RawSheetStats,
    SyncReport,
    SyncStage,
    SyncStatus,
)


def test_raw_sheet_document_uses_camel_case_keys():
    doc = RawSheetDocument(csv="a\n1", last_updated="2024-06-01T08:00:00.000Z", stats=RawSheetStats(3, 2))
    assert doc.to_dict() == {
        "csv": "a\n1",
        "lastUpdated": "2024-06-01T08:00:00.000Z",
        "stats": {"size": 3, "lines": 2},
    }
    assert RawSheetDocument.from_dict(doc.to_dict()) == doc


def test_raw_sheet_stats_tolerates_missing_values():
    assert RawSheetStats.from_dict(None) == RawSheetStats(0, 0)
    assert RawSheetStats.from_dict({"size": 5, "rows": 2}) == RawSheetStats(5, 0, 2)


def test_parsed_document_headers_fall_back_to_first_row():
    doc = ParsedSheetDocument.from_dict({"rows": [{"B": "1", "A": "2"}]})
    assert doc.headers == ["B", "A"]
    assert doc.last_updated is None


def test_parsed_document_requires_rows_list():
    with pytest.raises(ValueError):
        ParsedSheetDocument.from_dict({"headers": ["A"]})


def test_row_entries_must_be_objects():
    with pytest.raises(ValueError, match="row 1 is NoneType"):
        ParsedSheetDocument.from_dict({"rows": [{"A": "1"}, None]})
    with pytest.raises(ValueError, match="row 0 is str"):
        HistoricalArchive.from_dict({"rows": ["junk", 3]})


def test_historical_archive_round_trip():
    archive = HistoricalArchive(
        rows=[{"A": "1"}], headers=["A"], source="Old", downloaded_at="2024-05-01T00:00:00.000Z",
        stats={"totalRows": 1},
    )
    data = archive.to_dict()
    assert data["downloadedAt"] == "2024-05-01T00:00:00.000Z"
    assert HistoricalArchive.from_dict(data) == archive
    with pytest.raises(ValueError):
        HistoricalArchive.from_dict({"rows": "nope"})


def test_degraded_merge_payload():
    result = MergedResult.empty(123.0)
    assert result.degraded
    assert result.etag is None
    assert result.to_payload() == {"csv": "", "lastUpdated": None, "stats": {"size": 0, "lines": 0}}


def test_merge_stats_payload():
    stats = MergeStats(size=9, lines=2, historical=0, current=1, total=1, sources={"Current": 1})
    assert stats.to_dict() == {
        "size": 9, "lines": 2, "historical": 0, "current": 1, "total": 1, "sources": {"Current": 1},
    }


def test_sync_status_advance_keeps_other_fields():
    status = SyncStatus(status=SyncStage.IDLE, progress=0, message="Starting...")
    moved = status.advance(SyncStage.SAVING, 90, "Saving...")
    assert moved.to_dict() == {"status": "saving", "progress": 90, "message": "Saving..."}
    assert not moved.status.finished
    assert status.progress == 0


def test_sync_report_payload():
    report = SyncReport(success=True, last_updated="t", stats=RawSheetStats(1, 1))
    assert report.to_dict() == {
        "success": True,
        "message": "Data synced successfully",
        "lastUpdated": "t",
        "stats": {"size": 1, "lines": 1},
    }
