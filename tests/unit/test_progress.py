from __future__ import annotations

from unittest.mock import patch

from review_sync.models.sync_report import SyncStage
from review_sync.services.progress import NullProgress, ProgressTracker, is_tty_enabled


def test_is_tty_enabled_returns_stdout_isatty():
    with patch("sys.stdout.isatty", return_value=True):
        assert is_tty_enabled() is True
    with patch("sys.stdout.isatty", return_value=False):
        assert is_tty_enabled() is False


def test_null_progress_accepts_updates():
    assert NullProgress().update(SyncStage.DOWNLOADING, 10, "Connecting...") is None


class TestProgressTracker:
    def test_init_with_tty_enabled(self):
        with patch("review_sync.services.progress.is_tty_enabled", return_value=True), \
             patch("review_sync.services.progress.tqdm") as mock_tqdm:
            tracker = ProgressTracker(description="Syncing")

            assert tracker.enabled is True
            mock_tqdm.assert_called_once_with(
                total=100,
                desc="Syncing",
                unit="%",
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )

    def test_init_with_tty_disabled(self):
        with patch("review_sync.services.progress.is_tty_enabled", return_value=False):
            tracker = ProgressTracker()
            assert tracker.enabled is False
            assert tracker.pbar is None
            tracker.update(SyncStage.SAVING, 90, "Saving...")
            assert tracker.position == 90

    def test_update_advances_by_step_and_never_goes_back(self):
        with patch("review_sync.services.progress.is_tty_enabled", return_value=True), \
             patch("review_sync.services.progress.tqdm") as mock_tqdm:
            tracker = ProgressTracker(description="Syncing")
            pbar = mock_tqdm.return_value

            tracker.update(SyncStage.DOWNLOADING, 10, "Connecting...")
            tracker.update(SyncStage.DOWNLOADING, 30, "Downloaded")
            tracker.update(SyncStage.PROCESSING, 20, "late update")
            tracker.update(SyncStage.COMPLETE, 150, "Complete!")

            assert [c.args[0] for c in pbar.update.call_args_list] == [10, 20, 70]
            pbar.set_description.assert_called_with("Syncing (complete)")
            assert tracker.position == 100
            assert tracker.stage is SyncStage.COMPLETE

    def test_context_manager_closes_bar(self):
        with patch("review_sync.services.progress.is_tty_enabled", return_value=True), \
             patch("review_sync.services.progress.tqdm") as mock_tqdm:
            with ProgressTracker() as tracker:
                pass
            mock_tqdm.return_value.close.assert_called_once()
            assert tracker.pbar is None
