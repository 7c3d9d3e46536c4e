"""Tests for the process-wide subprocess tracker."""
from __future__ import annotations

import signal
from unittest.mock import patch

import pytest

from previewd.core import subprocess_tracker


@pytest.fixture(autouse=True)
def isolated_pids():
    with patch.object(subprocess_tracker, "_tracked_pids", set()):
        yield


class TestTracker:
    def test_track_untrack(self):
        subprocess_tracker.track(101)
        subprocess_tracker.track(102)
        subprocess_tracker.untrack(101)
        subprocess_tracker.untrack(999)
        assert subprocess_tracker.tracked() == {102}

    def test_kill_all_signals_groups_and_clears(self):
        subprocess_tracker.track(101)
        subprocess_tracker.track(102)
        with patch.object(subprocess_tracker, "signal_group", return_value=True) as mock_sig:
            subprocess_tracker.kill_all()
        assert sorted(c.args for c in mock_sig.call_args_list) == [
            (101, signal.SIGTERM), (102, signal.SIGTERM),
        ]
        assert subprocess_tracker.tracked() == set()

    def test_signal_group_missing_process(self):
        with patch("os.killpg", side_effect=ProcessLookupError):
            assert subprocess_tracker.signal_group(4242, signal.SIGKILL) is False

    def test_signal_group_falls_back_to_pid(self):
        with (
            patch("os.killpg", side_effect=PermissionError),
            patch("os.kill") as mock_kill,
        ):
            assert subprocess_tracker.signal_group(4242, signal.SIGKILL) is True
        mock_kill.assert_called_once_with(4242, signal.SIGKILL)
