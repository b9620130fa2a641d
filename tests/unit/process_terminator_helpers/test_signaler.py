import signal
from types import SimpleNamespace
from unittest.mock import patch

import psutil

from portzap.process_terminator_helpers import ProcessSignaler

_MODULE = "portzap.process_terminator_helpers.signaler"


def _proc(pid, status=psutil.STATUS_SLEEPING):
    return SimpleNamespace(pid=pid, info={"status": status})


class TestLiveness:
    """Tests for exists and is_running."""

    def test_non_positive_pids_never_exist(self):
        assert not ProcessSignaler().exists(0)
        assert not ProcessSignaler().is_running(-5)

    def test_zombie_exists_but_is_not_running(self):
        """A defunct entry is still in the table yet has stopped."""
        with patch(f"{_MODULE}.psutil.pid_exists", return_value=True), patch(f"{_MODULE}.psutil.Process") as process:
            process.return_value.status.return_value = psutil.STATUS_ZOMBIE
            signaler = ProcessSignaler()

            assert signaler.exists(10)
            assert not signaler.is_running(10)

    def test_vanished_process_is_not_running(self):
        with patch(f"{_MODULE}.psutil.Process", side_effect=psutil.NoSuchProcess(10)):
            assert not ProcessSignaler().is_running(10)

    def test_access_denied_falls_back_to_pid_table(self):
        with patch(f"{_MODULE}.psutil.Process", side_effect=psutil.AccessDenied(10)), patch(
            f"{_MODULE}.psutil.pid_exists", return_value=True
        ):
            assert ProcessSignaler().is_running(10)


class TestProcessGroups:
    """Tests for group membership and signalling."""

    def test_group_members_skip_zombies_and_other_groups(self):
        procs = [_proc(10), _proc(11), _proc(12, psutil.STATUS_ZOMBIE), _proc(13)]
        groups = {10: 10, 11: 10, 12: 10, 13: 99}
        with patch(f"{_MODULE}.psutil.process_iter", return_value=procs), patch(
            f"{_MODULE}.os.getpgid", side_effect=lambda pid: groups[pid]
        ):
            assert ProcessSignaler().group_members(10) == [10, 11]

    def test_group_member_that_vanished_is_ignored(self):
        def getpgid(pid):
            if pid == 11:
                raise ProcessLookupError(pid)
            return 10

        with patch(f"{_MODULE}.psutil.process_iter", return_value=[_proc(10), _proc(11)]), patch(
            f"{_MODULE}.os.getpgid", side_effect=getpgid
        ):
            signaler = ProcessSignaler()
            assert signaler.group_members(10) == [10]
            assert signaler.is_group_running(10)

    def test_getpgid_of_missing_process(self):
        with patch(f"{_MODULE}.os.getpgid", side_effect=ProcessLookupError(10)):
            assert ProcessSignaler().getpgid(10) is None

    def test_signals_are_delivered(self):
        with patch(f"{_MODULE}.os.killpg") as killpg, patch(f"{_MODULE}.os.kill") as kill:
            signaler = ProcessSignaler()
            signaler.signal_group(10, signal.SIGTERM)
            signaler.signal_pid(11, signal.SIGKILL)

        killpg.assert_called_once_with(10, signal.SIGTERM)
        kill.assert_called_once_with(11, signal.SIGKILL)
