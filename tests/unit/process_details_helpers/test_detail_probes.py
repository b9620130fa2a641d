from unittest.mock import patch

import psutil

from portzap.process_details_helpers import CommandResult, DetailProbes

_PSUTIL_PROCESS = "portzap.process_details_helpers.detail_probes.psutil.Process"


def _probes(fake_runner_cls, responses=None, tools=()):
    runner = fake_runner_cls(responses or {}, tools=tools)
    return DetailProbes(runner, timeout=1.0), runner


class TestCommandLineProbes:
    """Tests for the command-line probe chain."""

    def test_psutil_joins_arguments(self, fake_runner_cls):
        """psutil's argument vector is joined with spaces."""
        probes, _ = _probes(fake_runner_cls)
        with patch(_PSUTIL_PROCESS) as process:
            process.return_value.cmdline.return_value = ["node", "server.js"]
            first = probes.command_line()[0]
            assert first(10) == "node server.js"

    def test_psutil_failure_yields_empty(self, fake_runner_cls):
        """psutil errors are absorbed."""
        probes, _ = _probes(fake_runner_cls)
        with patch(_PSUTIL_PROCESS, side_effect=psutil.NoSuchProcess(10)):
            assert probes.command_line()[0](10) == ""

    def test_ps_fallbacks(self, fake_runner_cls):
        """ps command= then ps cmd= are consulted."""
        responses = {("ps", "-p", "10", "-o", "cmd="): CommandResult(returncode=0, stdout="python app.py\n")}
        probes, runner = _probes(fake_runner_cls, responses)

        _, ps_command, ps_cmd = probes.command_line()

        assert ps_command(10) == ""
        assert ps_cmd(10) == "python app.py"
        assert ("ps", "-p", "10", "-o", "command=") in runner.calls


class TestWorkingDirectoryProbes:
    """Tests for the working-directory probe chain."""

    def test_lsof_field_output(self, fake_runner_cls):
        """The n-prefixed lsof field carries the path."""
        responses = {
            ("/usr/bin/lsof", "-p", "10", "-a", "-d", "cwd", "-Fn"): CommandResult(
                returncode=0, stdout="p10\nfcwd\nn/home/dev/app\n"
            )
        }
        probes, _ = _probes(fake_runner_cls, responses, tools={"lsof"})

        assert probes.working_directory()[1](10) == "/home/dev/app"

    def test_pwdx_output(self, fake_runner_cls):
        """pwdx prints 'PID: path'."""
        responses = {("/usr/bin/pwdx", "10"): CommandResult(returncode=0, stdout="10: /srv/site\n")}
        probes, _ = _probes(fake_runner_cls, responses, tools={"pwdx"})

        assert probes.working_directory()[2](10) == "/srv/site"

    def test_missing_tools_are_skipped(self, fake_runner_cls):
        """Probes whose tool is not installed answer empty without running anything."""
        probes, runner = _probes(fake_runner_cls)

        assert probes.working_directory()[1](10) == ""
        assert probes.working_directory()[2](10) == ""
        assert runner.calls == []

    def test_proc_readlink(self, fake_runner_cls):
        """/proc/PID/cwd is read as a symlink."""
        probes, _ = _probes(fake_runner_cls)
        with patch("portzap.process_details_helpers.detail_probes.os.readlink", return_value="/opt/svc") as readlink:
            assert probes.working_directory()[3](10) == "/opt/svc"
        readlink.assert_called_once_with("/proc/10/cwd")


class TestStartTimeProbes:
    """Tests for the start-time probe chain."""

    def test_psutil_create_time(self, fake_runner_cls):
        """psutil's create_time is used as-is."""
        probes, _ = _probes(fake_runner_cls)
        with patch(_PSUTIL_PROCESS) as process:
            process.return_value.create_time.return_value = 1_700_000_000.5
            assert probes.start_time()[0](10) == 1_700_000_000.5

    def test_unparseable_ps_output_is_unknown(self, fake_runner_cls):
        """Garbage from ps yields 0.0."""
        responses = {("ps", "-p", "10", "-o", "lstart="): CommandResult(returncode=0, stdout="garbage")}
        probes, _ = _probes(fake_runner_cls, responses)

        assert probes.start_time()[1](10) == 0.0
