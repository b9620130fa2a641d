"""Independent strategies for each process-detail field.

Each probe takes a PID and returns a string, empty when the strategy could not
answer. Probes never raise; the resolver walks them in order and keeps the
first non-empty answer.
"""

from __future__ import annotations

import logging
import os
from typing import Callable, Sequence

import psutil

from .command_runner import CommandRunner
from .start_time_parser import parse_start_time

logger = logging.getLogger(__name__)

FieldProbe = Callable[[int], str]


class DetailProbes:
    """Ordered probe lists per field, bound to one runner and timeout."""

    def __init__(self, runner: CommandRunner, timeout: float):
        self._runner = runner
        self._timeout = timeout

    def command_line(self) -> Sequence[FieldProbe]:
        return (
            self._psutil_cmdline,
            lambda pid: self._ps_field(pid, "command="),
            lambda pid: self._ps_field(pid, "cmd="),
        )

    def owner(self) -> Sequence[FieldProbe]:
        return (
            self._psutil_username,
            lambda pid: self._ps_field(pid, "user="),
            lambda pid: self._ps_field(pid, "uid="),
        )

    def start_time(self) -> Sequence[Callable[[int], float]]:
        return (
            self._psutil_create_time,
            lambda pid: parse_start_time(self._ps_field(pid, "lstart=")),
            lambda pid: parse_start_time(self._ps_field(pid, "start=")),
        )

    def working_directory(self) -> Sequence[FieldProbe]:
        return (
            self._psutil_cwd,
            self._lsof_cwd,
            self._pwdx_cwd,
            self._proc_cwd,
        )

    def _ps_field(self, pid: int, field_spec: str) -> str:
        result = self._runner.run(["ps", "-p", str(pid), "-o", field_spec], self._timeout)
        if not result.ok:
            return ""
        return result.text

    def _psutil_cmdline(self, pid: int) -> str:
        try:
            return " ".join(psutil.Process(pid).cmdline())
        except (psutil.Error, OSError) as exc:  # policy_guard: allow-silent-handler
            logger.debug("psutil cmdline unavailable for PID %s: %s", pid, exc)
            return ""

    def _psutil_username(self, pid: int) -> str:
        try:
            return psutil.Process(pid).username()
        except (psutil.Error, OSError, KeyError) as exc:  # policy_guard: allow-silent-handler
            logger.debug("psutil username unavailable for PID %s: %s", pid, exc)
            return ""

    def _psutil_create_time(self, pid: int) -> float:
        try:
            return float(psutil.Process(pid).create_time())
        except (psutil.Error, OSError) as exc:  # policy_guard: allow-silent-handler
            logger.debug("psutil create_time unavailable for PID %s: %s", pid, exc)
            return 0.0

    def _psutil_cwd(self, pid: int) -> str:
        try:
            return psutil.Process(pid).cwd()
        except (psutil.Error, OSError) as exc:  # policy_guard: allow-silent-handler
            logger.debug("psutil cwd unavailable for PID %s: %s", pid, exc)
            return ""

    def _lsof_cwd(self, pid: int) -> str:
        lsof = self._runner.which("lsof")
        if lsof is None:
            return ""
        result = self._runner.run([lsof, "-p", str(pid), "-a", "-d", "cwd", "-Fn"], self._timeout)
        if not result.ok:
            return ""
        for line in result.stdout.splitlines():
            if line.startswith("n"):
                return line[1:]
        return ""

    def _pwdx_cwd(self, pid: int) -> str:
        pwdx = self._runner.which("pwdx")
        if pwdx is None:
            return ""
        result = self._runner.run([pwdx, str(pid)], self._timeout)
        if not result.ok:
            return ""
        # "PID: /path/to/dir"
        _, sep, path = result.text.partition(":")
        return path.strip() if sep else ""

    def _proc_cwd(self, pid: int) -> str:
        try:
            return os.readlink(f"/proc/{pid}/cwd")
        except OSError:  # policy_guard: allow-silent-handler
            return ""


__all__ = ["DetailProbes", "FieldProbe"]
