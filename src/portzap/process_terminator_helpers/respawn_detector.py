"""Advisory lookup of the service manager behind a respawned process."""

from __future__ import annotations

import logging
import re
from typing import Optional

from ..process_details_helpers import CommandRunner

logger = logging.getLogger(__name__)

SYSTEMD = "systemd"
SUPERVISOR = "supervisor"

_SERVICE_UNIT_PATTERN = re.compile(r"([\w@.\-]+\.service)\b")
_STATUS_HEADER_PATTERN = re.compile(r"^\W*([\w@.\-]+\.service)\b")
# Per-user managers and the login session tree; stopping these ends the session.
_SESSION_UNIT_PREFIXES = ("user@", "user-runtime-dir@")
_SESSION_SLICE = "/user.slice"


def _is_session_unit(unit: str) -> bool:
    return unit.startswith(_SESSION_UNIT_PREFIXES)


def system_unit_from_cgroup(cgroup: str) -> str:
    """First system service unit named in ``/proc/PID/cgroup`` text, or ``""``.

    Lines look like ``0::/system.slice/webapp.service`` (v2) or
    ``1:name=systemd:/system.slice/webapp.service`` (v1). Anything under the
    user slice belongs to a login session, not to a system service.
    """
    for line in cgroup.splitlines():
        path = line.split(":", 2)[-1].strip()
        if not path or path.startswith(_SESSION_SLICE):
            continue
        for unit in _SERVICE_UNIT_PATTERN.findall(path):
            if not _is_session_unit(unit):
                return unit
    return ""


def system_unit_from_status(output: str) -> str:
    """Unit named on the header line of ``systemctl status PID``, or ``""``."""
    lines = output.splitlines()
    if not lines:
        return ""
    match = _STATUS_HEADER_PATTERN.match(lines[0])
    if match is None or _is_session_unit(match.group(1)):
        return ""
    return match.group(1)


class RespawnDetector:
    """Identify systemd or supervisor ownership and the matching stop command."""

    def __init__(self, runner: Optional[CommandRunner] = None, timeout_seconds: float = 2.0):
        self._runner = runner or CommandRunner()
        self.timeout_seconds = timeout_seconds

    def detect_manager(self, pid: int) -> Optional[str]:
        cgroup = self._read_cgroup(pid)
        if system_unit_from_cgroup(cgroup):
            return SYSTEMD
        if SUPERVISOR in cgroup:
            return SUPERVISOR

        if self._runner.which("systemctl") and self._systemctl_unit(pid):
            return SYSTEMD
        if self._runner.which("supervisorctl") and self._supervisor_program(pid):
            return SUPERVISOR
        return None

    def stop_command(self, pid: int, manager: str) -> str:
        if manager == SYSTEMD:
            unit = system_unit_from_cgroup(self._read_cgroup(pid)) or self._systemctl_unit(pid)
            return f"systemctl stop {unit or '<service-name>'}"
        if manager == SUPERVISOR:
            program = self._supervisor_program(pid)
            return f"supervisorctl stop {program or '<process-name>'}"
        return ""

    def _systemctl_unit(self, pid: int) -> str:
        result = self._runner.run(["systemctl", "status", str(pid)], self.timeout_seconds)
        if not result.ok:
            return ""
        return system_unit_from_status(result.stdout)

    def _supervisor_program(self, pid: int) -> str:
        # "web    RUNNING   pid 1234, uptime 0:01:02"
        result = self._runner.run(["supervisorctl", "status"], self.timeout_seconds)
        if result.returncode is None:
            return ""
        marker = f"pid {pid},"
        for line in result.stdout.splitlines():
            if marker in line:
                return line.split()[0]
        return ""

    def _read_cgroup(self, pid: int) -> str:
        try:
            with open(f"/proc/{pid}/cgroup", encoding="utf-8") as handle:
                return handle.read()
        except OSError:  # policy_guard: allow-silent-handler
            return ""


__all__ = [
    "SUPERVISOR",
    "SYSTEMD",
    "RespawnDetector",
    "system_unit_from_cgroup",
    "system_unit_from_status",
]
