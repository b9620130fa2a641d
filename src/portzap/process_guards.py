"""
Checks that must pass before any signal is sent to a process.

Ownership: the caller may only signal processes it owns. Root-owned processes
and processes of other users are refused with a remediation hint.

Scheduler state: a process in uninterruptible wait (``D``) or already defunct
(``Z``) will not act on a termination signal, so it is refused up front.
"""

from __future__ import annotations

import logging
import os
import pwd
from dataclasses import dataclass
from typing import Optional

import psutil

from .process_details_helpers import CommandRunner

logger = logging.getLogger(__name__)

UNKILLABLE_STATES = frozenset({"D", "Z"})

_PSUTIL_STATE_CODES = {
    psutil.STATUS_DISK_SLEEP: "D",
    psutil.STATUS_ZOMBIE: "Z",
    psutil.STATUS_RUNNING: "R",
    psutil.STATUS_SLEEPING: "S",
    psutil.STATUS_STOPPED: "T",
}


@dataclass(frozen=True)
class OwnershipVerdict:
    allowed: bool
    reason: str = ""


def _username_for(uid: int) -> str:
    try:
        return pwd.getpwuid(uid).pw_name
    except KeyError:  # policy_guard: allow-silent-handler
        return str(uid)


class ProcessGuards:
    """Ownership and scheduler-state checks for a single PID."""

    def __init__(self, runner: Optional[CommandRunner] = None, timeout_seconds: float = 2.0):
        self._runner = runner or CommandRunner()
        self.timeout_seconds = timeout_seconds

    def current_uid(self) -> int:
        return os.geteuid()

    def process_uid(self, pid: int) -> Optional[int]:
        """Real UID of *pid*, or None when no source could tell."""
        try:
            return int(psutil.Process(pid).uids().real)
        except (psutil.Error, OSError) as exc:  # policy_guard: allow-silent-handler
            logger.debug("psutil uids unavailable for PID %s: %s", pid, exc)

        uid = self._uid_from_proc_status(pid)
        if uid is not None:
            return uid

        result = self._runner.run(["ps", "-p", str(pid), "-o", "uid="], self.timeout_seconds)
        if result.ok and result.text.isdigit():
            return int(result.text)
        return None

    def check_ownership(self, pid: int) -> OwnershipVerdict:
        if pid <= 0:
            return OwnershipVerdict(False, f"invalid PID: {pid}")

        owner_uid = self.process_uid(pid)
        if owner_uid is None:
            return OwnershipVerdict(False, "failed to get process owner")

        caller_uid = self.current_uid()
        if owner_uid == caller_uid:
            return OwnershipVerdict(True)
        if owner_uid == 0:
            return OwnershipVerdict(False, "process is owned by root/system - use sudo or contact system administrator")
        return OwnershipVerdict(
            False,
            f"process is owned by user '{_username_for(owner_uid)}' (you are '{_username_for(caller_uid)}') - use sudo to kill",
        )

    def scheduler_state(self, pid: int) -> str:
        """Single-letter scheduler state, or "" when unknown."""
        try:
            status = psutil.Process(pid).status()
        except (psutil.Error, OSError) as exc:  # policy_guard: allow-silent-handler
            logger.debug("psutil status unavailable for PID %s: %s", pid, exc)
        else:
            code = _PSUTIL_STATE_CODES.get(status)
            if code:
                return code

        state = self._state_from_proc_stat(pid)
        if state:
            return state

        result = self._runner.run(["ps", "-p", str(pid), "-o", "state="], self.timeout_seconds)
        if result.ok and result.text:
            return result.text[0]
        return ""

    def unkillable_state(self, pid: int) -> Optional[str]:
        """Return the blocking state when *pid* cannot act on a signal."""
        state = self.scheduler_state(pid)
        return state if state in UNKILLABLE_STATES else None

    def _uid_from_proc_status(self, pid: int) -> Optional[int]:
        try:
            with open(f"/proc/{pid}/status", encoding="utf-8") as handle:
                for line in handle:
                    if line.startswith("Uid:"):
                        fields = line.split()
                        if len(fields) > 1 and fields[1].isdigit():
                            return int(fields[1])
        except OSError:  # policy_guard: allow-silent-handler
            return None
        return None

    def _state_from_proc_stat(self, pid: int) -> str:
        try:
            with open(f"/proc/{pid}/stat", encoding="utf-8") as handle:
                content = handle.read()
        except OSError:  # policy_guard: allow-silent-handler
            return ""
        # The command name is parenthesised and may contain spaces.
        _, _, tail = content.rpartition(")")
        fields = tail.split()
        return fields[0] if fields else ""


def describe_unkillable(pid: int, state: str) -> str:
    if state == "Z":
        return f"process {pid} is defunct (state: Z) and cannot be killed; its parent has not reaped it yet"
    return (
        f"process {pid} is in uninterruptible sleep (state: {state}) and cannot be killed. "
        "This usually indicates a kernel I/O wait"
    )


__all__ = ["OwnershipVerdict", "ProcessGuards", "UNKILLABLE_STATES", "describe_unkillable"]
