"""Liveness queries and signal delivery for single processes and process groups."""

from __future__ import annotations

import logging
import os
import signal
from typing import List, Optional

import psutil

logger = logging.getLogger(__name__)


class ProcessSignaler:
    """All OS-level signal traffic of the termination engine goes through here."""

    def exists(self, pid: int) -> bool:
        """True while the PID is in the process table, defunct entries included."""
        if pid <= 0:
            return False
        return psutil.pid_exists(pid)

    def is_running(self, pid: int) -> bool:
        """True while the PID exists and has not exited (zombies count as stopped)."""
        if pid <= 0:
            return False
        try:
            return psutil.Process(pid).status() != psutil.STATUS_ZOMBIE
        except psutil.NoSuchProcess:  # policy_guard: allow-silent-handler
            return False
        except psutil.AccessDenied:  # policy_guard: allow-silent-handler
            return psutil.pid_exists(pid)

    def getpgid(self, pid: int) -> Optional[int]:
        try:
            return os.getpgid(pid)
        except OSError as exc:  # policy_guard: allow-silent-handler
            logger.debug("Process group of PID %s unavailable: %s", pid, exc)
            return None

    def own_pgid(self) -> int:
        return os.getpgrp()

    def group_members(self, pgid: int) -> List[int]:
        """PIDs currently in process group *pgid*, zombies excluded."""
        members: List[int] = []
        for proc in psutil.process_iter(["status"]):
            try:
                if proc.info["status"] == psutil.STATUS_ZOMBIE:
                    continue
                if os.getpgid(proc.pid) == pgid:
                    members.append(proc.pid)
            except (OSError, psutil.Error):  # policy_guard: allow-silent-handler
                continue
        return members

    def is_group_running(self, pgid: int) -> bool:
        return bool(self.group_members(pgid))

    def signal_group(self, pgid: int, sig: signal.Signals) -> None:
        logger.debug("Sending %s to process group %s", sig.name, pgid)
        os.killpg(pgid, sig)

    def signal_pid(self, pid: int, sig: signal.Signals) -> None:
        logger.debug("Sending %s to PID %s", sig.name, pid)
        os.kill(pid, sig)


__all__ = ["ProcessSignaler"]
