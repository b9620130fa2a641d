"""
Process detail resolution.

Answers "what is this process" for a PID: command line, owner, start time and
working directory. Each field is resolved through several independent
strategies; the first non-empty answer wins. Resolution never fails: a probe
that errors or times out simply leaves its field empty.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence, TypeVar

from .process_details_helpers import CommandRunner, DetailProbes
from .process_models import ProcessDetails

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_DETAIL_PROBE_TIMEOUT_SECONDS = 2.0


def _first_answer(probes: Sequence[Callable[[int], T]], pid: int, empty: T) -> T:
    for probe in probes:
        value = probe(pid)
        if value:
            return value
    return empty


class ProcessDetailResolver:
    """Best-effort ``resolve(pid) -> ProcessDetails``."""

    def __init__(
        self,
        probe_timeout_seconds: float = DEFAULT_DETAIL_PROBE_TIMEOUT_SECONDS,
        *,
        runner: Optional[CommandRunner] = None,
        probes: Optional[DetailProbes] = None,
    ):
        self.probe_timeout_seconds = probe_timeout_seconds
        self._probes = probes or DetailProbes(runner or CommandRunner(), probe_timeout_seconds)

    def resolve(self, pid: int) -> ProcessDetails:
        if pid <= 0:
            return ProcessDetails()

        details = ProcessDetails(
            command_line=_first_answer(self._probes.command_line(), pid, ""),
            owner=_first_answer(self._probes.owner(), pid, ""),
            start_time=_first_answer(self._probes.start_time(), pid, 0.0),
            working_directory=_first_answer(self._probes.working_directory(), pid, ""),
        )
        if details.is_empty:
            logger.debug("No details available for PID %s", pid)
        return details


__all__ = ["DEFAULT_DETAIL_PROBE_TIMEOUT_SECONDS", "ProcessDetailResolver"]
