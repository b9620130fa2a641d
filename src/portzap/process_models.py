"""Shared types for port scanning, classification and termination.

A ``ProcessRecord`` is a snapshot. Nothing may assume it still describes the
process behind its PID after any blocking operation without re-verification.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, List, Optional, Tuple

PortPredicate = Callable[[int], bool]


@dataclass(frozen=True)
class ProcessDetails:
    """Best-effort facts about a PID; every field may be empty.

    ``start_time`` is a Unix timestamp and ``0.0`` means unknown, never epoch.
    """

    command_line: str = ""
    owner: str = ""
    start_time: float = 0.0
    working_directory: str = ""

    @property
    def is_empty(self) -> bool:
        return not (self.command_line or self.owner or self.start_time or self.working_directory)


@dataclass(frozen=True)
class ProcessRecord:
    """One listener observed on one port."""

    pid: int
    port: int
    name: str = ""
    command_line: str = ""
    owner: str = ""
    start_time: float = 0.0
    working_directory: str = ""

    @classmethod
    def from_details(cls, pid: int, port: int, name: str, details: ProcessDetails) -> "ProcessRecord":
        if not name and details.command_line:
            name = details.command_line.split()[0].rsplit("/", 1)[-1]
        return cls(
            pid=pid,
            port=port,
            name=name,
            command_line=details.command_line,
            owner=details.owner,
            start_time=details.start_time,
            working_directory=details.working_directory,
        )

    def runtime(self, now: Optional[float] = None) -> Optional[float]:
        """Seconds since the process started, or None when the start time is unknown."""
        if not self.start_time:
            return None
        current = time.time() if now is None else now
        return max(0.0, current - self.start_time)


@dataclass(frozen=True)
class PortScanError:
    """Non-fatal failure while probing a single port."""

    port: int
    reason: str
    timed_out: bool = False

    def __str__(self) -> str:
        return f"port {self.port}: {self.reason}"


@dataclass
class ScanOutcome:
    """Every listener hit plus the per-port errors collected along the way."""

    records: List[ProcessRecord] = field(default_factory=list)
    errors: List[PortScanError] = field(default_factory=list)

    def unique_records(self) -> List[ProcessRecord]:
        return deduplicate_by_pid(self.records)


def deduplicate_by_pid(records: Iterable[ProcessRecord]) -> List[ProcessRecord]:
    """Keep the first observation of each PID, preserving order."""
    seen: set[int] = set()
    unique: List[ProcessRecord] = []
    for record in records:
        if record.pid in seen:
            continue
        seen.add(record.pid)
        unique.append(record)
    return unique


class Classification(Enum):
    PROTECTED = "protected"
    SAFE_DEV_SERVER = "safe_dev_server"
    NEEDS_CONFIRMATION = "needs_confirmation"


@dataclass(frozen=True)
class SignalAgreement:
    """Which identity signals agreed (or could not be compared)."""

    start_time: bool
    working_directory: bool
    command_base: bool

    @property
    def count(self) -> int:
        return sum((self.start_time, self.working_directory, self.command_base))


@dataclass(frozen=True)
class VerificationResult:
    matches: bool
    signals: SignalAgreement
    reason: str = ""


class TerminationState(Enum):
    NOT_STARTED = "not_started"
    VERIFYING_IDENTITY = "verifying_identity"
    CHECKING_PERMISSION = "checking_permission"
    ATTEMPTING_GROUP_KILL = "attempting_group_kill"
    ATTEMPTING_SINGLE_KILL = "attempting_single_kill"
    WAITING_GRACEFUL = "waiting_graceful"
    ESCALATING_FORCE = "escalating_force"
    CONFIRMED_STOPPED = "confirmed_stopped"
    CONFIRMED_GONE = "confirmed_gone"
    REJECTED = "rejected"


class OutcomeKind(Enum):
    ALREADY_GONE = "already_gone"
    GRACEFULLY_STOPPED = "gracefully_stopped"
    FORCE_STOPPED = "force_stopped"
    RESPAWNED_BY_MANAGER = "respawned_by_manager"
    PERMISSION_DENIED = "permission_denied"
    UNKILLABLE = "unkillable"
    VERIFICATION_FAILED = "verification_failed"
    ERROR = "error"
    WOULD_TERMINATE = "would_terminate"


_TERMINATED_KINDS = frozenset({OutcomeKind.ALREADY_GONE, OutcomeKind.GRACEFULLY_STOPPED, OutcomeKind.FORCE_STOPPED})


@dataclass(frozen=True)
class TerminationOutcome:
    """Result of one run of the termination state machine.

    ``detail`` always carries the human-readable reason for a refusal or
    failure. ``states`` lists every state the machine entered, in order.
    """

    pid: int
    kind: OutcomeKind
    detail: str = ""
    manager: Optional[str] = None
    stop_command: Optional[str] = None
    process_state: Optional[str] = None
    states: Tuple[TerminationState, ...] = ()

    @property
    def terminated(self) -> bool:
        return self.kind in _TERMINATED_KINDS

    @property
    def hypothetical(self) -> bool:
        return self.kind is OutcomeKind.WOULD_TERMINATE

    @property
    def final_state(self) -> TerminationState:
        return self.states[-1] if self.states else TerminationState.NOT_STARTED

    def describe(self) -> str:
        if self.kind is OutcomeKind.ALREADY_GONE:
            return f"PID {self.pid} already gone"
        if self.kind is OutcomeKind.GRACEFULLY_STOPPED:
            return f"PID {self.pid} terminated gracefully"
        if self.kind is OutcomeKind.FORCE_STOPPED:
            return f"PID {self.pid} force killed"
        if self.kind is OutcomeKind.WOULD_TERMINATE:
            return f"PID {self.pid} (would terminate)"
        if self.kind is OutcomeKind.RESPAWNED_BY_MANAGER:
            return f"PID {self.pid} respawned (managed by {self.manager}). Stop the service instead: {self.stop_command}"
        return f"PID {self.pid}: {self.detail}"


__all__ = [
    "Classification",
    "OutcomeKind",
    "PortPredicate",
    "PortScanError",
    "ProcessDetails",
    "ProcessRecord",
    "ScanOutcome",
    "SignalAgreement",
    "TerminationOutcome",
    "TerminationState",
    "VerificationResult",
    "deduplicate_by_pid",
]
