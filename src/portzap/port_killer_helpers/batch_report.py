"""Result of one scan-classify-terminate batch."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List

from ..process_models import PortScanError, ProcessRecord, TerminationOutcome


def _record_dict(record: ProcessRecord) -> Dict[str, Any]:
    return asdict(record)


def _outcome_dict(outcome: TerminationOutcome) -> Dict[str, Any]:
    return {
        "pid": outcome.pid,
        "outcome": outcome.kind.value,
        "hypothetical": outcome.hypothetical,
        "terminated": outcome.terminated,
        "detail": outcome.detail,
        "manager": outcome.manager,
        "stop_command": outcome.stop_command,
        "process_state": outcome.process_state,
        "final_state": outcome.final_state.value,
        "message": outcome.describe(),
    }


@dataclass
class BatchReport:
    """Candidates per category, per-PID outcomes and the summary counts.

    ``skipped_records`` holds candidates the user declined (or that were left
    untouched after cancellation); protected records are skipped as well.
    """

    ports: List[int] = field(default_factory=list)
    dry_run: bool = False
    safe: List[ProcessRecord] = field(default_factory=list)
    needs_confirmation: List[ProcessRecord] = field(default_factory=list)
    protected: List[ProcessRecord] = field(default_factory=list)
    skipped_records: List[ProcessRecord] = field(default_factory=list)
    outcomes: List[TerminationOutcome] = field(default_factory=list)
    errors: List[PortScanError] = field(default_factory=list)
    cancelled: bool = False

    @property
    def found(self) -> int:
        return len(self.safe) + len(self.needs_confirmation) + len(self.protected)

    @property
    def terminated(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.terminated)

    @property
    def would_terminate(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.hypothetical)

    @property
    def failed(self) -> int:
        return sum(1 for outcome in self.outcomes if not outcome.terminated and not outcome.hypothetical)

    @property
    def skipped(self) -> int:
        return len(self.protected) + len(self.skipped_records)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ports": list(self.ports),
            "dry_run": self.dry_run,
            "cancelled": self.cancelled,
            "safe": [_record_dict(record) for record in self.safe],
            "needs_confirmation": [_record_dict(record) for record in self.needs_confirmation],
            "protected": [_record_dict(record) for record in self.protected],
            "outcomes": [_outcome_dict(outcome) for outcome in self.outcomes],
            "errors": [{"port": error.port, "reason": error.reason, "timed_out": error.timed_out} for error in self.errors],
            "total": self.found,
            "terminated": self.terminated,
            "would_terminate": self.would_terminate,
            "failed": self.failed,
            "skipped": self.skipped,
        }


__all__ = ["BatchReport"]
