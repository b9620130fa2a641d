"""
Re-check that a PID still belongs to the process that was scanned.

Three signals are compared against the scanned record: start time (within a
one second tolerance), working directory (exact) and the executable's base
name (case-insensitive). A signal neither side observed counts as agreeing; a
value seen on one side only is a mismatch. An unreadable current command line
rejects the PID outright. The match is authorised when at least two signals
agree, or when working directory and start time both agree.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Optional

from .process_details import ProcessDetailResolver
from .process_models import ProcessDetails, ProcessRecord, SignalAgreement, VerificationResult

logger = logging.getLogger(__name__)

START_TIME_TOLERANCE_SECONDS = 1.0
DEFAULT_VERIFICATION_TIMEOUT_SECONDS = 5.0


def base_command(command_line: str) -> str:
    """Lower-cased executable name with path and arguments stripped."""
    parts = command_line.split()
    if not parts:
        return ""
    return os.path.basename(parts[0]).lower()


def _start_times_agree(expected: float, current: float) -> bool:
    if not expected or not current:
        return not expected and not current
    return abs(expected - current) <= START_TIME_TOLERANCE_SECONDS


def _directories_agree(expected: str, current: str) -> bool:
    if not expected or not current:
        return not expected and not current
    return expected == current


def _commands_agree(expected: str, current: str) -> bool:
    expected_base = base_command(expected)
    current_base = base_command(current)
    if not expected_base or not current_base:
        return not expected_base and not current_base
    return expected_base == current_base


def compare(expected: ProcessRecord, current: ProcessDetails) -> VerificationResult:
    """Apply the agreement rule to an already-resolved snapshot."""
    if expected.command_line.strip() and not current.command_line.strip():
        return VerificationResult(
            matches=False,
            signals=SignalAgreement(False, False, False),
            reason="cannot verify process details",
        )

    signals = SignalAgreement(
        start_time=_start_times_agree(expected.start_time, current.start_time),
        working_directory=_directories_agree(expected.working_directory, current.working_directory),
        command_base=_commands_agree(expected.command_line, current.command_line),
    )
    if signals.count >= 2 or (signals.working_directory and signals.start_time):
        return VerificationResult(matches=True, signals=signals)

    reason = (
        f"process identity mismatch: only {signals.count}/3 signals agree "
        f"(start_time={signals.start_time}, cwd={signals.working_directory}, command={signals.command_base})"
    )
    return VerificationResult(matches=False, signals=signals, reason=reason)


class IdentityVerifier:
    """``verify(pid, expected) -> VerificationResult`` under an overall timeout."""

    def __init__(
        self,
        resolver: Optional[ProcessDetailResolver] = None,
        timeout_seconds: float = DEFAULT_VERIFICATION_TIMEOUT_SECONDS,
    ):
        self._resolver = resolver or ProcessDetailResolver()
        self.timeout_seconds = timeout_seconds

    async def verify(self, pid: int, expected: ProcessRecord) -> VerificationResult:
        loop = asyncio.get_running_loop()
        try:
            current = await asyncio.wait_for(
                loop.run_in_executor(None, self._resolver.resolve, pid),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:  # policy_guard: allow-silent-handler
            logger.warning("Identity verification for PID %s timed out after %ss", pid, self.timeout_seconds)
            return VerificationResult(
                matches=False,
                signals=SignalAgreement(False, False, False),
                reason=f"verification timed out after {self.timeout_seconds:g}s",
            )

        result = compare(expected, current)
        if not result.matches:
            logger.debug("PID %s failed verification: %s", pid, result.reason)
        return result


__all__ = [
    "DEFAULT_VERIFICATION_TIMEOUT_SECONDS",
    "START_TIME_TOLERANCE_SECONDS",
    "IdentityVerifier",
    "base_command",
    "compare",
]
