"""
Termination state machine for a single listener.

    NOT_STARTED -> VERIFYING_IDENTITY -> CHECKING_PERMISSION
        -> ATTEMPTING_GROUP_KILL | ATTEMPTING_SINGLE_KILL
        -> WAITING_GRACEFUL -> ESCALATING_FORCE
        -> CONFIRMED_STOPPED | CONFIRMED_GONE | REJECTED

Identity verification runs immediately before the first signal, never earlier,
so a PID recycled while the user was answering a prompt is never signalled.
"""

from __future__ import annotations

import asyncio
import logging
import signal
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional

import psutil

from .config.settings import PortzapSettings
from .exceptions import PortzapError
from .identity_verifier import IdentityVerifier
from .process_details import ProcessDetailResolver
from .process_guards import ProcessGuards, describe_unkillable
from .process_models import OutcomeKind, ProcessRecord, TerminationOutcome, TerminationState
from .process_terminator_helpers import ProcessSignaler, RespawnDetector, adaptive_grace_window

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


@dataclass
class _Run:
    """Mutable bookkeeping for one pass through the state machine."""

    pid: int
    states: List[TerminationState] = field(default_factory=lambda: [TerminationState.NOT_STARTED])

    def enter(self, state: TerminationState) -> None:
        logger.debug("PID %s -> %s", self.pid, state.value)
        self.states.append(state)

    def finish(self, state: TerminationState, kind: OutcomeKind, detail: str = "", **extra) -> TerminationOutcome:
        self.enter(state)
        return TerminationOutcome(pid=self.pid, kind=kind, detail=detail, states=tuple(self.states), **extra)


class _StopFailed(Exception):
    """Raised internally when a process survived every signal."""


class TerminationEngine:
    """Run the termination state machine for one record at a time."""

    def __init__(
        self,
        settings: PortzapSettings,
        *,
        verifier: Optional[IdentityVerifier] = None,
        guards: Optional[ProcessGuards] = None,
        signaler: Optional[ProcessSignaler] = None,
        respawn_detector: Optional[RespawnDetector] = None,
        sleep: SleepFunc = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings
        self._verifier = verifier or IdentityVerifier(
            ProcessDetailResolver(settings.detail_probe_timeout_seconds),
            settings.verification_timeout_seconds,
        )
        self._guards = guards or ProcessGuards(timeout_seconds=settings.detail_probe_timeout_seconds)
        self._signaler = signaler or ProcessSignaler()
        self._respawn = respawn_detector or RespawnDetector(timeout_seconds=settings.detail_probe_timeout_seconds)
        self._sleep = sleep
        self._clock = clock

    async def terminate(self, record: ProcessRecord) -> TerminationOutcome:
        """Stop the process behind *record*; failures are returned, never raised."""
        run = _Run(record.pid)
        try:
            return await self._terminate(run, record)
        except (PortzapError, OSError, psutil.Error) as exc:  # policy_guard: allow-silent-handler
            logger.warning("Termination of PID %s failed: %s", record.pid, exc)
            return run.finish(TerminationState.REJECTED, OutcomeKind.ERROR, str(exc))

    async def _terminate(self, run: _Run, record: ProcessRecord) -> TerminationOutcome:
        pid = record.pid
        if not self._signaler.exists(pid):
            return run.finish(TerminationState.CONFIRMED_GONE, OutcomeKind.ALREADY_GONE)

        run.enter(TerminationState.VERIFYING_IDENTITY)
        verification = await self._verifier.verify(pid, record)
        if not verification.matches:
            return run.finish(
                TerminationState.REJECTED,
                OutcomeKind.VERIFICATION_FAILED,
                f"process verification failed (PID may have been reused): {verification.reason}",
            )

        run.enter(TerminationState.CHECKING_PERMISSION)
        ownership = self._guards.check_ownership(pid)
        if not ownership.allowed:
            return run.finish(TerminationState.REJECTED, OutcomeKind.PERMISSION_DENIED, f"permission denied: {ownership.reason}")
        blocked_state = self._guards.unkillable_state(pid)
        if blocked_state:
            return run.finish(
                TerminationState.REJECTED,
                OutcomeKind.UNKILLABLE,
                describe_unkillable(pid, blocked_state),
                process_state=blocked_state,
            )

        try:
            kind = await self._stop_group(run, pid)
            if kind is None:
                kind = await self._stop_single(run, pid)
        except _StopFailed as exc:  # policy_guard: allow-silent-handler
            return run.finish(TerminationState.REJECTED, OutcomeKind.ERROR, str(exc))
        except PermissionError as exc:  # policy_guard: allow-silent-handler
            return run.finish(TerminationState.REJECTED, OutcomeKind.PERMISSION_DENIED, f"permission denied: {exc}")

        if kind is OutcomeKind.ALREADY_GONE:
            return run.finish(TerminationState.CONFIRMED_GONE, kind)
        return await self._confirm_stopped(run, pid, kind)

    async def _stop_group(self, run: _Run, pid: int) -> Optional[OutcomeKind]:
        """Signal the whole process group; None means use the single-PID path."""
        pgid = self._signaler.getpgid(pid)
        if pgid is None or pgid <= 1:
            return None
        if pgid == self._signaler.own_pgid():
            logger.debug("PID %s shares our process group; signalling it alone", pid)
            return None

        members = self._signaler.group_members(pgid)
        window = adaptive_grace_window(
            len(members) or 1,
            self.settings.graceful_base_seconds,
            self.settings.grace_per_member_seconds,
            self.settings.grace_cap_seconds,
        )

        run.enter(TerminationState.ATTEMPTING_GROUP_KILL)
        try:
            self._signaler.signal_group(pgid, signal.SIGTERM)
        except OSError as exc:  # policy_guard: allow-silent-handler
            logger.debug("Group signal to %s failed (%s); falling back to PID %s", pgid, exc, pid)
            return None

        run.enter(TerminationState.WAITING_GRACEFUL)
        if await self._wait_until(lambda: not self._signaler.is_group_running(pgid), window):
            return OutcomeKind.GRACEFULLY_STOPPED

        run.enter(TerminationState.ESCALATING_FORCE)
        try:
            self._signaler.signal_group(pgid, signal.SIGKILL)
        except ProcessLookupError:  # policy_guard: allow-silent-handler
            return OutcomeKind.FORCE_STOPPED
        await self._sleep(self.settings.force_wait_seconds)
        if self._signaler.is_group_running(pgid):
            raise _StopFailed(f"process group {pgid} did not terminate after SIGKILL")
        return OutcomeKind.FORCE_STOPPED

    async def _stop_single(self, run: _Run, pid: int) -> OutcomeKind:
        run.enter(TerminationState.ATTEMPTING_SINGLE_KILL)
        try:
            self._signaler.signal_pid(pid, signal.SIGTERM)
        except ProcessLookupError:  # policy_guard: allow-silent-handler
            return OutcomeKind.ALREADY_GONE

        run.enter(TerminationState.WAITING_GRACEFUL)
        if await self._wait_until(lambda: not self._signaler.is_running(pid), self.settings.graceful_base_seconds):
            return OutcomeKind.GRACEFULLY_STOPPED

        run.enter(TerminationState.ESCALATING_FORCE)
        try:
            self._signaler.signal_pid(pid, signal.SIGKILL)
        except ProcessLookupError:  # policy_guard: allow-silent-handler
            return OutcomeKind.FORCE_STOPPED
        await self._sleep(self.settings.force_wait_seconds)
        if self._signaler.is_running(pid):
            raise _StopFailed(f"process {pid} did not terminate after SIGKILL")
        return OutcomeKind.FORCE_STOPPED

    async def _confirm_stopped(self, run: _Run, pid: int, kind: OutcomeKind) -> TerminationOutcome:
        await self._sleep(self.settings.respawn_check_delay_seconds)
        if self._signaler.is_running(pid):
            manager = self._respawn.detect_manager(pid)
            if manager:
                return run.finish(
                    TerminationState.REJECTED,
                    OutcomeKind.RESPAWNED_BY_MANAGER,
                    f"process {pid} respawned",
                    manager=manager,
                    stop_command=self._respawn.stop_command(pid, manager),
                )
            logger.warning("PID %s is alive again after being stopped; no service manager found", pid)
        return run.finish(TerminationState.CONFIRMED_STOPPED, kind)

    async def _wait_until(self, condition: Callable[[], bool], window: float) -> bool:
        deadline = self._clock() + window
        while self._clock() < deadline:
            if condition():
                return True
            await self._sleep(self.settings.poll_interval_seconds)
        return condition()


__all__ = ["TerminationEngine"]
