"""
Port Killer

Scans a set of ports, classifies every listener and terminates the ones the
user (or configuration) approved:

- protected ports are always skipped with their reason;
- safe development servers are stopped when ``yes`` or
  ``auto_confirm_safe_actions`` is set, otherwise after one batch prompt;
- everything else is stopped only on ``yes`` or an explicit prompt answer.

Termination is sequential: each PID's state machine finishes before the next
PID is attempted, and one PID's failure never blocks the rest of the batch.

Usage:
    from portzap.port_killer import PortKiller

    report = await PortKiller(settings, user_config).run(DEFAULT_DEV_PORTS, yes=True)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Iterable, List, Optional

from .config.settings import PortzapSettings
from .config.user_config import UserConfig
from .container_detection import describe_container
from .logging_config import ACTION, FAIL, FOUND, INFO, OK, SCAN, SKIP, STATS, STOP, EventLog
from .port_killer_helpers import BatchReport, PortKillerDependencies, PortKillerDependenciesFactory
from .port_scanner_helpers import CancelToken
from .process_classifier import explain
from .process_formatting import describe_record, format_runtime, truncate
from .process_models import Classification, OutcomeKind, ProcessRecord, TerminationOutcome, TerminationState

logger = logging.getLogger(__name__)

PORT_RELEASE_DELAY_SECONDS = 0.1

ConfirmFunc = Callable[[], bool]
SleepFunc = Callable[[float], Awaitable[None]]


def _decline() -> bool:
    return False


class PortKiller:
    """Scan, classify and terminate listeners for one batch of ports."""

    def __init__(
        self,
        settings: PortzapSettings,
        user_config: UserConfig,
        *,
        confirm: ConfirmFunc = _decline,
        events: Optional[EventLog] = None,
        dependencies: Optional[PortKillerDependencies] = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        self.settings = settings
        self.user_config = user_config
        self._confirm = confirm
        self._events = events or EventLog(enabled=False)
        deps = dependencies or PortKillerDependenciesFactory.create(settings)
        self._scanner = deps.scanner
        self._engine = deps.engine
        self._port_in_use = deps.port_in_use
        self._sleep = sleep

    async def run(
        self,
        ports: Iterable[int],
        *,
        yes: bool = False,
        dry_run: bool = False,
        cancel: Optional[CancelToken] = None,
    ) -> BatchReport:
        """
        Run one batch.

        Raises:
            ToolUnavailableError: If no listener-query tool is installed
            ScanCancelledError: If *cancel* fired during the scan
            ScanError: If the scan found nothing and at least one probe failed
        """
        token = cancel or CancelToken()
        report = BatchReport(ports=list(dict.fromkeys(ports)), dry_run=dry_run)

        self._events(SCAN, "checking %d port(s) for listening processes", len(report.ports))
        self._events.verbose("scanning ports: %s", report.ports)
        outcome = await self._scanner.scan(report.ports, token)
        report.errors = list(outcome.errors)
        for error in report.errors:
            self._events.verbose("%s", error)

        records = outcome.unique_records()
        if len(records) != len(outcome.records):
            self._events.verbose("removed %d duplicate process entries", len(outcome.records) - len(records))
        if not records:
            self._events(OK, "no processes found on scanned ports")
            return report

        self._categorize(records, report)

        await self._handle_batch(
            report.safe,
            report,
            label="safe dev server",
            heading="Safe dev servers",
            approved=yes or self.user_config.auto_confirm_safe_actions,
            token=token,
        )
        await self._handle_batch(
            report.needs_confirmation,
            report,
            label="infrastructure/unknown",
            heading="Infrastructure/unknown processes",
            approved=yes,
            token=token,
        )

        self._summarize(report)
        logger.debug(
            "Batch finished: %d terminated, %d failed, %d skipped", report.terminated, report.failed, report.skipped
        )
        return report

    def _categorize(self, records: List[ProcessRecord], report: BatchReport) -> None:
        for record in records:
            verdict = explain(record, self.user_config.is_port_protected)
            if verdict.classification is Classification.PROTECTED:
                self._events(SKIP, ":%d PID %d (%s) protected", record.port, record.pid, record.name)
                report.protected.append(record)
                continue

            self._events(FOUND, describe_record(record))
            self._events.verbose("PID %d classified as %s (%s)", record.pid, verdict.classification.value, verdict.reason)
            if self._events.verbose_enabled:
                container_note = describe_container(record.pid)
                if container_note:
                    self._events.verbose(container_note)

            if verdict.classification is Classification.SAFE_DEV_SERVER:
                report.safe.append(record)
            else:
                report.needs_confirmation.append(record)

    async def _handle_batch(
        self,
        records: List[ProcessRecord],
        report: BatchReport,
        *,
        label: str,
        heading: str,
        approved: bool,
        token: CancelToken,
    ) -> None:
        if not records:
            return

        if report.dry_run:
            detail = "" if approved else "after confirmation"
            for record in records:
                report.outcomes.append(self._hypothetical(record, detail))
                self._events(STOP, "PID %d (would terminate)", record.pid)
            return

        if token.cancelled:
            report.cancelled = True
            report.skipped_records.extend(records)
            return

        if not approved:
            self._show_confirmation(heading, records)
            self._events.prompt(ACTION, f"terminate {len(records)} {label} process(es)? (y/N): ")
            approved = self._confirm()
        if not approved:
            self._events(SKIP, "left %d %s process(es) running", len(records), label)
            report.skipped_records.extend(records)
            return

        for index, record in enumerate(records):
            if token.cancelled:
                self._events(INFO, "operation cancelled; %d process(es) not attempted", len(records) - index)
                report.cancelled = True
                report.skipped_records.extend(records[index:])
                return
            outcome = await self._engine.terminate(record)
            report.outcomes.append(outcome)
            await self._report_outcome(record, outcome)

    async def _report_outcome(self, record: ProcessRecord, outcome: TerminationOutcome) -> None:
        if outcome.kind is OutcomeKind.ALREADY_GONE:
            self._events.verbose("PID %d no longer running", record.pid)
            return
        if not outcome.terminated:
            self._events(FAIL, "Failed to kill %s", outcome.describe())
            return

        self._events(STOP, "PID %d", record.pid)
        await self._sleep(PORT_RELEASE_DELAY_SECONDS)
        if self._port_in_use(record.port):
            self._events.verbose("Port %d immediately reused by another process", record.port)

    def _show_confirmation(self, heading: str, records: List[ProcessRecord]) -> None:
        self._events(INFO, "%s (%d):", heading, len(records))
        for position, record in enumerate(records, start=1):
            line = f"  {position}. :{record.port} PID {record.pid} ({record.name}) [{format_runtime(record.runtime())}]"
            if record.command_line:
                line += f" - {truncate(record.command_line, 50)}"
            if record.working_directory:
                line += f" [{truncate(record.working_directory, 35)}]"
            self._events(INFO, line)

    @staticmethod
    def _hypothetical(record: ProcessRecord, detail: str) -> TerminationOutcome:
        return TerminationOutcome(
            pid=record.pid,
            kind=OutcomeKind.WOULD_TERMINATE,
            detail=detail,
            states=(TerminationState.NOT_STARTED,),
        )

    def _summarize(self, report: BatchReport) -> None:
        if report.dry_run and report.would_terminate:
            self._events(STATS, "would terminate %d process(es), %d skipped", report.would_terminate, report.skipped)
            return
        if report.terminated:
            if report.failed:
                self._events(
                    STATS,
                    "terminated %d process(es), %d failed, %d skipped",
                    report.terminated,
                    report.failed,
                    report.skipped,
                )
            else:
                self._events(STATS, "terminated %d process(es), %d skipped", report.terminated, report.skipped)
            return
        if report.protected and not (report.safe or report.needs_confirmation):
            self._events(OK, "no processes to terminate, %d protected", len(report.protected))
        else:
            self._events(OK, "no processes terminated")


__all__ = ["PortKiller"]
