"""
Concurrent port scanning.

Fans one probe per port out over a bounded worker pool, enriches every hit
with process details, and applies the partial-success policy: results from
healthy ports are returned even when other ports failed, and an error is
raised only when nothing was found and at least one probe failed.
"""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from .config.settings import PortzapSettings
from .exceptions import PortzapError, ProbeTimeoutError, ScanCancelledError, ScanError
from .port_scanner_helpers import CancelToken, Listener, ListenerQuery
from .process_details import ProcessDetailResolver
from .process_models import PortScanError, ProcessRecord, ScanOutcome

logger = logging.getLogger(__name__)


@dataclass
class _PortResult:
    port: int
    records: List[ProcessRecord] = field(default_factory=list)
    error: Optional[PortScanError] = None
    cancelled: bool = False


class PortScanner:
    """``scan(ports, cancel) -> ScanOutcome`` over a bounded worker pool."""

    def __init__(
        self,
        settings: PortzapSettings,
        *,
        resolver: Optional[ProcessDetailResolver] = None,
        listener_query: Optional[ListenerQuery] = None,
    ):
        self.max_workers = max(1, settings.max_scan_workers)
        self.scan_ceiling_seconds = settings.scan_ceiling_seconds
        self.probe_timeout_seconds = settings.port_probe_timeout_seconds
        self._resolver = resolver or ProcessDetailResolver(settings.detail_probe_timeout_seconds)
        self._query = listener_query or ListenerQuery(settings.port_probe_timeout_seconds)

    async def scan(self, ports: Iterable[int], cancel: Optional[CancelToken] = None) -> ScanOutcome:
        """
        Scan *ports* and return every listener found.

        Raises:
            ToolUnavailableError: If no listener-query tool is installed
            ScanCancelledError: If *cancel* fired during the scan
            ScanError: If no process was found and at least one probe failed
        """
        token = cancel or CancelToken()
        port_list = list(dict.fromkeys(ports))
        if not port_list:
            return ScanOutcome()

        self._query.ensure_available()

        results: List[Optional[_PortResult]] = [None] * len(port_list)
        semaphore = asyncio.Semaphore(self.max_workers)
        executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="port-scan")
        tasks: List[asyncio.Task] = []
        try:
            for index, port in enumerate(port_list):
                if token.cancelled:
                    break
                tasks.append(asyncio.create_task(self._run_slot(index, port, results, semaphore, executor, token)))

            pending: set = set()
            if tasks:
                _, pending = await asyncio.wait(tasks, timeout=self.scan_ceiling_seconds)
            for task in pending:
                task.cancel()
            if pending:
                logger.warning("Scan ceiling of %ss reached with %d port(s) unfinished", self.scan_ceiling_seconds, len(pending))
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        if token.cancelled:
            raise ScanCancelledError()

        return self._collect(port_list, results)

    async def _run_slot(
        self,
        index: int,
        port: int,
        results: List[Optional[_PortResult]],
        semaphore: asyncio.Semaphore,
        executor: ThreadPoolExecutor,
        token: CancelToken,
    ) -> None:
        async with semaphore:
            if token.cancelled:
                results[index] = _PortResult(port, cancelled=True)
                return
            loop = asyncio.get_running_loop()
            try:
                listeners = await asyncio.wait_for(
                    loop.run_in_executor(executor, self._query_port, port, token),
                    timeout=self.probe_timeout_seconds,
                )
            except asyncio.TimeoutError:  # policy_guard: allow-silent-handler
                results[index] = _PortResult(port, error=PortScanError(port, f"timeout scanning port {port}", timed_out=True))
                return
            except ScanCancelledError:  # policy_guard: allow-silent-handler
                results[index] = _PortResult(port, cancelled=True)
                return
            except PortzapError as exc:  # policy_guard: allow-silent-handler
                timed_out = isinstance(exc, ProbeTimeoutError)
                results[index] = _PortResult(port, error=PortScanError(port, str(exc), timed_out=timed_out))
                return

            if token.cancelled:
                results[index] = _PortResult(port, cancelled=True)
                return
            records = await loop.run_in_executor(executor, self._enrich, port, listeners)
            results[index] = _PortResult(port, records=records)

    def _query_port(self, port: int, token: CancelToken) -> List[Listener]:
        token.raise_if_cancelled()
        return self._query.list_listeners(port)

    def _enrich(self, port: int, listeners: List[Listener]) -> List[ProcessRecord]:
        return [
            ProcessRecord.from_details(listener.pid, port, listener.name, self._resolver.resolve(listener.pid))
            for listener in listeners
        ]

    def _collect(self, port_list: List[int], results: List[Optional[_PortResult]]) -> ScanOutcome:
        outcome = ScanOutcome()
        for port, result in zip(port_list, results):
            if result is None:
                outcome.errors.append(
                    PortScanError(port, f"scan timeout exceeded ({self.scan_ceiling_seconds:g}s)", timed_out=True)
                )
                continue
            if result.cancelled:
                continue
            if result.error is not None:
                logger.debug("Port %s probe failed: %s", port, result.error.reason)
                outcome.errors.append(result.error)
                continue
            outcome.records.extend(result.records)

        if outcome.records:
            return outcome
        if outcome.errors:
            raise ScanError(f"scan errors encountered: {outcome.errors[0]}", errors=list(outcome.errors))
        return outcome


__all__ = ["PortScanner"]
