import dataclasses
import threading

import pytest

from portzap.exceptions import PortzapError, ProbeTimeoutError, ScanCancelledError, ScanError, ToolUnavailableError
from portzap.port_scanner import PortScanner
from portzap.port_scanner_helpers import CancelToken, Listener
from portzap.process_models import ProcessDetails


class FakeQuery:
    """ListenerQuery double answering from a per-port table.

    Values are a list of listeners or an exception instance to raise.
    """

    def __init__(self, answers=None, *, available=True, on_query=None):
        self.answers = dict(answers or {})
        self.available = available
        self.on_query = on_query
        self.queried = []

    def ensure_available(self):
        if not self.available:
            raise ToolUnavailableError()

    def list_listeners(self, port):
        self.queried.append(port)
        if self.on_query is not None:
            self.on_query(port)
        answer = self.answers.get(port, [])
        if isinstance(answer, Exception):
            raise answer
        return answer


class FakeResolver:
    def __init__(self, details=None):
        self.details = dict(details or {})

    def resolve(self, pid):
        return self.details.get(pid, ProcessDetails())


def _scanner(settings, query, resolver=None):
    return PortScanner(settings, resolver=resolver or FakeResolver(), listener_query=query)


class TestPortScanner:
    """Tests for PortScanner.scan."""

    @pytest.mark.asyncio
    async def test_nothing_listening_is_empty_not_error(self, fast_settings):
        """Ports with no listener yield an empty outcome."""
        outcome = await _scanner(fast_settings, FakeQuery()).scan([3000, 3001])

        assert outcome.records == []
        assert outcome.errors == []

    @pytest.mark.asyncio
    async def test_records_are_enriched_with_details(self, fast_settings):
        """Each hit is combined with the resolver's details."""
        query = FakeQuery({5173: [Listener(2222, "node")]})
        resolver = FakeResolver({2222: ProcessDetails("node vite", "dev", 1_700_000_000.0, "/srv/web")})

        outcome = await _scanner(fast_settings, query, resolver).scan([5173])

        (record,) = outcome.records
        assert (record.pid, record.port, record.name) == (2222, 5173, "node")
        assert record.command_line == "node vite"
        assert record.working_directory == "/srv/web"

    @pytest.mark.asyncio
    async def test_missing_name_falls_back_to_command_basename(self, fast_settings):
        """A tool that reports no name gets one from the command line."""
        query = FakeQuery({8000: [Listener(3333)]})
        resolver = FakeResolver({3333: ProcessDetails(command_line="/usr/bin/python3 -m http.server")})

        outcome = await _scanner(fast_settings, query, resolver).scan([8000])

        assert outcome.records[0].name == "python3"

    @pytest.mark.asyncio
    async def test_partial_success_keeps_found_records(self, fast_settings):
        """One failing port does not hide hits on others."""
        query = FakeQuery({3000: [Listener(1, "node")], 3001: PortzapError("failed to scan port 3001")})

        outcome = await _scanner(fast_settings, query).scan([3000, 3001])

        assert [record.pid for record in outcome.records] == [1]
        assert [error.port for error in outcome.errors] == [3001]

    @pytest.mark.asyncio
    async def test_errors_without_hits_raise_scan_error(self, fast_settings):
        """Nothing found plus at least one failure is a scan error."""
        query = FakeQuery({3000: ProbeTimeoutError("timeout scanning port 3000")})

        with pytest.raises(ScanError, match="timeout scanning port 3000") as excinfo:
            await _scanner(fast_settings, query).scan([3000, 3001])

        assert excinfo.value.errors[0].timed_out

    @pytest.mark.asyncio
    async def test_missing_tools_raise_up_front(self, fast_settings):
        """No port is probed when no tool is installed."""
        query = FakeQuery(available=False)

        with pytest.raises(ToolUnavailableError):
            await _scanner(fast_settings, query).scan([3000])
        assert query.queried == []

    @pytest.mark.asyncio
    async def test_empty_port_list(self, fast_settings):
        """No ports means no work and no tool check."""
        query = FakeQuery(available=False)

        outcome = await _scanner(fast_settings, query).scan([])

        assert outcome.records == []

    @pytest.mark.asyncio
    async def test_duplicate_ports_are_scanned_once(self, fast_settings):
        """Repeated ports are probed once."""
        query = FakeQuery()

        await _scanner(fast_settings, query).scan([3000, 3000, 3001])

        assert sorted(query.queried) == [3000, 3001]

    @pytest.mark.asyncio
    async def test_cancelled_token_raises(self, fast_settings):
        """A token cancelled before the scan stops it."""
        token = CancelToken()
        token.cancel()
        query = FakeQuery()

        with pytest.raises(ScanCancelledError):
            await _scanner(fast_settings, query).scan([3000], token)
        assert query.queried == []

    @pytest.mark.asyncio
    async def test_cancel_during_scan_raises(self, fast_settings):
        """A cancel fired by a probe is observed when the scan completes."""
        token = CancelToken()
        settings = dataclasses.replace(fast_settings, max_scan_workers=1)
        query = FakeQuery(on_query=lambda port: token.cancel())

        with pytest.raises(ScanCancelledError):
            await _scanner(settings, query).scan([3000, 3001, 3002], token)
        assert query.queried == [3000]

    @pytest.mark.asyncio
    async def test_scan_ceiling_reports_unfinished_ports(self, fast_settings):
        """Ports still pending at the ceiling become timeout errors."""
        release = threading.Event()

        def block_on_slow_port(port):
            if port == 3001:
                release.wait(5)

        settings = dataclasses.replace(fast_settings, scan_ceiling_seconds=0.2, port_probe_timeout_seconds=5.0)
        query = FakeQuery({3000: [Listener(1, "node")]}, on_query=block_on_slow_port)

        try:
            outcome = await _scanner(settings, query).scan([3000, 3001])
        finally:
            release.set()

        assert [record.pid for record in outcome.records] == [1]
        assert outcome.errors[0].port == 3001
        assert outcome.errors[0].timed_out
        assert "scan timeout exceeded" in outcome.errors[0].reason
