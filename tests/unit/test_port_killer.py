import io

import pytest

from portzap.config import UserConfig
from portzap.exceptions import ScanError
from portzap.logging_config import EventLog
from portzap.port_killer import PortKiller
from portzap.port_killer_helpers import PortKillerDependencies
from portzap.port_scanner_helpers import CancelToken
from portzap.process_models import OutcomeKind, PortScanError, ScanOutcome, TerminationOutcome, TerminationState


class FakeScanner:
    def __init__(self, records=(), errors=(), raises=None):
        self.outcome = ScanOutcome(records=list(records), errors=list(errors))
        self.raises = raises
        self.scanned = []

    async def scan(self, ports, cancel=None):
        self.scanned.append(list(ports))
        if self.raises is not None:
            raise self.raises
        return self.outcome


class FakeEngine:
    """Termination engine double; ``kinds`` maps PID to the outcome kind."""

    def __init__(self, kinds=None, on_terminate=None):
        self.kinds = dict(kinds or {})
        self.on_terminate = on_terminate
        self.terminated = []

    async def terminate(self, record):
        self.terminated.append(record.pid)
        if self.on_terminate is not None:
            self.on_terminate(record)
        kind = self.kinds.get(record.pid, OutcomeKind.GRACEFULLY_STOPPED)
        detail = "permission denied: process is owned by root/system" if kind is OutcomeKind.PERMISSION_DENIED else ""
        return TerminationOutcome(
            pid=record.pid,
            kind=kind,
            detail=detail,
            states=(TerminationState.NOT_STARTED, TerminationState.CONFIRMED_STOPPED),
        )


async def _no_sleep(seconds):
    return None


def _killer(settings, scanner, engine, *, user_config=None, confirm=None, verbose=False):
    stream = io.StringIO()
    killer = PortKiller(
        settings,
        user_config or UserConfig.from_values([5432, 22]),
        confirm=confirm or (lambda: False),
        events=EventLog(stream, verbose=verbose),
        dependencies=PortKillerDependencies(scanner=scanner, engine=engine, port_in_use=lambda port: False),
        sleep=_no_sleep,
    )
    return killer, stream


@pytest.fixture
def listeners(make_record):
    """A vite server, an unknown java process and a protected postgres."""
    return [
        make_record(pid=101, port=5173, command_line="node /app/node_modules/.bin/vite"),
        make_record(pid=102, port=12000, name="java", command_line="java -jar app.jar", working_directory="/opt"),
        make_record(pid=103, port=5432, name="postgres", command_line="postgres -D /var/lib/postgresql"),
    ]


class TestPortKiller:
    """Tests for PortKiller.run."""

    @pytest.mark.asyncio
    async def test_nothing_found(self, fast_settings):
        engine = FakeEngine()
        killer, stream = _killer(fast_settings, FakeScanner(), engine)

        report = await killer.run([3000])

        assert report.found == 0
        assert engine.terminated == []
        assert "OK no processes found on scanned ports" in stream.getvalue()

    @pytest.mark.asyncio
    async def test_yes_terminates_everything_unprotected(self, fast_settings, listeners):
        """Protected ports are skipped even with --yes."""
        engine = FakeEngine()
        killer, stream = _killer(fast_settings, FakeScanner(listeners), engine)

        report = await killer.run([5173, 12000, 5432], yes=True)

        assert engine.terminated == [101, 102]
        assert [record.pid for record in report.protected] == [103]
        assert report.terminated == 2
        assert report.skipped == 1
        output = stream.getvalue()
        assert "SKIP :5432 PID 103 (postgres) protected" in output
        assert "STATS terminated 2 process(es), 1 skipped" in output

    @pytest.mark.asyncio
    async def test_auto_confirm_covers_safe_servers_only(self, fast_settings, listeners):
        """The unknown process still needs an answer."""
        engine = FakeEngine()
        prompts = []

        def decline():
            prompts.append(True)
            return False

        user_config = UserConfig.from_values([5432], auto_confirm_safe_actions=True)
        killer, stream = _killer(fast_settings, FakeScanner(listeners), engine, user_config=user_config, confirm=decline)

        report = await killer.run([5173, 12000, 5432])

        assert engine.terminated == [101]
        assert len(prompts) == 1
        assert [record.pid for record in report.skipped_records] == [102]
        assert "ACTION terminate 1 infrastructure/unknown process(es)? (y/N): " in stream.getvalue()
        assert "SKIP left 1 infrastructure/unknown process(es) running" in stream.getvalue()

    @pytest.mark.asyncio
    async def test_confirmed_prompts_terminate(self, fast_settings, listeners):
        engine = FakeEngine()
        killer, _ = _killer(fast_settings, FakeScanner(listeners), engine, confirm=lambda: True)

        report = await killer.run([5173, 12000, 5432])

        assert engine.terminated == [101, 102]
        assert report.skipped_records == []

    @pytest.mark.asyncio
    async def test_dry_run_never_terminates(self, fast_settings, listeners):
        """Dry-run reports what would happen and sends nothing."""
        engine = FakeEngine()
        prompts = []
        killer, stream = _killer(
            fast_settings, FakeScanner(listeners), engine, confirm=lambda: prompts.append(True) or True
        )

        report = await killer.run([5173, 12000, 5432], dry_run=True)

        assert engine.terminated == []
        assert prompts == []
        assert report.would_terminate == 2
        assert [outcome.detail for outcome in report.outcomes] == ["after confirmation", "after confirmation"]
        assert "STATS would terminate 2 process(es), 1 skipped" in stream.getvalue()

    @pytest.mark.asyncio
    async def test_failure_does_not_stop_the_batch(self, fast_settings, make_record):
        """One refused PID is reported and the next one is still attempted."""
        records = [make_record(pid=201, port=3000), make_record(pid=202, port=3001)]
        engine = FakeEngine({201: OutcomeKind.PERMISSION_DENIED})
        killer, stream = _killer(fast_settings, FakeScanner(records), engine)

        report = await killer.run([3000, 3001], yes=True)

        assert engine.terminated == [201, 202]
        assert report.failed == 1
        assert report.terminated == 1
        output = stream.getvalue()
        assert "FAIL Failed to kill PID 201: permission denied" in output
        assert "STOP PID 202" in output
        assert "STATS terminated 1 process(es), 1 failed, 0 skipped" in output

    @pytest.mark.asyncio
    async def test_duplicate_pids_are_attempted_once(self, fast_settings, make_record):
        """One process listening on two ports is one candidate."""
        records = [make_record(pid=301, port=3000), make_record(pid=301, port=3001)]
        engine = FakeEngine()
        killer, _ = _killer(fast_settings, FakeScanner(records), engine)

        await killer.run([3000, 3001], yes=True)

        assert engine.terminated == [301]

    @pytest.mark.asyncio
    async def test_cancel_between_records(self, fast_settings, make_record):
        """Remaining records are left untouched once cancelled."""
        token = CancelToken()
        records = [make_record(pid=401, port=3000), make_record(pid=402, port=3001)]
        engine = FakeEngine(on_terminate=lambda record: token.cancel())
        killer, _ = _killer(fast_settings, FakeScanner(records), engine)

        report = await killer.run([3000, 3001], yes=True, cancel=token)

        assert engine.terminated == [401]
        assert report.cancelled
        assert [record.pid for record in report.skipped_records] == [402]

    @pytest.mark.asyncio
    async def test_scan_errors_are_carried_into_report(self, fast_settings, make_record):
        scanner = FakeScanner([make_record()], errors=[PortScanError(3001, "timeout scanning port 3001", timed_out=True)])
        killer, _ = _killer(fast_settings, scanner, FakeEngine())

        report = await killer.run([3000, 3001], yes=True)

        assert report.errors[0].port == 3001

    @pytest.mark.asyncio
    async def test_scan_failure_propagates(self, fast_settings):
        killer, _ = _killer(fast_settings, FakeScanner(raises=ScanError("scan errors encountered")), FakeEngine())

        with pytest.raises(ScanError):
            await killer.run([3000])

    @pytest.mark.asyncio
    async def test_only_protected_found(self, fast_settings, make_record):
        records = [make_record(pid=501, port=22, name="sshd", command_line="sshd")]
        killer, stream = _killer(fast_settings, FakeScanner(records), FakeEngine())

        await killer.run([22], yes=True)

        assert "OK no processes to terminate, 1 protected" in stream.getvalue()

    @pytest.mark.asyncio
    async def test_verbose_shows_classification(self, fast_settings, listeners, monkeypatch):
        monkeypatch.setattr("portzap.port_killer.describe_container", lambda pid: "")
        killer, stream = _killer(fast_settings, FakeScanner(listeners[:1]), FakeEngine(), verbose=True)

        await killer.run([5173], dry_run=True)

        assert "INFO PID 101 classified as safe_dev_server (node dev tool)" in stream.getvalue()
