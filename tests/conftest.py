"""Root pytest configuration and shared fixtures."""

from __future__ import annotations

import os
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import pytest

from portzap.config import runtime
from portzap.config.settings import PortzapSettings, get_settings
from portzap.process_details_helpers import CommandResult
from portzap.process_models import ProcessRecord


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch):
    """Keep PORTZAP_* variables and .env files of the host out of every test."""
    for name in list(os.environ):
        if name.startswith("PORTZAP_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(runtime, "_DOTENV_CANDIDATES", ())
    runtime.reset_default_values()
    get_settings.cache_clear()
    yield
    runtime.reset_default_values()
    get_settings.cache_clear()


@pytest.fixture
def fast_settings() -> PortzapSettings:
    """Settings with short waits so state-machine tests run instantly."""
    return PortzapSettings(
        max_scan_workers=4,
        scan_ceiling_seconds=5.0,
        port_probe_timeout_seconds=1.0,
        detail_probe_timeout_seconds=0.5,
        verification_timeout_seconds=1.0,
        graceful_base_seconds=3.0,
        grace_per_member_seconds=0.01,
        grace_cap_seconds=30.0,
        poll_interval_seconds=0.1,
        force_wait_seconds=0.2,
        respawn_check_delay_seconds=0.5,
    )


@pytest.fixture
def make_record() -> Callable[..., ProcessRecord]:
    def _make(
        pid: int = 4242,
        port: int = 3000,
        name: str = "node",
        command_line: str = "node server.js",
        owner: str = "dev",
        start_time: float = 1_700_000_000.0,
        working_directory: str = "/app",
    ) -> ProcessRecord:
        return ProcessRecord(
            pid=pid,
            port=port,
            name=name,
            command_line=command_line,
            owner=owner,
            start_time=start_time,
            working_directory=working_directory,
        )

    return _make


class FakeRunner:
    """CommandRunner double answering from a table keyed by the argument tuple.

    ``responses`` maps an argument tuple (tool path included) to a
    ``CommandResult``. Unknown commands answer with exit status 1.
    """

    def __init__(
        self,
        responses: Optional[Dict[Tuple[str, ...], CommandResult]] = None,
        tools: Iterable[str] = (),
    ):
        self.responses = dict(responses or {})
        self.tools = set(tools)
        self.calls: List[Tuple[str, ...]] = []

    def which(self, tool: str) -> Optional[str]:
        return f"/usr/bin/{tool}" if tool in self.tools else None

    def run(self, args: Sequence[str], timeout: float) -> CommandResult:
        key = tuple(args)
        self.calls.append(key)
        return self.responses.get(key, CommandResult(returncode=1))


@pytest.fixture
def fake_runner_cls():
    return FakeRunner
