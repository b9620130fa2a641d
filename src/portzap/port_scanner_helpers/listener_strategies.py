"""Interchangeable "who is listening on port P" strategies.

Strategies are tried in order. A strategy's "nothing listening" exit status
is a normal empty answer; any other failure falls through to the next one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, FrozenSet, List, Optional, Sequence

from ..exceptions import PortzapError, ProbeTimeoutError, ToolUnavailableError
from ..process_details_helpers import CommandRunner
from .listener_parsers import Listener, parse_lsof_output, parse_netstat_output, parse_ss_output

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ListenerStrategy:
    """One system tool, how to ask it about a port, and how to read its answer."""

    tool: str
    build_args: Callable[[str, int], List[str]]
    parse: Callable[[str, int], List[Listener]]
    empty_exit_codes: FrozenSet[int] = frozenset()


LSOF_STRATEGY = ListenerStrategy(
    tool="lsof",
    build_args=lambda path, port: [path, "-i", f":{port}", "-sTCP:LISTEN", "-P", "-n"],
    parse=lambda output, port: parse_lsof_output(output),
    empty_exit_codes=frozenset({1}),
)

SS_STRATEGY = ListenerStrategy(
    tool="ss",
    build_args=lambda path, port: [path, "-tlnp", f"sport = :{port}"],
    parse=lambda output, port: parse_ss_output(output),
    empty_exit_codes=frozenset({1}),
)

NETSTAT_STRATEGY = ListenerStrategy(
    tool="netstat",
    build_args=lambda path, port: [path, "-tlnp"],
    parse=parse_netstat_output,
)

DEFAULT_STRATEGIES: Sequence[ListenerStrategy] = (LSOF_STRATEGY, SS_STRATEGY, NETSTAT_STRATEGY)


class ListenerQuery:
    """Answer ``list_listeners(port)`` using the first strategy that works."""

    def __init__(
        self,
        timeout_seconds: float,
        *,
        runner: Optional[CommandRunner] = None,
        strategies: Sequence[ListenerStrategy] = DEFAULT_STRATEGIES,
    ):
        self.timeout_seconds = timeout_seconds
        self._runner = runner or CommandRunner()
        self._strategies = tuple(strategies)

    def available_tools(self) -> List[str]:
        return [strategy.tool for strategy in self._strategies if self._runner.which(strategy.tool)]

    def ensure_available(self) -> None:
        """Raise once, up front, when no strategy can run on this host."""
        if not self.available_tools():
            raise ToolUnavailableError(tools=[strategy.tool for strategy in self._strategies])

    def list_listeners(self, port: int) -> List[Listener]:
        """
        Return the listeners on *port*; empty when nothing is listening.

        Raises:
            ProbeTimeoutError: If a strategy did not answer in time
            ToolUnavailableError: If no strategy's tool is installed
            PortzapError: If every available strategy failed
        """
        if port < 1 or port > 65535:
            raise PortzapError(f"invalid port number: {port} (must be 1-65535)", port=port)

        attempted = False
        last_failure = ""
        for strategy in self._strategies:
            path = self._runner.which(strategy.tool)
            if path is None:
                continue
            attempted = True
            result = self._runner.run(strategy.build_args(path, port), self.timeout_seconds)
            if result.timed_out:
                raise ProbeTimeoutError(f"timeout scanning port {port}", port=port, tool=strategy.tool)
            if result.ok:
                return strategy.parse(result.stdout, port)
            if result.returncode in strategy.empty_exit_codes:
                return []
            last_failure = f"{strategy.tool} exited with status {result.returncode}"
            logger.debug("%s failed for port %s; trying next strategy", strategy.tool, port)

        if not attempted:
            raise ToolUnavailableError()
        raise PortzapError(f"failed to scan port {port}: {last_failure}", port=port)


__all__ = [
    "DEFAULT_STRATEGIES",
    "LSOF_STRATEGY",
    "NETSTAT_STRATEGY",
    "SS_STRATEGY",
    "ListenerQuery",
    "ListenerStrategy",
]
