"""Helpers for resolving process details."""

from .command_runner import CommandResult, CommandRunner
from .detail_probes import DetailProbes
from .start_time_parser import parse_start_time

__all__ = [
    "CommandResult",
    "CommandRunner",
    "DetailProbes",
    "parse_start_time",
]
