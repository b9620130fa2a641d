"""Parse listener tables produced by lsof, ss and netstat."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class Listener:
    """A PID seen listening on a port, with the short name the tool reported."""

    pid: int
    name: str = ""


_SS_PID_PATTERN = re.compile(r"pid=(\d+)")
_SS_NAME_PATTERN = re.compile(r'\(\("([^"]*)"')


def _data_lines(output: str) -> List[str]:
    """Every non-blank line after the header."""
    lines = output.splitlines()
    return [line for line in lines[1:] if line.strip()]


def parse_lsof_output(output: str) -> List[Listener]:
    """``COMMAND PID USER FD TYPE DEVICE SIZE/OFF NODE NAME`` rows."""
    listeners: List[Listener] = []
    for line in _data_lines(output):
        fields = line.split()
        if len(fields) < 9:
            continue
        try:
            pid = int(fields[1])
        except ValueError:  # policy_guard: allow-silent-handler
            continue
        listeners.append(Listener(pid=pid, name=fields[0]))
    return listeners


def parse_ss_output(output: str) -> List[Listener]:
    """``LISTEN 0 128 *:3000 *:* users:(("node",pid=12345,fd=20))`` rows."""
    listeners: List[Listener] = []
    for line in _data_lines(output):
        pid_match = _SS_PID_PATTERN.search(line)
        if pid_match is None:
            continue
        name_match = _SS_NAME_PATTERN.search(line)
        name = name_match.group(1) if name_match else ""
        listeners.append(Listener(pid=int(pid_match.group(1)), name=name))
    return listeners


def parse_netstat_output(output: str, port: int) -> List[Listener]:
    """``tcp 0 0 0.0.0.0:3000 0.0.0.0:* LISTEN 12345/node`` rows for *port* only."""
    listeners: List[Listener] = []
    port_suffix = f":{port}"
    for line in output.splitlines():
        if "LISTEN" not in line:
            continue
        fields = line.split()
        if len(fields) < 7 or not fields[3].endswith(port_suffix):
            continue
        pid_text, sep, name = fields[-1].partition("/")
        if not sep:
            continue
        try:
            pid = int(pid_text)
        except ValueError:  # policy_guard: allow-silent-handler
            continue
        listeners.append(Listener(pid=pid, name=name))
    return listeners


__all__ = ["Listener", "parse_lsof_output", "parse_netstat_output", "parse_ss_output"]
