"""Default development ports and port range expressions such as ``"3000-3010,8080"``."""

from __future__ import annotations

from typing import Iterable, List, Tuple

from .exceptions import PortRangeError

MIN_PORT = 1
MAX_PORT = 65535

_DEV_PORT_GROUPS: Tuple[Tuple[int, ...], ...] = (
    (3000, 3001, 3002, 3003, 3004, 3005),  # node, react, next
    (5173, 5174, 5175, 5176, 5177),  # vite
    (5000, 5001, 8000, 8001, 8080, 8081, 8888),  # flask, django, uvicorn
    (4000, 4001, 4002, 4003),
    (4200, 4201),  # angular
    (9000, 9001, 9002),
    (7000, 7001, 7002),  # phoenix
    (8080, 8081, 8082),  # spring boot
    (5000, 5001),  # dotnet
    (6000, 6001),
)


def unique_ports(ports: Iterable[int]) -> List[int]:
    return list(dict.fromkeys(ports))


DEFAULT_DEV_PORTS: Tuple[int, ...] = tuple(unique_ports(port for group in _DEV_PORT_GROUPS for port in group))


def _parse_port(text: str, label: str) -> int:
    try:
        return int(text.strip())
    except ValueError as exc:
        raise PortRangeError(f"invalid {label}: {text.strip()}", value=text) from exc


def parse_port_range(expression: str) -> List[int]:
    """
    Expand a comma-separated list of ports and inclusive ranges.

    Duplicates are dropped and first-seen order is kept.

    Raises:
        PortRangeError: On malformed items, reversed ranges, ports outside
            1-65535, or an expression that yields no port at all
    """
    ports: List[int] = []
    for raw_item in expression.split(","):
        item = raw_item.strip()
        if not item:
            continue

        if "-" in item:
            bounds = item.split("-")
            if len(bounds) != 2:
                raise PortRangeError(f"invalid port range: {item}", value=item)
            start = _parse_port(bounds[0], "start port")
            end = _parse_port(bounds[1], "end port")
            if start > end:
                raise PortRangeError(f"start port ({start}) must be <= end port ({end})", value=item)
            if start < MIN_PORT or end > MAX_PORT:
                raise PortRangeError("ports must be in range 1-65535", value=item)
            ports.extend(range(start, end + 1))
            continue

        port = _parse_port(item, "port")
        if port < MIN_PORT or port > MAX_PORT:
            raise PortRangeError(f"port must be in range 1-65535: {port}", value=item)
        ports.append(port)

    ports = unique_ports(ports)
    if not ports:
        raise PortRangeError("no valid ports specified", value=expression)
    return ports


__all__ = ["DEFAULT_DEV_PORTS", "MAX_PORT", "MIN_PORT", "parse_port_range", "unique_ports"]
