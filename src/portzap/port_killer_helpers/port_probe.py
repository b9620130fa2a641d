"""Bind test used to spot a port that was taken over right after a stop."""

from __future__ import annotations

import socket


def port_in_use(port: int) -> bool:
    """True when a TCP listener cannot be bound on *port* right now."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind(("", port))
        sock.listen(1)
    except OSError:  # policy_guard: allow-silent-handler
        return True
    finally:
        sock.close()
    return False


__all__ = ["port_in_use"]
