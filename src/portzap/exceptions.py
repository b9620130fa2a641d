"""Exception classes for port scanning and process termination.

Exceptions here describe operation-level failures. Per-port and per-PID
failures are reported as values (``PortScanError`` entries and
``TerminationOutcome``) so that one failure never aborts a batch.

Exception classes support two patterns:
1. No-argument raise: raise ScanError()
2. Contextual attributes: err = ProbeTimeoutError(port=3000, timeout=5.0); raise err
"""

from typing import Any


class PortzapError(Exception):
    """Base exception for all portzap errors.

    Supports keyword arguments that are stored as attributes for debugging.
    """

    def __init__(self, message: str = "", **kwargs: Any) -> None:
        if not message:
            message = self.__class__.__doc__ or "portzap error occurred"
        super().__init__(message)
        for key, value in kwargs.items():
            setattr(self, key, value)


class ToolUnavailableError(PortzapError):
    """A required system probing utility is not installed."""

    def __init__(self, message: str = "", **kwargs: Any) -> None:
        if not message:
            message = "No port scanning tools found (lsof, ss, or netstat). Please install one of them"
        super().__init__(message, **kwargs)


class ProbeTimeoutError(PortzapError):
    """A system query did not finish within its time box."""

    def __init__(self, message: str = "", **kwargs: Any) -> None:
        if not message:
            message = "System query timed out"
        super().__init__(message, **kwargs)


class ScanError(PortzapError):
    """Port scan failed without finding any process."""

    def __init__(self, message: str = "", **kwargs: Any) -> None:
        if not message:
            message = "Port scan failed"
        super().__init__(message, **kwargs)


class ScanCancelledError(PortzapError):
    """Port scan was cancelled before it completed."""

    def __init__(self, message: str = "", **kwargs: Any) -> None:
        if not message:
            message = "Operation cancelled"
        super().__init__(message, **kwargs)


class PortRangeError(PortzapError, ValueError):
    """Port list or range expression is invalid."""

    def __init__(self, message: str = "", **kwargs: Any) -> None:
        if not message:
            message = "Invalid port range"
        super().__init__(message, **kwargs)


__all__ = [
    "PortRangeError",
    "PortzapError",
    "ProbeTimeoutError",
    "ScanCancelledError",
    "ScanError",
    "ToolUnavailableError",
]
