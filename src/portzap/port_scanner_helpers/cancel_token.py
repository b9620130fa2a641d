"""Cooperative cancellation shared between the event loop and probe threads."""

from __future__ import annotations

import threading

from ..exceptions import ScanCancelledError


class CancelToken:
    """Set once, observed by anyone holding a reference. Never preempts work."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ScanCancelledError()


__all__ = ["CancelToken"]
