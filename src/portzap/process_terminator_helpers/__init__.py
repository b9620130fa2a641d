"""Helpers for the termination engine."""

from .grace_window import adaptive_grace_window
from .respawn_detector import SUPERVISOR, SYSTEMD, RespawnDetector
from .signaler import ProcessSignaler

__all__ = ["ProcessSignaler", "RespawnDetector", "SUPERVISOR", "SYSTEMD", "adaptive_grace_window"]
