"""Adaptive graceful-shutdown window for process groups."""

from __future__ import annotations

DEFAULT_BASE_SECONDS = 3.0
DEFAULT_PER_MEMBER_SECONDS = 0.01
DEFAULT_CAP_SECONDS = 30.0


def adaptive_grace_window(
    members: int,
    base_seconds: float = DEFAULT_BASE_SECONDS,
    per_member_seconds: float = DEFAULT_PER_MEMBER_SECONDS,
    cap_seconds: float = DEFAULT_CAP_SECONDS,
) -> float:
    """
    Seconds to wait for a group of *members* processes to exit on SIGTERM.

    A lone process gets the base window. Every additional member adds
    ``per_member_seconds``; the result never exceeds ``cap_seconds`` and never
    drops below the base.
    """
    extra_members = max(0, members - 1)
    window = base_seconds + extra_members * per_member_seconds
    return max(base_seconds, min(window, cap_seconds))


__all__ = ["DEFAULT_BASE_SECONDS", "DEFAULT_CAP_SECONDS", "DEFAULT_PER_MEMBER_SECONDS", "adaptive_grace_window"]
