"""Tunables for scanning, verification and termination.

Values are read once from the environment (``PORTZAP_*``) and handed to the
scanner, verifier and termination engine through their constructors.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from functools import lru_cache

from .errors import ConfigurationError
from .runtime import env_bool, env_float, env_int

MAX_SCAN_WORKERS_CAP = 20


def default_scan_workers() -> int:
    """Twice the available cores, capped at 20 and never below 1."""
    cores = os.cpu_count() or 1
    return max(1, min(cores * 2, MAX_SCAN_WORKERS_CAP))


@dataclass(frozen=True)
class PortzapSettings:
    """Timeouts and limits for one invocation.

    Attributes:
        max_scan_workers: Upper bound on concurrent port probes
        scan_ceiling_seconds: Wall-clock ceiling for a whole scan
        port_probe_timeout_seconds: Timeout for a single listener query
        detail_probe_timeout_seconds: Timeout for a single process-detail query
        verification_timeout_seconds: Overall timeout for identity re-verification
        graceful_base_seconds: Grace window for a single process after SIGTERM
        grace_per_member_seconds: Extra grace per process-group member
        grace_cap_seconds: Largest grace window ever granted
        poll_interval_seconds: Liveness polling interval while waiting
        force_wait_seconds: Wait after SIGKILL before the final liveness check
        respawn_check_delay_seconds: Delay before the post-stop respawn check
        verbose: Emit diagnostic events
    """

    max_scan_workers: int = MAX_SCAN_WORKERS_CAP
    scan_ceiling_seconds: float = 30.0
    port_probe_timeout_seconds: float = 5.0
    detail_probe_timeout_seconds: float = 2.0
    verification_timeout_seconds: float = 5.0
    graceful_base_seconds: float = 3.0
    grace_per_member_seconds: float = 0.01
    grace_cap_seconds: float = 30.0
    poll_interval_seconds: float = 0.1
    force_wait_seconds: float = 0.2
    respawn_check_delay_seconds: float = 0.5
    verbose: bool = False

    def __post_init__(self) -> None:
        if self.max_scan_workers < 1:
            raise ConfigurationError.invalid_value("max_scan_workers", self.max_scan_workers, "Must be at least 1")
        for item in fields(self):
            if item.name in ("max_scan_workers", "verbose"):
                continue
            value = getattr(self, item.name)
            if value < 0:
                raise ConfigurationError.invalid_value(item.name, value, "Durations must be non-negative")
        if self.grace_cap_seconds < self.graceful_base_seconds:
            raise ConfigurationError.invalid_value(
                "grace_cap_seconds",
                self.grace_cap_seconds,
                f"Must not be smaller than graceful_base_seconds ({self.graceful_base_seconds})",
            )


def load_settings() -> PortzapSettings:
    """Build settings from ``PORTZAP_*`` environment variables."""
    defaults = PortzapSettings()
    return PortzapSettings(
        max_scan_workers=int(env_int("PORTZAP_MAX_SCAN_WORKERS", or_value=default_scan_workers())),
        scan_ceiling_seconds=float(env_float("PORTZAP_SCAN_CEILING_SECONDS", or_value=defaults.scan_ceiling_seconds)),
        port_probe_timeout_seconds=float(
            env_float("PORTZAP_PORT_PROBE_TIMEOUT_SECONDS", or_value=defaults.port_probe_timeout_seconds)
        ),
        detail_probe_timeout_seconds=float(
            env_float("PORTZAP_DETAIL_PROBE_TIMEOUT_SECONDS", or_value=defaults.detail_probe_timeout_seconds)
        ),
        verification_timeout_seconds=float(
            env_float("PORTZAP_VERIFICATION_TIMEOUT_SECONDS", or_value=defaults.verification_timeout_seconds)
        ),
        graceful_base_seconds=float(env_float("PORTZAP_GRACEFUL_BASE_SECONDS", or_value=defaults.graceful_base_seconds)),
        grace_per_member_seconds=float(
            env_float("PORTZAP_GRACE_PER_MEMBER_SECONDS", or_value=defaults.grace_per_member_seconds)
        ),
        grace_cap_seconds=float(env_float("PORTZAP_GRACE_CAP_SECONDS", or_value=defaults.grace_cap_seconds)),
        poll_interval_seconds=float(env_float("PORTZAP_POLL_INTERVAL_SECONDS", or_value=defaults.poll_interval_seconds)),
        force_wait_seconds=float(env_float("PORTZAP_FORCE_WAIT_SECONDS", or_value=defaults.force_wait_seconds)),
        respawn_check_delay_seconds=float(
            env_float("PORTZAP_RESPAWN_CHECK_DELAY_SECONDS", or_value=defaults.respawn_check_delay_seconds)
        ),
        verbose=bool(env_bool("PORTZAP_VERBOSE", or_value=False)),
    )


@lru_cache(maxsize=1)
def get_settings() -> PortzapSettings:
    return load_settings()


__all__ = ["MAX_SCAN_WORKERS_CAP", "PortzapSettings", "default_scan_workers", "get_settings", "load_settings"]
