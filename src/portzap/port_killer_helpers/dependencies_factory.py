"""Dependency factory for PortKiller."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from ..config.settings import PortzapSettings
    from ..port_scanner import PortScanner
    from ..process_terminator import TerminationEngine


@dataclass
class PortKillerDependencies:
    """Container for all PortKiller dependencies."""

    scanner: "PortScanner"
    engine: "TerminationEngine"
    port_in_use: Callable[[int], bool]


class PortKillerDependenciesFactory:
    """Factory for creating PortKiller dependencies."""

    @staticmethod
    def create(settings: "PortzapSettings") -> PortKillerDependencies:
        """Wire the scanner and termination engine around one shared detail resolver."""
        from ..identity_verifier import IdentityVerifier
        from ..port_scanner import PortScanner
        from ..process_details import ProcessDetailResolver
        from ..process_guards import ProcessGuards
        from ..process_terminator import TerminationEngine
        from ..process_terminator_helpers import ProcessSignaler, RespawnDetector
        from .port_probe import port_in_use

        resolver = ProcessDetailResolver(settings.detail_probe_timeout_seconds)
        scanner = PortScanner(settings, resolver=resolver)
        engine = TerminationEngine(
            settings,
            verifier=IdentityVerifier(resolver, settings.verification_timeout_seconds),
            guards=ProcessGuards(timeout_seconds=settings.detail_probe_timeout_seconds),
            signaler=ProcessSignaler(),
            respawn_detector=RespawnDetector(timeout_seconds=settings.detail_probe_timeout_seconds),
        )
        return PortKillerDependencies(scanner=scanner, engine=engine, port_in_use=port_in_use)


__all__ = ["PortKillerDependencies", "PortKillerDependenciesFactory"]
