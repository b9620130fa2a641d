"""Helpers for batch orchestration."""

from .batch_report import BatchReport
from .dependencies_factory import PortKillerDependencies, PortKillerDependenciesFactory
from .port_probe import port_in_use

__all__ = ["BatchReport", "PortKillerDependencies", "PortKillerDependenciesFactory", "port_in_use"]
