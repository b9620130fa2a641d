"""Exception type for bad settings, environment variables and config files."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Union


class ConfigurationError(RuntimeError):
    """Raised when a setting, environment variable or config file is unusable."""

    @classmethod
    def invalid_value(cls, name: str, value: Any, reason: str = "") -> "ConfigurationError":
        msg = f"Invalid value for {name}: {value!r}"
        if reason:
            msg += f". {reason}"
        return cls(msg)

    @classmethod
    def missing_variable(cls, name: str) -> "ConfigurationError":
        return cls(f"Required environment variable {name!r} is not set")

    @classmethod
    def bad_variable(cls, name: str, raw: str, expected: str) -> "ConfigurationError":
        """Environment variable *name* holds *raw*, which is not *expected*."""
        return cls(f"Environment variable {name!r} must be {expected} (got {raw!r})")

    @classmethod
    def unreadable_file(cls, path: Union[str, Path]) -> "ConfigurationError":
        return cls(f"Failed to read configuration file {path}")

    @classmethod
    def malformed_file(cls, path: Union[str, Path], expected: str) -> "ConfigurationError":
        return cls(f"Configuration file {path} is malformed. Expected {expected}")


__all__ = ["ConfigurationError"]
