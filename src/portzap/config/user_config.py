"""Read-only view of the persisted user configuration.

Only the two values the port subsystem consumes are exposed: the protected
port list and the auto-confirm flag. Writing the file is handled elsewhere.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Optional

import orjson

from .errors import ConfigurationError
from .runtime import env_list, env_str

logger = logging.getLogger(__name__)

DEFAULT_PROTECTED_PORTS: tuple[int, ...] = (5432, 6379, 3306, 27017)
_CONFIG_PATH_ENV = "PORTZAP_CONFIG_PATH"
_EXTRA_PORTS_ENV = "PORTZAP_EXTRA_PROTECTED_PORTS"


def default_config_path() -> Path:
    configured = env_str(_CONFIG_PATH_ENV)
    if configured:
        return Path(configured).expanduser()
    return Path.home() / ".config" / "zap" / "config.json"


def _validate_port(value: Any, source: Path) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError.invalid_value("protected_ports", value, f"Ports in {source} must be integers")
    if value < 1 or value > 65535:
        raise ConfigurationError.invalid_value("protected_ports", value, "Ports must be in range 1-65535")
    return value


def extra_protected_ports() -> tuple[int, ...]:
    """Ports from ``PORTZAP_EXTRA_PROTECTED_PORTS`` (comma separated), added on top of the file."""
    ports = []
    for item in env_list(_EXTRA_PORTS_ENV, or_value=()) or ():
        try:
            port = int(item)
        except ValueError as exc:
            raise ConfigurationError.invalid_value(_EXTRA_PORTS_ENV, item, "Ports must be integers") from exc
        if port < 1 or port > 65535:
            raise ConfigurationError.invalid_value(_EXTRA_PORTS_ENV, port, "Ports must be in range 1-65535")
        ports.append(port)
    return tuple(ports)


@dataclass(frozen=True)
class UserConfig:
    """Protected ports and the auto-confirm flag."""

    protected_ports: frozenset[int] = field(default_factory=lambda: frozenset(DEFAULT_PROTECTED_PORTS))
    auto_confirm_safe_actions: bool = False

    def is_port_protected(self, port: int) -> bool:
        return port in self.protected_ports

    @classmethod
    def from_values(cls, protected_ports: Iterable[int] = (), auto_confirm_safe_actions: bool = False) -> "UserConfig":
        ports = frozenset(protected_ports)
        if not ports:
            ports = frozenset(DEFAULT_PROTECTED_PORTS)
        return cls(protected_ports=ports, auto_confirm_safe_actions=auto_confirm_safe_actions)

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "UserConfig":
        """Load the config file, falling back to defaults when it does not exist.

        Raises:
            ConfigurationError: If the file exists but cannot be read or parsed
        """
        config_path = path if path is not None else default_config_path()
        if not config_path.exists():
            logger.debug("No config file at %s; using defaults", config_path)
            return cls.from_values(DEFAULT_PROTECTED_PORTS + extra_protected_ports())

        try:
            payload = orjson.loads(config_path.read_bytes())
        except OSError as exc:
            raise ConfigurationError.unreadable_file(config_path) from exc
        except orjson.JSONDecodeError as exc:
            raise ConfigurationError.malformed_file(config_path, "valid JSON") from exc

        if not isinstance(payload, dict):
            raise ConfigurationError.malformed_file(config_path, "a JSON object at the top level")

        raw_ports = payload.get("protected_ports") or []
        if not isinstance(raw_ports, list):
            raise ConfigurationError.invalid_value("protected_ports", raw_ports, "Expected a list of ports")
        ports = [_validate_port(value, config_path) for value in raw_ports]

        auto_confirm = payload.get("auto_confirm_safe_actions", False)
        if not isinstance(auto_confirm, bool):
            raise ConfigurationError.invalid_value("auto_confirm_safe_actions", auto_confirm, "Expected true or false")

        if not ports:
            ports = list(DEFAULT_PROTECTED_PORTS)
        return cls.from_values(ports + list(extra_protected_ports()), auto_confirm)


__all__ = ["DEFAULT_PROTECTED_PORTS", "UserConfig", "default_config_path", "extra_protected_ports"]
