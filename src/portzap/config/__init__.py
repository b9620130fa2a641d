"""Shared configuration helpers and dataclasses."""

from .errors import ConfigurationError
from .runtime import (
    env_bool,
    env_float,
    env_int,
    env_list,
    env_str,
    reset_default_values,
)
from .settings import PortzapSettings, get_settings, load_settings
from .user_config import DEFAULT_PROTECTED_PORTS, UserConfig

__all__ = [
    "ConfigurationError",
    "DEFAULT_PROTECTED_PORTS",
    "PortzapSettings",
    "UserConfig",
    "env_bool",
    "env_float",
    "env_int",
    "env_list",
    "env_str",
    "get_settings",
    "load_settings",
    "reset_default_values",
]
