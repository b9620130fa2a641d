"""Environment-backed lookups for ``PORTZAP_*`` variables.

A variable set in the process environment always wins. Otherwise the value
is taken from the first ``.env`` style file that defines it: ``./.env`` and
then ``~/.portzap.env``.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Optional, Sequence, TypeVar

from .errors import ConfigurationError

T = TypeVar("T")

_TRUE_VALUES = frozenset({"1", "true", "t", "yes", "y", "on"})
_FALSE_VALUES = frozenset({"0", "false", "f", "no", "n", "off"})

_DOTENV_CANDIDATES = (Path(".env"), Path.home() / ".portzap.env")

_DEFAULT_VALUES: dict[str, str] | None = None


def _load_default_values() -> dict[str, str]:
    """Merge every candidate file once; earlier files take precedence."""
    from .runtime_helpers import DotenvLoader

    global _DEFAULT_VALUES
    if _DEFAULT_VALUES is None:
        merged: dict[str, str] = {}
        for path in _DOTENV_CANDIDATES:
            for key, value in DotenvLoader.load_from_file(path).items():
                merged.setdefault(key, value)
        _DEFAULT_VALUES = merged
    return _DEFAULT_VALUES


def reset_default_values() -> None:
    """Forget cached .env defaults so the next lookup re-reads them."""
    global _DEFAULT_VALUES
    _DEFAULT_VALUES = None


def env_str(name: str, or_value: str | None = None, *, required: bool = False) -> str | None:
    """Stripped value of *name*; blank counts as unset."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        raw = _load_default_values().get(name)
    value = raw.strip() if raw is not None else ""
    if value:
        return value
    if required and or_value is None:
        raise ConfigurationError.missing_variable(name)
    return or_value


def _coerce(
    name: str,
    or_value: Optional[T],
    required: bool,
    convert: Callable[[str], T],
    expected: str,
) -> Optional[T]:
    raw = env_str(name, required=required and or_value is None)
    if raw is None:
        return or_value
    try:
        return convert(raw)
    except ValueError as exc:
        raise ConfigurationError.bad_variable(name, raw, expected) from exc


def _parse_bool(raw: str) -> bool:
    lowered = raw.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(raw)


def env_int(name: str, or_value: int | None = None, *, required: bool = False) -> int | None:
    return _coerce(name, or_value, required, int, "an integer")


def env_float(name: str, or_value: float | None = None, *, required: bool = False) -> float | None:
    return _coerce(name, or_value, required, float, "a number")


def env_bool(name: str, or_value: bool | None = None, *, required: bool = False) -> bool | None:
    return _coerce(name, or_value, required, _parse_bool, "a boolean (true/false, yes/no, on/off, 1/0)")


def env_list(
    name: str,
    *,
    or_value: Sequence[str] | None = None,
    separator: str = ",",
    unique: bool = True,
) -> tuple[str, ...] | None:
    """Split *name* on *separator*, dropping blank items (and repeats when *unique*)."""
    raw = env_str(name)
    if raw is None:
        return tuple(or_value) if or_value is not None else None

    items = [item.strip() for item in raw.split(separator) if item.strip()]
    if unique:
        items = list(dict.fromkeys(items))
    return tuple(items)


__all__ = [
    "ConfigurationError",
    "env_bool",
    "env_float",
    "env_int",
    "env_list",
    "env_str",
    "reset_default_values",
]
