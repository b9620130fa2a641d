"""Read ``KEY=value`` files used as fallback ``PORTZAP_*`` settings."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional, Tuple

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)


class DotenvLoader:
    """Parses the small subset of dotenv syntax portzap understands.

    Supported: blank lines, ``#`` comments, an optional ``export`` prefix and
    single or double quotes around the value. Anything else is ignored.
    """

    @staticmethod
    def load_from_file(path: Path) -> Dict[str, str]:
        """
        Return the pairs defined in *path*; a missing file yields ``{}``.

        Raises:
            ConfigurationError: If the file exists but cannot be read
        """
        if not path.is_file():
            return {}
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigurationError.unreadable_file(path) from exc

        values: Dict[str, str] = {}
        for line in text.splitlines():
            pair = DotenvLoader.parse_line(line)
            if pair is None:
                continue
            key, value = pair
            values[key] = value
        logger.debug("Loaded %d value(s) from %s", len(values), path)
        return values

    @staticmethod
    def parse_line(line: str) -> Optional[Tuple[str, str]]:
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            return None
        if stripped.startswith("export "):
            stripped = stripped[len("export ") :]
        key, _, value = stripped.partition("=")
        key = key.strip()
        if not key:
            return None
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
            value = value[1:-1]
        return key, value


__all__ = ["DotenvLoader"]
