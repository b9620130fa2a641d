"""Parse ``ps`` start-time strings into Unix timestamps."""

from __future__ import annotations

import logging
import time
from datetime import datetime

logger = logging.getLogger(__name__)

# lstart (BSD and GNU) and an ISO fallback. Runs of spaces are collapsed before
# parsing, so single- and double-spaced day columns share one layout.
_START_TIME_LAYOUTS = (
    "%a %b %d %H:%M:%S %Y",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
)


def parse_start_time(raw: str) -> float:
    """Return the start time as a Unix timestamp, or 0.0 when no layout fits."""
    normalized = " ".join(raw.split())
    if not normalized:
        return 0.0
    for layout in _START_TIME_LAYOUTS:
        try:
            parsed = datetime.strptime(normalized, layout)
        except ValueError:  # policy_guard: allow-silent-handler
            continue
        return time.mktime(parsed.timetuple())
    logger.debug("Unrecognised start time %r", raw)
    return 0.0


__all__ = ["parse_start_time"]
