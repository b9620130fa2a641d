"""Human-readable rendering of listeners and runtimes."""

from __future__ import annotations

import time
from typing import Optional

from .process_models import ProcessRecord

COMMAND_PREVIEW_LENGTH = 60
DIRECTORY_PREVIEW_LENGTH = 40
MISSING_COMMAND = "(command not available)"


def format_runtime(seconds: Optional[float]) -> str:
    """Render a duration as whole seconds, minutes, hours or days."""
    if seconds is None:
        return "?"
    if seconds < 60:
        return f"{int(seconds)}s"
    if seconds < 3600:
        return f"{int(seconds // 60)}m"
    if seconds < 86400:
        return f"{int(seconds // 3600)}h"
    return f"{int(seconds // 86400)}d"


def truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


def describe_record(
    record: ProcessRecord,
    *,
    now: Optional[float] = None,
    command_length: int = COMMAND_PREVIEW_LENGTH,
    directory_length: int = DIRECTORY_PREVIEW_LENGTH,
) -> str:
    """``:PORT PID N (name) [runtime] - command [cwd]``"""
    current = time.time() if now is None else now
    text = f":{record.port} PID {record.pid} ({record.name}) [{format_runtime(record.runtime(current))}]"
    if record.command_line:
        text += f" - {truncate(record.command_line, command_length)}"
    else:
        text += f" - {MISSING_COMMAND}"
    if record.working_directory:
        text += f" [{truncate(record.working_directory, directory_length)}]"
    return text


__all__ = ["MISSING_COMMAND", "describe_record", "format_runtime", "truncate"]
