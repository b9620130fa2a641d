"""Run short-lived, read-only system queries with a hard timeout."""

from __future__ import annotations

import logging
import shutil
import subprocess
from dataclasses import dataclass
from typing import Optional, Sequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one external command.

    ``returncode`` is None when the command never produced an exit status
    (missing binary, timeout, or spawn failure).
    """

    returncode: Optional[int]
    stdout: str = ""
    timed_out: bool = False
    missing: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def text(self) -> str:
        return self.stdout.strip()


class CommandRunner:
    """Thin wrapper over ``subprocess.run`` that never raises."""

    def which(self, tool: str) -> Optional[str]:
        return shutil.which(tool)

    def run(self, args: Sequence[str], timeout: float) -> CommandResult:
        try:
            completed = subprocess.run(
                list(args),
                capture_output=True,
                text=True,
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired:  # policy_guard: allow-silent-handler
            logger.debug("Command %s timed out after %.1fs", args[0], timeout)
            return CommandResult(returncode=None, timed_out=True)
        except FileNotFoundError:  # policy_guard: allow-silent-handler
            logger.debug("Command %s not found", args[0])
            return CommandResult(returncode=None, missing=True)
        except OSError as exc:  # policy_guard: allow-silent-handler
            logger.debug("Command %s failed to start: %s", args[0], exc)
            return CommandResult(returncode=None)
        return CommandResult(returncode=completed.returncode, stdout=completed.stdout or "")


__all__ = ["CommandResult", "CommandRunner"]
