"""Synchronous execution of external tools.

Every external program mmbuild drives (git, the build tool) goes through
run_command, which blocks until the process exits and captures its exit
status and output. Callers decide what a non-zero exit means.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


class CommandExecutionError(Exception):
    """Raised when a command cannot be started or does not finish."""

    def __init__(
        self,
        message: str,
        command: str,
        code: str = "execution_error",
    ) -> None:
        super().__init__(message)
        self.command = command
        self.code = code


@dataclass(frozen=True)
class CommandResult:
    """Result of a finished command.

    Attributes:
        command: The command line as a shell-quoted string.
        returncode: Process exit code.
        stdout: Captured standard output.
        stderr: Captured standard error.
        duration: Wall-clock runtime in seconds.
    """

    command: str
    returncode: int
    stdout: str
    stderr: str
    duration: float = 0.0

    @property
    def success(self) -> bool:
        return self.returncode == 0

    def stderr_tail(self, lines: int = 20) -> str:
        """Return the last lines of stderr, for error messages."""
        return "\n".join(self.stderr.strip().splitlines()[-lines:])


CommandRunner = Callable[..., CommandResult]


def run_command(
    args: Sequence[str],
    cwd: Path | None = None,
    timeout: int | None = None,
) -> CommandResult:
    """Run a command to completion and capture its output.

    Args:
        args: Program and arguments.
        cwd: Working directory (None = current directory).
        timeout: Timeout in seconds (None = no timeout).

    Returns:
        CommandResult, whatever the exit code.

    Raises:
        CommandExecutionError: If the program is missing or times out.
    """
    cmd_str = shlex.join(args)
    logger.debug("Running: %s (cwd=%s)", cmd_str, cwd or ".")

    started = time.monotonic()
    try:
        result = subprocess.run(
            list(args),
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        raise CommandExecutionError(
            f"{cmd_str} timed out after {timeout} seconds",
            command=cmd_str,
            code="timeout",
        ) from e
    except OSError as e:
        raise CommandExecutionError(
            f"Failed to run {cmd_str}: {e}",
            command=cmd_str,
            code="tool_not_found" if isinstance(e, FileNotFoundError) else "execution_error",
        ) from e

    duration = time.monotonic() - started
    logger.debug("%s exited with %d after %.1fs", cmd_str, result.returncode, duration)

    return CommandResult(
        command=cmd_str,
        returncode=result.returncode,
        stdout=result.stdout or "",
        stderr=result.stderr or "",
        duration=duration,
    )


__all__ = [
    "CommandExecutionError",
    "CommandResult",
    "CommandRunner",
    "run_command",
]
