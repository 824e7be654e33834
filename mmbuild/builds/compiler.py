"""Build tool invocation.

This module handles:
- Composing the build tool's clean and build commands for a variant
- Running them in the source directory
- Turning non-zero exits, a missing tool and timeouts into CompileFailedError

The build tool contract: ``<tool> clean`` removes previous outputs and
``<tool> <variant> VERSION=<version>`` leaves the compiled module binaries
in ``<source_dir>/<binary_subdir>``.
"""

from __future__ import annotations

import logging
from pathlib import Path

from mmbuild.builds.errors import CompileFailedError, SourceMissingError
from mmbuild.commands import (
    CommandExecutionError,
    CommandResult,
    CommandRunner,
    run_command,
)
from mmbuild.types import BuildVariant

logger = logging.getLogger(__name__)


def compose_clean_command(build_tool: str = "make") -> list[str]:
    """Compose the command that removes prior build outputs."""
    return [build_tool, "clean"]


def compose_build_command(
    variant: BuildVariant,
    version: str,
    build_tool: str = "make",
) -> list[str]:
    """Compose the build command for a variant.

    Args:
        variant: Build variant, used as the build target.
        version: Resolved release version, passed as VERSION.
        build_tool: Build tool executable.

    Returns:
        Command as list of strings suitable for subprocess.
    """
    return [build_tool, variant.value, f"VERSION={version}"]


def _run_step(
    cmd: list[str],
    source_dir: Path,
    runner: CommandRunner,
    timeout: int | None,
) -> CommandResult:
    try:
        result = runner(cmd, cwd=source_dir, timeout=timeout)
    except CommandExecutionError as e:
        raise CompileFailedError(str(e)) from e

    if result.stdout:
        logger.debug("%s output:\n%s", result.command, result.stdout.rstrip())
    if not result.success:
        stderr = result.stderr_tail()
        if stderr:
            logger.error("%s stderr:\n%s", result.command, stderr)
        raise CompileFailedError(
            f"{result.command} failed with exit code {result.returncode}",
            exit_code=result.returncode,
            stderr=stderr,
        )
    return result


def compile_variant(
    source_dir: Path,
    variant: BuildVariant,
    version: str,
    build_tool: str = "make",
    runner: CommandRunner = run_command,
    timeout: int | None = None,
) -> CommandResult:
    """Clean and build the sources for a variant.

    Args:
        source_dir: Directory holding the build tool's Makefile.
        variant: Build variant.
        version: Release version passed to the build.
        build_tool: Build tool executable.
        runner: Command runner.
        timeout: Per-command timeout in seconds (None = no timeout).

    Returns:
        CommandResult of the build command.

    Raises:
        SourceMissingError: If source_dir does not exist.
        CompileFailedError: If clean or build fails.
    """
    if not source_dir.is_dir():
        raise SourceMissingError(source_dir)

    logger.info("Running %s in %s", build_tool, source_dir)
    _run_step(compose_clean_command(build_tool), source_dir, runner, timeout)
    result = _run_step(
        compose_build_command(variant, version, build_tool),
        source_dir,
        runner,
        timeout,
    )
    logger.debug("Build finished in %.1fs", result.duration)
    return result


__all__ = [
    "compile_variant",
    "compose_build_command",
    "compose_clean_command",
]
