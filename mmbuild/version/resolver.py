"""Resolve the release version and short identifier from git.

The version is the tag on HEAD or, failing that, the nearest ancestor tag.
The short identifier is the abbreviated commit hash, falling back to a
sanitized branch name. Only read-only git commands are issued.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from mmbuild.commands import CommandExecutionError, CommandRunner, run_command
from mmbuild.types import VersionInfo

logger = logging.getLogger(__name__)

# Characters allowed verbatim in a branch-derived identifier
_UNSAFE_IDENTIFIER_CHARS = re.compile(r"[^A-Za-z0-9_-]")


class VersionResolutionError(Exception):
    """Base error for failures that abort the whole orchestration run."""

    def __init__(self, message: str, code: str = "version_error") -> None:
        super().__init__(message)
        self.code = code


class NotARepositoryError(VersionResolutionError):
    """The project root is not inside a git repository."""

    def __init__(self, path: Path, reason: str | None = None) -> None:
        message = f"Not in a git repository: {path}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message, code="not_a_repository")
        self.path = path


class NoVersionTagError(VersionResolutionError):
    """No tag is reachable from HEAD."""

    def __init__(self) -> None:
        super().__init__(
            "Unable to get git tag, please create a tag first "
            "(hint: git tag v1.0.0)",
            code="no_version_tag",
        )


def sanitize_branch_name(branch: str) -> str:
    """Make a branch name safe for use in a filename.

    Every character outside ``[A-Za-z0-9_-]`` is replaced by ``_``, one for
    one, so the result has the same length as the input.

    Args:
        branch: Raw branch name, e.g. ``feature/my-thing#1``.

    Returns:
        Sanitized name, e.g. ``feature_my-thing_1``.
    """
    return _UNSAFE_IDENTIFIER_CHARS.sub("_", branch)


class VersionResolver:
    """Read version metadata from the repository at ``repo_path``.

    Args:
        repo_path: Directory inside the repository.
        runner: Command runner, defaults to run_command.
        git: git executable name or path.
    """

    def __init__(
        self,
        repo_path: Path,
        runner: CommandRunner = run_command,
        git: str = "git",
    ) -> None:
        self.repo_path = repo_path
        self._runner = runner
        self._git = git

    def _git_output(self, *args: str) -> str | None:
        """Run a git command, returning stripped stdout or None on failure."""
        try:
            result = self._runner([self._git, *args], cwd=self.repo_path)
        except CommandExecutionError as e:
            logger.debug("git %s could not run: %s", " ".join(args), e)
            return None
        if not result.success:
            return None
        output = result.stdout.strip()
        return output or None

    def ensure_repository(self) -> None:
        """Check that repo_path is inside a git repository.

        Raises:
            NotARepositoryError: If it is not, or git is unavailable.
        """
        try:
            result = self._runner(
                [self._git, "rev-parse", "--git-dir"], cwd=self.repo_path
            )
        except CommandExecutionError as e:
            raise NotARepositoryError(self.repo_path, reason=str(e)) from e
        if not result.success:
            raise NotARepositoryError(self.repo_path)

    def resolve_version(self) -> tuple[str, bool]:
        """Resolve the release version.

        Returns:
            Tuple of (version, exact_tag).

        Raises:
            NoVersionTagError: If no tag is reachable.
        """
        version = self._git_output("describe", "--tags", "--exact-match")
        if version:
            return version, True

        version = self._git_output("describe", "--tags", "--abbrev=0")
        if version:
            logger.warning(
                "Current commit has no tag, using nearest tag: %s", version
            )
            return version, False

        raise NoVersionTagError()

    def resolve_identifier(self) -> tuple[str, str | None]:
        """Resolve the short identifier. Never fails.

        Returns:
            Tuple of (identifier, kind) where kind is "commit", "branch"
            or None when neither could be read.
        """
        commit = self._git_output("rev-parse", "--short", "HEAD")
        if commit:
            return commit, "commit"

        branch = self._git_output("rev-parse", "--abbrev-ref", "HEAD")
        if branch:
            logger.warning("Unable to get commit, using branch name: %s", branch)
            return sanitize_branch_name(branch), "branch"

        logger.warning("Unable to get commit and branch information")
        return "", None

    def resolve(self) -> VersionInfo:
        """Resolve version and identifier.

        Returns:
            VersionInfo for this run.

        Raises:
            NotARepositoryError: If repo_path is not in a git repository.
            NoVersionTagError: If no tag is reachable.
        """
        self.ensure_repository()
        version, exact = self.resolve_version()
        identifier, kind = self.resolve_identifier()
        return VersionInfo(
            version=version,
            short_identifier=identifier,
            exact_tag=exact,
            identifier_kind=kind,
        )


__all__ = [
    "NoVersionTagError",
    "NotARepositoryError",
    "VersionResolutionError",
    "VersionResolver",
    "sanitize_branch_name",
]
