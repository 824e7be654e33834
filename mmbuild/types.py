"""Shared type definitions for mmbuild.

This module contains enums and dataclasses shared across subpackages to
avoid circular imports.
"""

from dataclasses import dataclass
from enum import Enum


class BuildVariant(str, Enum):
    """A named build configuration."""

    RELEASE = "release"
    DEBUG = "debug"

    @property
    def log_level(self) -> int:
        """Module log verbosity written into the launcher script."""
        return 3 if self is BuildVariant.DEBUG else 2


DEFAULT_VARIANTS: tuple[BuildVariant, ...] = (BuildVariant.RELEASE, BuildVariant.DEBUG)


class BuildOutcome(str, Enum):
    """Outcome of one variant pipeline."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"


class PipelineStage(Enum):
    """The ordered stages of a variant pipeline.

    Values are (position, label) pairs; the position is used for the
    ``[n/6]`` progress prefix.
    """

    STAGE_TEMPLATE = (1, "Copying template to build directory")
    COMPILE = (2, "Compiling source code")
    CONFIGURE_LOG_LEVEL = (3, "Configuring launcher log level")
    CONFIGURE_MODULE = (4, "Configuring module descriptor")
    EMBED_BINARY = (5, "Copying compiled binaries")
    PACKAGE = (6, "Packaging module")

    @property
    def position(self) -> int:
        return self.value[0]

    @property
    def label(self) -> str:
        return self.value[1]

    @property
    def progress(self) -> str:
        """Progress prefix such as ``[2/6]``."""
        return f"[{self.position}/{len(PipelineStage)}]"


@dataclass(frozen=True)
class VersionInfo:
    """Version metadata resolved once per orchestration run.

    Attributes:
        version: Tag on HEAD, or the nearest ancestor tag.
        short_identifier: Short commit hash, sanitized branch name, or "".
        exact_tag: Whether HEAD itself carries the tag.
        identifier_kind: "commit", "branch", or None when no identifier.
    """

    version: str
    short_identifier: str = ""
    exact_tag: bool = True
    identifier_kind: str | None = None


@dataclass(frozen=True)
class ArtifactInfo:
    """Information about a packaged archive."""

    filename: str
    path: str
    size_bytes: int
    sha256: str


__all__ = [
    "DEFAULT_VARIANTS",
    "ArtifactInfo",
    "BuildOutcome",
    "BuildVariant",
    "PipelineStage",
    "VersionInfo",
]
