"""Per-variant pipeline errors.

Each error names the stage it was raised from and carries a
machine-readable code. A PipelineError fails only the variant being built;
the orchestrator records it and moves on to the next variant.
"""

from __future__ import annotations

from pathlib import Path

from mmbuild.types import PipelineStage


class PipelineError(Exception):
    """Base error for a failed pipeline stage."""

    def __init__(
        self,
        message: str,
        stage: PipelineStage,
        code: str = "pipeline_error",
    ) -> None:
        super().__init__(message)
        self.stage = stage
        self.code = code


class TemplateMissingError(PipelineError):
    """An input tree the pipeline copies from does not exist."""

    def __init__(
        self,
        path: Path,
        stage: PipelineStage = PipelineStage.STAGE_TEMPLATE,
        code: str = "template_missing",
    ) -> None:
        super().__init__(f"{path} directory does not exist", stage, code)
        self.path = path


class SourceMissingError(TemplateMissingError):
    """The source directory holding the build tool's Makefile is absent."""

    def __init__(self, path: Path) -> None:
        super().__init__(path, stage=PipelineStage.COMPILE, code="source_missing")


class CopyFailedError(PipelineError):
    """A recursive copy or staging reset did not complete."""

    def __init__(self, message: str, stage: PipelineStage) -> None:
        super().__init__(message, stage, code="copy_failed")


class CompileFailedError(PipelineError):
    """The build tool exited non-zero, was missing, or timed out."""

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        stderr: str = "",
    ) -> None:
        super().__init__(message, PipelineStage.COMPILE, code="compile_failed")
        self.exit_code = exit_code
        self.stderr = stderr


class ConfigFileMissingError(PipelineError):
    """A generated configuration file is absent from the staging tree."""

    def __init__(self, path: Path, stage: PipelineStage) -> None:
        super().__init__(f"{path} does not exist", stage, code="config_missing")
        self.path = path


class RewriteFailedError(PipelineError):
    """A configuration file could not be rewritten."""

    def __init__(self, message: str, stage: PipelineStage) -> None:
        super().__init__(message, stage, code="rewrite_failed")


class BinaryMissingError(PipelineError):
    """The build tool's output directory does not exist."""

    def __init__(self, path: Path) -> None:
        super().__init__(
            f"{path} directory does not exist",
            PipelineStage.EMBED_BINARY,
            code="binary_missing",
        )
        self.path = path


class PackagingFailedError(PipelineError):
    """The archive could not be written."""

    def __init__(self, message: str) -> None:
        super().__init__(message, PipelineStage.PACKAGE, code="packaging_failed")


__all__ = [
    "BinaryMissingError",
    "CompileFailedError",
    "ConfigFileMissingError",
    "CopyFailedError",
    "PackagingFailedError",
    "PipelineError",
    "RewriteFailedError",
    "SourceMissingError",
    "TemplateMissingError",
]
