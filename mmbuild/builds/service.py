"""Release orchestration.

This module provides the high-level build API:
- select_variants(): explicit selection or the default release+debug pair
- Orchestrator.run(): resolve the version once, run every variant pipeline
  and aggregate the results into a ReleaseSummary

Repository and version errors abort the run before any variant is built.
A failing variant never stops the variants after it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from pydantic import BaseModel, ConfigDict, computed_field

from mmbuild.builds.pipeline import VariantBuildResult, VariantPipeline
from mmbuild.config import Settings, get_settings
from mmbuild.types import DEFAULT_VARIANTS, BuildVariant, VersionInfo
from mmbuild.version.resolver import VersionResolver

logger = logging.getLogger(__name__)


class OutputDirectoryError(Exception):
    """The output directory cannot be created."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Cannot create output directory {path}: {reason}")
        self.path = path
        self.code = "output_dir_error"


class ReleaseSummary(BaseModel):
    """Aggregate result of an orchestration run."""

    model_config = ConfigDict(frozen=True)

    version: str
    short_identifier: str = ""
    exact_tag: bool = True
    results: tuple[VariantBuildResult, ...] = ()

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total(self) -> int:
        return len(self.results)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def failed(self) -> int:
        return self.total - self.succeeded

    @computed_field  # type: ignore[prop-decorator]
    @property
    def exit_code(self) -> int:
        """0 only when every requested variant succeeded."""
        return 1 if self.failed else 0


def select_variants(requested: Iterable[BuildVariant] | None) -> list[BuildVariant]:
    """Normalise the requested variants.

    Duplicates are dropped keeping first-seen order. An empty selection
    means every default variant.

    Args:
        requested: Variants named by the caller.

    Returns:
        Ordered list of variants to build.
    """
    selected = list(dict.fromkeys(requested or ()))
    if not selected:
        logger.info(
            "No build type specified, building %s versions",
            " and ".join(v.value for v in DEFAULT_VARIANTS),
        )
        return list(DEFAULT_VARIANTS)
    return selected


class Orchestrator:
    """Run the release pipeline for a set of variants.

    Args:
        settings: Effective settings; loaded from the environment if None.
        resolver: Version resolver; defaults to one rooted at project_root.
        pipeline: Variant pipeline; defaults to one using settings.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        resolver: VersionResolver | None = None,
        pipeline: VariantPipeline | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.resolver = resolver or VersionResolver(self.settings.project_root)
        self.pipeline = pipeline or VariantPipeline(self.settings)

    def _log_banner(self, variant: BuildVariant, version_info: VersionInfo) -> None:
        logger.info("Building %s version", variant.value)
        logger.info("Version: %s", version_info.version)
        if version_info.identifier_kind == "commit":
            logger.info("Git Commit: %s", version_info.short_identifier)
        elif version_info.identifier_kind == "branch":
            logger.info("Git Branch: %s", version_info.short_identifier)

    def run(self, requested: Iterable[BuildVariant] | None = None) -> ReleaseSummary:
        """Build every requested variant.

        Args:
            requested: Variants to build; empty or None builds the defaults.

        Returns:
            ReleaseSummary with one result per variant.

        Raises:
            NotARepositoryError: If project_root is not in a git repository.
            NoVersionTagError: If no tag is reachable.
            OutputDirectoryError: If the output directory cannot be created.
        """
        variants = select_variants(requested)
        version_info = self.resolver.resolve()

        output_dir = self.settings.output_path
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise OutputDirectoryError(output_dir, e.strerror or str(e)) from e

        results: list[VariantBuildResult] = []
        for variant in variants:
            self._log_banner(variant, version_info)
            result = self.pipeline.run(variant, version_info)
            if not result.success:
                logger.error("Failed to build %s version", variant.value)
            results.append(result)

        summary = ReleaseSummary(
            version=version_info.version,
            short_identifier=version_info.short_identifier,
            exact_tag=version_info.exact_tag,
            results=tuple(results),
        )
        logger.info(
            "Build summary: total=%d succeeded=%d failed=%d",
            summary.total,
            summary.succeeded,
            summary.failed,
        )
        return summary


def run_release(
    requested: Iterable[BuildVariant] | None = None,
    settings: Settings | None = None,
) -> ReleaseSummary:
    """Build the requested variants with default collaborators.

    Args:
        requested: Variants to build; empty or None builds the defaults.
        settings: Optional settings instance; uses default if not provided.

    Returns:
        ReleaseSummary.
    """
    return Orchestrator(settings).run(requested)


__all__ = [
    "Orchestrator",
    "OutputDirectoryError",
    "ReleaseSummary",
    "run_release",
    "select_variants",
]
