"""Per-variant build pipeline.

VariantPipeline runs six ordered stages for one build variant:

1. Reset the staging directory and copy the template into it
2. Clean and compile the sources for the variant
3. Set the log level in the launcher script
4. Set version and versionCode in the module descriptor
5. Copy the compiled binaries into the staging directory
6. Zip the staging directory into the output directory

The first failing stage stops the pipeline. Failures are returned as a
failed VariantBuildResult, never raised, and leave the staging directory
and compiler output in place for inspection. On success both are removed.
"""

from __future__ import annotations

import logging
import zipfile
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from mmbuild.builds.compiler import compile_variant
from mmbuild.builds.documents import Dialect, KeyValueDocument
from mmbuild.builds.errors import (
    BinaryMissingError,
    ConfigFileMissingError,
    CopyFailedError,
    PackagingFailedError,
    PipelineError,
    RewriteFailedError,
    TemplateMissingError,
)
from mmbuild.builds.packaging import (
    compose_archive_name,
    create_archive,
    describe_artifact,
    make_version_code,
)
from mmbuild.builds.staging import (
    copy_tree,
    copy_tree_contents,
    remove_tree,
    reset_directory,
    staging_dir_for,
)
from mmbuild.commands import CommandRunner, run_command
from mmbuild.config import Settings
from mmbuild.types import (
    ArtifactInfo,
    BuildOutcome,
    BuildVariant,
    PipelineStage,
    VersionInfo,
)

logger = logging.getLogger(__name__)

# Keys rewritten in the module descriptor
VERSION_KEY = "version"
VERSION_CODE_KEY = "versionCode"


class VariantBuildResult(BaseModel):
    """Outcome of one variant pipeline.

    Attributes:
        variant: Variant that was built.
        outcome: succeeded or failed.
        artifact: Archive description on success.
        version_code: Version code written into the descriptor, if reached.
        error_stage: Label of the failing stage.
        error_code: Machine-readable error code.
        error_message: Human-readable reason.
    """

    model_config = ConfigDict(frozen=True)

    variant: BuildVariant
    outcome: BuildOutcome
    artifact: ArtifactInfo | None = None
    version_code: str | None = None
    error_stage: str | None = None
    error_code: str | None = None
    error_message: str | None = None

    @property
    def success(self) -> bool:
        return self.outcome is BuildOutcome.SUCCEEDED


def rewrite_document(
    path: Path,
    dialect: Dialect,
    values: dict[str, str],
    stage: PipelineStage,
) -> None:
    """Set keys in a configuration file in place.

    Args:
        path: File to rewrite.
        dialect: Assignment syntax of the file.
        values: Keys and their new values.
        stage: Stage reported on failure.

    Raises:
        ConfigFileMissingError: If path does not exist.
        RewriteFailedError: If a key is not assigned in the file or I/O fails.
    """
    if not path.is_file():
        raise ConfigFileMissingError(path, stage)

    try:
        document = KeyValueDocument.load(path, dialect)
        for key, value in values.items():
            document.set(key, value)
        document.save(path)
    except KeyError as e:
        raise RewriteFailedError(
            f"Failed to modify {path.name}: no {e.args[0]}= assignment found",
            stage,
        ) from e
    except (OSError, UnicodeDecodeError) as e:
        raise RewriteFailedError(f"Failed to modify {path.name}: {e}", stage) from e


class VariantPipeline:
    """Build, configure and package one variant.

    Args:
        settings: Effective settings (paths, names, build tool).
        runner: Command runner used for the build tool.
        clock: Returns the current local time; used for the version code.
    """

    def __init__(
        self,
        settings: Settings,
        runner: CommandRunner = run_command,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.settings = settings
        self._runner = runner
        self._clock = clock

    def staging_dir(self, variant: BuildVariant) -> Path:
        return staging_dir_for(self.settings.output_path, variant)

    def stage_template(self, staging_dir: Path) -> None:
        """Stage 1: reset staging_dir and copy the template into it."""
        stage = PipelineStage.STAGE_TEMPLATE
        template = self.settings.template_path
        try:
            reset_directory(staging_dir)
        except OSError as e:
            raise CopyFailedError(f"Failed to reset {staging_dir}: {e}", stage) from e

        if not template.is_dir():
            raise TemplateMissingError(template)

        try:
            copy_tree_contents(template, staging_dir)
        except OSError as e:
            raise CopyFailedError(f"Failed to copy template: {e}", stage) from e

    def compile(self, variant: BuildVariant, version: str) -> None:
        """Stage 2: clean and build the sources."""
        compile_variant(
            self.settings.source_path,
            variant,
            version,
            build_tool=self.settings.build_tool,
            runner=self._runner,
            timeout=self.settings.compile_timeout,
        )

    def configure_log_level(self, staging_dir: Path, variant: BuildVariant) -> None:
        """Stage 3: write the variant's log level into the launcher script."""
        rewrite_document(
            staging_dir / self.settings.launcher_script,
            Dialect.SHELL,
            {self.settings.log_level_key: str(variant.log_level)},
            PipelineStage.CONFIGURE_LOG_LEVEL,
        )
        logger.info(
            "%s configuration completed (%s=%d)",
            self.settings.launcher_script,
            self.settings.log_level_key,
            variant.log_level,
        )

    def configure_module(self, staging_dir: Path, version: str) -> str:
        """Stage 4: write version and a fresh versionCode into the descriptor.

        Returns:
            The version code that was written.
        """
        version_code = make_version_code(self._clock())
        rewrite_document(
            staging_dir / self.settings.module_descriptor,
            Dialect.PROPERTIES,
            {VERSION_KEY: version, VERSION_CODE_KEY: version_code},
            PipelineStage.CONFIGURE_MODULE,
        )
        logger.info(
            "%s configuration completed (version=%s, versionCode=%s)",
            self.settings.module_descriptor,
            version,
            version_code,
        )
        return version_code

    def embed_binary(self, staging_dir: Path) -> None:
        """Stage 5: copy the build tool's output directory into staging_dir."""
        binary_dir = self.settings.binary_path
        if not binary_dir.is_dir():
            raise BinaryMissingError(binary_dir)
        try:
            copy_tree(binary_dir, staging_dir / self.settings.binary_subdir)
        except OSError as e:
            raise CopyFailedError(
                f"Failed to copy {binary_dir}: {e}", PipelineStage.EMBED_BINARY
            ) from e

    def package(
        self,
        staging_dir: Path,
        variant: BuildVariant,
        version_info: VersionInfo,
        version_code: str,
    ) -> ArtifactInfo:
        """Stage 6: zip staging_dir into the output directory."""
        archive_name = compose_archive_name(
            self.settings.product_name,
            version_info.version,
            variant,
            version_code,
            version_info.short_identifier,
        )
        output_dir = self.settings.output_path
        archive_path = output_dir / archive_name
        if archive_path.parent != output_dir:
            raise PackagingFailedError(
                f"Archive name {archive_name!r} is not a plain file name "
                f"(check the version {version_info.version!r})"
            )
        try:
            create_archive(staging_dir, archive_path, self.settings.archive_excludes)
            return describe_artifact(archive_path)
        except (OSError, zipfile.BadZipFile, ValueError) as e:
            raise PackagingFailedError(f"Packaging failed: {e}") from e

    def cleanup(self, staging_dir: Path) -> None:
        """Remove the staging directory and the compiler output."""
        for path in (staging_dir, self.settings.binary_path):
            try:
                remove_tree(path)
            except OSError as e:
                logger.warning("Failed to remove %s: %s", path, e)

    def run(self, variant: BuildVariant, version_info: VersionInfo) -> VariantBuildResult:
        """Run all stages for a variant.

        Args:
            variant: Variant to build.
            version_info: Version resolved for this run.

        Returns:
            VariantBuildResult; failed if any stage failed.
        """
        staging_dir = self.staging_dir(variant)
        version = version_info.version
        version_code: str | None = None
        stage = PipelineStage.STAGE_TEMPLATE

        try:
            logger.info("%s %s...", stage.progress, stage.label)
            self.stage_template(staging_dir)

            stage = PipelineStage.COMPILE
            logger.info("%s %s...", stage.progress, stage.label)
            self.compile(variant, version)

            stage = PipelineStage.CONFIGURE_LOG_LEVEL
            logger.info("%s %s...", stage.progress, stage.label)
            self.configure_log_level(staging_dir, variant)

            stage = PipelineStage.CONFIGURE_MODULE
            logger.info("%s %s...", stage.progress, stage.label)
            version_code = self.configure_module(staging_dir, version)

            stage = PipelineStage.EMBED_BINARY
            logger.info("%s %s...", stage.progress, stage.label)
            self.embed_binary(staging_dir)

            stage = PipelineStage.PACKAGE
            logger.info("%s %s...", stage.progress, stage.label)
            artifact = self.package(staging_dir, variant, version_info, version_code)
        except PipelineError as e:
            logger.error("%s %s failed: %s", e.stage.progress, e.stage.label, e)
            return VariantBuildResult(
                variant=variant,
                outcome=BuildOutcome.FAILED,
                version_code=version_code,
                error_stage=e.stage.label,
                error_code=e.code,
                error_message=str(e),
            )

        self.cleanup(staging_dir)
        logger.info("Build completed! Output file: %s", artifact.path)
        return VariantBuildResult(
            variant=variant,
            outcome=BuildOutcome.SUCCEEDED,
            artifact=artifact,
            version_code=version_code,
        )


__all__ = [
    "VERSION_CODE_KEY",
    "VERSION_KEY",
    "VariantBuildResult",
    "VariantPipeline",
    "rewrite_document",
]
