"""Configuration settings for mmbuild.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the MMBUILD_ prefix.
    CLI flags can override these at runtime. Relative directory settings
    are resolved against ``project_root``.
    """

    model_config = SettingsConfigDict(
        env_prefix="MMBUILD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Paths
    project_root: Path = Field(
        default_factory=Path.cwd,
        description="Repository root the build runs from",
    )
    template_dir: Path = Field(
        default=Path("template"),
        description="Module template tree copied into every staging directory",
    )
    source_dir: Path = Field(
        default=Path("src"),
        description="Directory holding the build tool's Makefile",
    )
    binary_subdir: str = Field(
        default="bin",
        description=(
            "Output directory the build tool writes, relative to source_dir. "
            "It is embedded under the same name in the staging directory."
        ),
    )
    output_dir: Path = Field(
        default=Path("build"),
        description="Directory receiving staging trees and archives",
    )

    # Module layout
    product_name: str = Field(
        default="meta-magic_mount",
        description="Archive filename prefix",
    )
    launcher_script: str = Field(
        default="metamount.sh",
        description="Launcher script carrying the log level assignment",
    )
    log_level_key: str = Field(
        default="MODULE_METADATA_LOGLEVEL",
        description="Shell variable holding the module log level",
    )
    module_descriptor: str = Field(
        default="module.prop",
        description="Module descriptor carrying version and versionCode",
    )
    archive_excludes: list[str] = Field(
        default_factory=lambda: ["*.git*"],
        description="Glob patterns excluded from the archive",
    )

    # Tools
    build_tool: str = Field(
        default="make",
        description="Build tool invoked in source_dir",
    )
    compile_timeout: int | None = Field(
        default=None,
        ge=60,
        description="Timeout for each build tool invocation (None = no timeout)",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    def resolve_path(self, path: Path) -> Path:
        """Resolve a configured path against the project root.

        Args:
            path: Absolute path, or path relative to project_root.

        Returns:
            Absolute path.
        """
        if path.is_absolute():
            return path
        return self.project_root / path

    @property
    def template_path(self) -> Path:
        return self.resolve_path(self.template_dir)

    @property
    def source_path(self) -> Path:
        return self.resolve_path(self.source_dir)

    @property
    def binary_path(self) -> Path:
        """Directory the build tool leaves its compiled output in."""
        return self.source_path / self.binary_subdir

    @property
    def output_path(self) -> Path:
        return self.resolve_path(self.output_dir)


def get_settings() -> Settings:
    """Get the application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = ["Settings", "get_settings", "print_settings_json"]
