"""Thin CLI wrapper for mmbuild.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from mmbuild import __version__
from mmbuild.builds.service import Orchestrator, OutputDirectoryError, ReleaseSummary
from mmbuild.config import get_settings, print_settings_json
from mmbuild.types import BuildVariant
from mmbuild.version.resolver import VersionResolutionError

app = typer.Typer(
    name="mmbuild",
    help="Build and package meta-magic_mount release archives",
    add_completion=False,
)
console = Console()


def configure_logging(level: str) -> None:
    """Route mmbuild log records to a rich handler on stderr."""
    pkg_logger = logging.getLogger("mmbuild")
    for handler in list(pkg_logger.handlers):
        if isinstance(handler, RichHandler):
            pkg_logger.removeHandler(handler)
    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    pkg_logger.addHandler(handler)
    pkg_logger.setLevel(level)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"mmbuild version {__version__}")
        raise typer.Exit()


def help_callback(ctx: typer.Context, value: bool) -> None:
    """Print usage and exit with failure status."""
    if value:
        typer.echo(ctx.get_help())
        raise typer.Exit(code=1)


def print_summary(summary: ReleaseSummary) -> None:
    """Print per-variant results and totals."""
    console.print()
    console.print("[bold]Build Summary[/bold]")
    console.print(f"  Version: {summary.version}")
    for r in summary.results:
        if r.success and r.artifact is not None:
            console.print(f"  [green]✓ {r.variant.value}[/green]  {r.artifact.path}")
        else:
            console.print(f"  [red]✗ {r.variant.value}[/red]")
            console.print(f"      {r.error_stage}: {escape(r.error_message or '')}")
    console.print(f"  Total builds: {summary.total}")
    console.print(f"  [green]Successful: {summary.succeeded}[/green]")
    if summary.failed > 0:
        console.print(f"  [red]Failed: {summary.failed}[/red]")


@app.command(
    context_settings={
        "help_option_names": [],
        "ignore_unknown_options": True,
        "allow_extra_args": True,
    }
)
def build(
    ctx: typer.Context,
    release: Annotated[
        bool,
        typer.Option("--release", help="Build release version"),
    ] = False,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Build debug version"),
    ] = False,
    project_root: Annotated[
        Path | None,
        typer.Option("--project-root", "-C", help="Repository root (default: cwd)"),
    ] = None,
    output_dir: Annotated[
        Path | None,
        typer.Option(
            "--output-dir",
            "-o",
            help="Directory for archives (relative to the current directory)",
        ),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output summary as JSON"),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
    show_config: Annotated[
        bool,
        typer.Option("--show-config", help="Show effective configuration and exit"),
    ] = False,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    help_: Annotated[
        bool | None,
        typer.Option(
            "--help",
            "-h",
            help="Show this message and exit",
            callback=help_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Build release and/or debug module archives.

    With no variant option both release and debug are built. The version
    number is obtained from the git tag on the current commit, or the
    nearest tag before it.
    """
    if ctx.args:
        console.print(f"[red]Error: Unknown parameter {escape(ctx.args[0])}[/red]")
        typer.echo(ctx.get_help())
        raise typer.Exit(code=1)

    settings = get_settings()
    updates: dict[str, object] = {}
    if project_root is not None:
        updates["project_root"] = project_root.resolve()
    if output_dir is not None:
        updates["output_dir"] = output_dir.resolve()
    if verbose:
        updates["log_level"] = "DEBUG"
    if updates:
        settings = settings.model_copy(update=updates)

    if show_config:
        typer.echo(print_settings_json(settings))
        return

    configure_logging(settings.log_level)

    variants = [
        variant
        for variant, selected in (
            (BuildVariant.RELEASE, release),
            (BuildVariant.DEBUG, debug),
        )
        if selected
    ]

    try:
        summary = Orchestrator(settings).run(variants)
    except (VersionResolutionError, OutputDirectoryError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from None

    if json_output:
        typer.echo(summary.model_dump_json(indent=2))
    else:
        print_summary(summary)

    if summary.exit_code:
        raise typer.Exit(code=summary.exit_code)


if __name__ == "__main__":
    app()
