"""Tests for the CLI.

The orchestrator is patched out; these tests cover argument handling,
exit codes and output formats.
"""

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from mmbuild import __version__
from mmbuild.builds.pipeline import VariantBuildResult
from mmbuild.builds.service import OutputDirectoryError, ReleaseSummary
from mmbuild.cli import app
from mmbuild.types import ArtifactInfo, BuildOutcome, BuildVariant
from mmbuild.version.resolver import NotARepositoryError, NoVersionTagError

runner = CliRunner()


def _summary(*outcomes: tuple[BuildVariant, bool]) -> ReleaseSummary:
    results = []
    for variant, ok in outcomes:
        if ok:
            filename = f"meta-magic_mount-v2.1.0-{variant.value}-2610180930-abc1234.zip"
            results.append(
                VariantBuildResult(
                    variant=variant,
                    outcome=BuildOutcome.SUCCEEDED,
                    version_code="2610180930",
                    artifact=ArtifactInfo(
                        filename=filename,
                        path=f"build/{filename}",
                        size_bytes=1024,
                        sha256="0" * 64,
                    ),
                )
            )
        else:
            results.append(
                VariantBuildResult(
                    variant=variant,
                    outcome=BuildOutcome.FAILED,
                    error_stage="Compiling",
                    error_code="compile_failed",
                    error_message="make exited with exit code 2",
                )
            )
    return ReleaseSummary(
        version="v2.1.0", short_identifier="abc1234", results=tuple(results)
    )


@pytest.fixture
def orchestrator():
    with patch("mmbuild.cli.Orchestrator") as cls:
        yield cls


class TestCLIHelp:
    """Test help and version options."""

    def test_version_flag(self) -> None:
        """--version should print version and exit 0."""
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_short_version_flag(self) -> None:
        """-V should print version and exit 0."""
        result = runner.invoke(app, ["-V"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    @pytest.mark.parametrize("flag", ["--help", "-h"])
    def test_help_exits_one(self, flag, orchestrator) -> None:
        """Help should print usage and exit 1 without building."""
        result = runner.invoke(app, [flag])
        assert result.exit_code == 1
        assert "Usage" in result.output
        orchestrator.assert_not_called()

    def test_unknown_parameter(self, orchestrator) -> None:
        """Unknown options should be reported with usage and exit 1."""
        result = runner.invoke(app, ["--bogus"])
        assert result.exit_code == 1
        assert "Unknown parameter --bogus" in result.output
        assert "Usage" in result.output
        orchestrator.assert_not_called()


class TestCLIConfig:
    """Test --show-config."""

    def test_show_config_json(self, tmp_path, orchestrator) -> None:
        """--show-config should print settings as JSON and not build."""
        result = runner.invoke(app, ["--show-config", "-C", str(tmp_path)])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["project_root"] == str(tmp_path.resolve())
        assert data["product_name"] == "meta-magic_mount"
        orchestrator.assert_not_called()

    def test_show_config_verbose(self, orchestrator) -> None:
        """--verbose should raise the log level to DEBUG."""
        result = runner.invoke(app, ["--show-config", "-v"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["log_level"] == "DEBUG"


class TestCLIBuild:
    """Test variant selection, summaries and exit codes."""

    @pytest.mark.parametrize(
        ("args", "expected"),
        [
            ([], []),
            (["--release"], [BuildVariant.RELEASE]),
            (["--debug"], [BuildVariant.DEBUG]),
            (["--debug", "--release"], [BuildVariant.RELEASE, BuildVariant.DEBUG]),
        ],
    )
    def test_variant_selection(self, args, expected, orchestrator) -> None:
        """Flags should map to the requested variants."""
        orchestrator.return_value.run.return_value = _summary(
            (BuildVariant.RELEASE, True)
        )

        result = runner.invoke(app, args)

        assert result.exit_code == 0
        orchestrator.return_value.run.assert_called_once_with(expected)

    def test_output_dir_override(self, tmp_path, orchestrator) -> None:
        """-o should reach the orchestrator settings."""
        orchestrator.return_value.run.return_value = _summary(
            (BuildVariant.RELEASE, True)
        )

        runner.invoke(app, ["--release", "-o", str(tmp_path / "out")])

        settings = orchestrator.call_args.args[0]
        assert settings.output_dir == (tmp_path / "out").resolve()

    def test_relative_output_dir_uses_cwd(
        self, tmp_path, monkeypatch, orchestrator
    ) -> None:
        """A relative -o should resolve against the current directory, not -C."""
        orchestrator.return_value.run.return_value = _summary(
            (BuildVariant.RELEASE, True)
        )
        repo = tmp_path / "repo"
        repo.mkdir()
        monkeypatch.chdir(tmp_path)

        runner.invoke(app, ["--release", "-C", str(repo), "-o", "out"])

        settings = orchestrator.call_args.args[0]
        assert settings.output_path == (tmp_path / "out").resolve()
        assert settings.project_root == repo.resolve()

    def test_success_summary(self, orchestrator) -> None:
        """All variants succeeding should exit 0 with a summary."""
        orchestrator.return_value.run.return_value = _summary(
            (BuildVariant.RELEASE, True), (BuildVariant.DEBUG, True)
        )

        result = runner.invoke(app, [])

        assert result.exit_code == 0
        assert "Build Summary" in result.stdout
        assert "Total builds: 2" in result.stdout
        assert "Successful: 2" in result.stdout
        assert "Failed" not in result.stdout

    def test_failure_summary(self, orchestrator) -> None:
        """Any failed variant should exit 1 and report the failure count."""
        orchestrator.return_value.run.return_value = _summary(
            (BuildVariant.RELEASE, True), (BuildVariant.DEBUG, False)
        )

        result = runner.invoke(app, [])

        assert result.exit_code == 1
        assert "Successful: 1" in result.stdout
        assert "Failed: 1" in result.stdout
        assert "exit code 2" in result.stdout

    def test_json_output(self, orchestrator) -> None:
        """--json should print the summary as JSON."""
        orchestrator.return_value.run.return_value = _summary(
            (BuildVariant.RELEASE, True), (BuildVariant.DEBUG, False)
        )

        result = runner.invoke(app, ["--json"])

        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["version"] == "v2.1.0"
        assert data["total"] == 2
        assert data["failed"] == 1
        assert data["results"][1]["error_code"] == "compile_failed"

    @pytest.mark.parametrize(
        "error",
        [
            NotARepositoryError(Path("/tmp/x")),
            NoVersionTagError(),
            OutputDirectoryError(Path("/tmp/x/build"), "File exists"),
        ],
    )
    def test_fatal_errors_exit_one(self, error, orchestrator) -> None:
        """Repository, tag and output directory errors should exit 1."""
        orchestrator.return_value.run.side_effect = error

        result = runner.invoke(app, [])

        assert result.exit_code == 1
        assert "Error:" in result.stdout
