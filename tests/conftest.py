"""Shared fixtures for mmbuild tests.

Provides a throwaway project tree (template + sources) and fake command
runners standing in for git and the build tool.
"""

import shlex
from collections.abc import Sequence
from pathlib import Path

import pytest

from mmbuild.commands import CommandResult
from mmbuild.config import Settings

LAUNCHER_SCRIPT = """#!/system/bin/sh
# Meta magic mount launcher
MODDIR="${0%/*}"
export MODULE_METADATA_LOGLEVEL=1
exec "$MODDIR/bin/meta-mm" "$@"
"""

MODULE_PROP = """id=meta-magic_mount
name=Meta Magic Mount
version=v0.0.0
versionCode=1
author=test
description=Magic mount metamodule
"""


class FakeBuildTool:
    """Stand-in for `make` in the source directory.

    Records every command. The build action writes a binary into
    ``<cwd>/bin``, like the real Makefile does.
    """

    def __init__(
        self,
        fail_on: str | None = None,
        returncode: int = 2,
        create_binary: bool = True,
    ) -> None:
        self.fail_on = fail_on
        self.returncode = returncode
        self.create_binary = create_binary
        self.calls: list[tuple[list[str], Path | None]] = []

    def __call__(
        self,
        args: Sequence[str],
        cwd: Path | None = None,
        timeout: int | None = None,
    ) -> CommandResult:
        args = list(args)
        self.calls.append((args, cwd))
        cmd = shlex.join(args)

        if self.fail_on is not None and self.fail_on in args:
            return CommandResult(cmd, self.returncode, "", "error: compilation aborted\n")

        if args[1:2] != ["clean"] and self.create_binary and cwd is not None:
            bin_dir = Path(cwd) / "bin"
            bin_dir.mkdir(exist_ok=True)
            binary = bin_dir / "meta-mm"
            binary.write_bytes(b"\x7fELF-" + args[1].encode())
            binary.chmod(0o755)
        return CommandResult(cmd, 0, "", "")

    @property
    def commands(self) -> list[list[str]]:
        return [args for args, _ in self.calls]


class FakeGit:
    """Stand-in for git answering from a table of canned outputs.

    Keys are the git arguments joined by spaces; a missing key means the
    command fails with exit code 128.
    """

    def __init__(self, outputs: dict[str, str]) -> None:
        self.outputs = outputs
        self.calls: list[list[str]] = []

    def __call__(
        self,
        args: Sequence[str],
        cwd: Path | None = None,
        timeout: int | None = None,
    ) -> CommandResult:
        args = list(args)
        self.calls.append(args)
        key = " ".join(args[1:])
        cmd = shlex.join(args)
        if key in self.outputs:
            return CommandResult(cmd, 0, self.outputs[key] + "\n", "")
        return CommandResult(cmd, 128, "", f"fatal: {key} failed\n")


def tagged_repo_outputs(
    tag: str = "v2.1.0",
    commit: str = "abc1234",
) -> dict[str, str]:
    """Git outputs for a repository with tag on HEAD."""
    return {
        "rev-parse --git-dir": ".git",
        "describe --tags --exact-match": tag,
        "describe --tags --abbrev=0": tag,
        "rev-parse --short HEAD": commit,
        "rev-parse --abbrev-ref HEAD": "main",
    }


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Create a project with template and source directories."""
    root = tmp_path / "project"
    template = root / "template"
    template.mkdir(parents=True)
    launcher = template / "metamount.sh"
    launcher.write_text(LAUNCHER_SCRIPT)
    launcher.chmod(0o755)
    (template / "module.prop").write_text(MODULE_PROP)
    (template / "META-INF" / "com" / "google" / "android").mkdir(parents=True)
    (template / "META-INF" / "com" / "google" / "android" / "update-binary").write_text(
        "#!/sbin/sh\n"
    )
    (template / ".gitkeep").write_text("")

    src = root / "src"
    src.mkdir()
    (src / "Makefile").write_text("release:\n\ndebug:\n\nclean:\n")
    return root


@pytest.fixture
def settings(project: Path) -> Settings:
    """Settings rooted at the test project."""
    return Settings(project_root=project)


@pytest.fixture
def build_tool() -> FakeBuildTool:
    return FakeBuildTool()
