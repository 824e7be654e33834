"""Staging directory management.

This module handles:
- Resetting a variant's staging directory
- Copying directory trees (template, compiled binaries) into it
- Removing staging and compiler output trees after a successful build

Copies preserve file modes and timestamps. Every symlink is copied as a
symlink with its target unchanged, including absolute targets and targets
outside the source tree; nothing is followed.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from mmbuild.types import BuildVariant

logger = logging.getLogger(__name__)

STAGING_SUFFIX = "_temp"


def staging_dir_for(output_dir: Path, variant: BuildVariant) -> Path:
    """Return the staging directory path for a variant.

    Args:
        output_dir: Build output root.
        variant: Build variant.

    Returns:
        ``<output_dir>/<variant>_temp``.
    """
    return output_dir / f"{variant.value}{STAGING_SUFFIX}"


def reset_directory(path: Path) -> Path:
    """Delete path if it exists and create it empty.

    Args:
        path: Directory to reset.

    Returns:
        The (now empty) directory.

    Raises:
        OSError: If removal or creation fails.
    """
    if path.exists():
        logger.debug("Removing existing directory: %s", path)
        shutil.rmtree(path)
    path.mkdir(parents=True)
    return path


def copy_tree_contents(source_dir: Path, dest_dir: Path) -> int:
    """Copy everything inside source_dir into dest_dir.

    Existing files in dest_dir are overwritten.

    Args:
        source_dir: Directory whose contents are copied.
        dest_dir: Destination directory (created if missing).

    Returns:
        Number of top-level entries copied.

    Raises:
        OSError: If any entry fails to copy.
    """
    dest_dir.mkdir(parents=True, exist_ok=True)
    count = 0
    for item in sorted(source_dir.iterdir()):
        target = dest_dir / item.name
        if item.is_dir() and not item.is_symlink():
            shutil.copytree(item, target, symlinks=True, dirs_exist_ok=True)
        else:
            shutil.copy2(item, target, follow_symlinks=False)
        count += 1
    logger.debug("Copied %d entries from %s to %s", count, source_dir, dest_dir)
    return count


def copy_tree(source_dir: Path, dest_dir: Path) -> Path:
    """Copy source_dir itself to dest_dir.

    Args:
        source_dir: Directory to copy.
        dest_dir: Destination path of the copy.

    Returns:
        dest_dir.

    Raises:
        OSError: If the copy fails.
    """
    shutil.copytree(source_dir, dest_dir, symlinks=True, dirs_exist_ok=True)
    return dest_dir


def remove_tree(path: Path) -> bool:
    """Remove a directory tree if it exists.

    Args:
        path: Directory to remove.

    Returns:
        True if something was removed.
    """
    if not path.exists():
        return False
    shutil.rmtree(path)
    logger.debug("Removed %s", path)
    return True


__all__ = [
    "STAGING_SUFFIX",
    "copy_tree",
    "copy_tree_contents",
    "remove_tree",
    "reset_directory",
    "staging_dir_for",
]
