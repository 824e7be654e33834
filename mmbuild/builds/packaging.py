"""Module archive creation.

This module handles:
- Computing the timestamp version code
- Composing the archive filename
- Writing a deterministic zip of the staging directory
- Computing the archive checksum

Archives are reproducible: entries are sorted, carry a fixed timestamp and
keep their permission bits, so two builds from identical staging trees are
byte-identical.
"""

from __future__ import annotations

import fnmatch
import hashlib
import logging
import stat
import zipfile
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path

from mmbuild.types import ArtifactInfo, BuildVariant

logger = logging.getLogger(__name__)

ARCHIVE_EXTENSION = "zip"
VERSION_CODE_FORMAT = "%y%m%d%H%M"

# Earliest timestamp a zip entry can hold
ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)

# Default chunk size for hashing
HASH_CHUNK_SIZE = 64 * 1024  # 64KB


def make_version_code(now: datetime) -> str:
    """Format a version code (``yymmddhhmm``) for a point in time."""
    return now.strftime(VERSION_CODE_FORMAT)


def compose_archive_name(
    product: str,
    version: str,
    variant: BuildVariant,
    version_code: str,
    short_identifier: str = "",
) -> str:
    """Compose the archive filename.

    Args:
        product: Product name prefix.
        version: Release version.
        variant: Build variant.
        version_code: Timestamp version code.
        short_identifier: Optional commit or branch identifier.

    Returns:
        ``<product>-<version>-<variant>-<code>[-<id>].zip``.
    """
    parts = [product, version, variant.value, version_code]
    if short_identifier:
        parts.append(short_identifier)
    return f"{'-'.join(parts)}.{ARCHIVE_EXTENSION}"


def is_excluded(rel_path: str, patterns: Iterable[str]) -> bool:
    """Check a POSIX relative path against exclusion globs."""
    return any(fnmatch.fnmatch(rel_path, pattern) for pattern in patterns)


def _zip_info(path: Path, arcname: str) -> zipfile.ZipInfo:
    info = zipfile.ZipInfo(arcname, date_time=ZIP_EPOCH)
    mode = path.lstat().st_mode
    info.external_attr = (stat.S_IMODE(mode) | stat.S_IFMT(mode)) << 16
    if path.is_dir() and not path.is_symlink():
        info.external_attr |= 0x10  # MS-DOS directory flag
    else:
        info.compress_type = zipfile.ZIP_DEFLATED
    return info


def create_archive(
    source_dir: Path,
    archive_path: Path,
    excludes: Iterable[str] = ("*.git*",),
) -> int:
    """Zip the contents of source_dir.

    Paths inside the archive are relative to source_dir. Symlinks are
    stored as links, not followed. A partially written archive is removed
    before the error propagates.

    Args:
        source_dir: Directory to archive.
        archive_path: Output zip file; its directory must already exist.
        excludes: Glob patterns matched against relative POSIX paths.

    Returns:
        Number of file entries written.

    Raises:
        OSError: If reading or writing fails.
        zipfile.BadZipFile: If the zip cannot be written.
        ValueError: If an entry name cannot be encoded, e.g. a file name
            that is not valid UTF-8.
    """
    excludes = list(excludes)

    count = 0
    try:
        with zipfile.ZipFile(archive_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for path in sorted(source_dir.rglob("*")):
                rel_path = path.relative_to(source_dir).as_posix()
                if is_excluded(rel_path, excludes):
                    logger.debug("Excluding %s", rel_path)
                    continue

                if path.is_symlink():
                    zf.writestr(_zip_info(path, rel_path), str(path.readlink()))
                    count += 1
                elif path.is_dir():
                    zf.writestr(_zip_info(path, f"{rel_path}/"), b"")
                else:
                    zf.writestr(_zip_info(path, rel_path), path.read_bytes())
                    count += 1
    except (OSError, zipfile.BadZipFile, ValueError):
        archive_path.unlink(missing_ok=True)
        raise

    logger.debug("Wrote %d files to %s", count, archive_path)
    return count


def compute_file_hash(
    file_path: Path,
    chunk_size: int = HASH_CHUNK_SIZE,
) -> str:
    """Compute SHA-256 hash of a file.

    Args:
        file_path: Path to the file.
        chunk_size: Size of chunks for streaming hash.

    Returns:
        SHA-256 hex digest.
    """
    sha256 = hashlib.sha256()
    with file_path.open("rb") as f:
        while chunk := f.read(chunk_size):
            sha256.update(chunk)
    return sha256.hexdigest()


def describe_artifact(archive_path: Path) -> ArtifactInfo:
    """Collect size and checksum of a written archive."""
    return ArtifactInfo(
        filename=archive_path.name,
        path=str(archive_path),
        size_bytes=archive_path.stat().st_size,
        sha256=compute_file_hash(archive_path),
    )


__all__ = [
    "ARCHIVE_EXTENSION",
    "HASH_CHUNK_SIZE",
    "VERSION_CODE_FORMAT",
    "ZIP_EPOCH",
    "compose_archive_name",
    "compute_file_hash",
    "create_archive",
    "describe_artifact",
    "is_excluded",
    "make_version_code",
]
