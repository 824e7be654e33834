"""Version resolution from git repository metadata.

This module handles:
- Checking the project root is inside a git repository
- Reading the exact or nearest tag as the release version
- Deriving the short identifier appended to archive names
"""

from mmbuild.version.resolver import (
    NotARepositoryError,
    NoVersionTagError,
    VersionResolutionError,
    VersionResolver,
    sanitize_branch_name,
)

__all__ = [
    "NoVersionTagError",
    "NotARepositoryError",
    "VersionResolutionError",
    "VersionResolver",
    "sanitize_branch_name",
]
