"""mmbuild - Release-build orchestrator for the meta-magic_mount module.

This package derives a version from git, compiles each build variant,
stages the module template, rewrites its generated configuration and
packages one versioned zip archive per variant.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
