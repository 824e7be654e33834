"""Build orchestration module.

This module handles:
- Staging the module template per variant
- Running the build tool
- Rewriting generated configuration files
- Packaging versioned archives
- Aggregating per-variant results
"""

from mmbuild.builds.pipeline import VariantBuildResult, VariantPipeline
from mmbuild.builds.service import Orchestrator, ReleaseSummary

__all__ = ["Orchestrator", "ReleaseSummary", "VariantBuildResult", "VariantPipeline"]
