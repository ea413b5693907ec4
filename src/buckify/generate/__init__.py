"""Rule generation: graph walk, per-target rule building, platform partitioning."""

from .builder import SRC_GLOB, generate_target_rules, normalize_dotdot, relative_path
from .context import RuleContext
from .partition import unzip_platform
from .srcfiles import SourceDetectionError, crate_srcfiles
from .walker import TargetFailure, generate_rules, walk_packages

__all__ = [
    "RuleContext",
    "SRC_GLOB",
    "SourceDetectionError",
    "TargetFailure",
    "crate_srcfiles",
    "generate_rules",
    "generate_target_rules",
    "normalize_dotdot",
    "relative_path",
    "unzip_platform",
    "walk_packages",
]
