"""Public package entrypoint for buckify."""

from .config import BuckConfig, Config, PlatformConfig, parse_config, read_config
from .errors import (
    BuckifyError,
    ConfigError,
    ErrorCode,
    FixupError,
    FormatterError,
    GenerationError,
    OutputWriteError,
    PlatformExprError,
    SerializationError,
)
from .fixups import BaseFixups, Fixups, FixupsFactory
from .index import PackageIndex, RuleIndex
from .models import PackageId, PackageNode, Paths, Target
from .observability import StructuredLogger
from .pipeline import BuckifyResult, buckify
from .platform import DEFAULT_PLATFORM, PlatformResolver
from .rules import RuleRef, RuleSet

__all__ = [
    "BaseFixups",
    "BuckConfig",
    "BuckifyError",
    "BuckifyResult",
    "Config",
    "ConfigError",
    "DEFAULT_PLATFORM",
    "ErrorCode",
    "FixupError",
    "Fixups",
    "FixupsFactory",
    "FormatterError",
    "GenerationError",
    "OutputWriteError",
    "PackageId",
    "PackageIndex",
    "PackageNode",
    "Paths",
    "PlatformConfig",
    "PlatformExprError",
    "PlatformResolver",
    "RuleIndex",
    "RuleRef",
    "RuleSet",
    "SerializationError",
    "StructuredLogger",
    "Target",
    "buckify",
    "parse_config",
    "read_config",
]
