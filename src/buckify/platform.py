"""Platform predicate collaborator interface.

Parsing platform expressions is the resolver's business; generation only
consumes the set of platform names an expression selects and the result of
evaluating an expression against one configured platform.
"""

from __future__ import annotations

from typing import Protocol

from buckify.config import PlatformConfig

# Dependencies selected for this platform land in the base (unconditional) attributes
DEFAULT_PLATFORM = "DEFAULT"


def is_default_platform(name: str) -> bool:
    return name == DEFAULT_PLATFORM


class PlatformResolver(Protocol):
    def platform_names_for_expr(self, expr: str) -> set[str]:
        """Return the configured platform names satisfying *expr*.

        Raises ``PlatformExprError`` when *expr* cannot be parsed.
        """

    def evaluate(self, expr: str, platform: PlatformConfig) -> bool:
        """Evaluate *expr* against one platform description.

        Raises ``PlatformExprError`` when *expr* cannot be parsed.
        """
