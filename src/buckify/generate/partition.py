"""Fold platform-tagged attribute streams into base and per-platform records."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import TypeVar

from buckify.errors import PlatformExprError
from buckify.platform import PlatformResolver
from buckify.rules.model import PlatformAttributes

T = TypeVar("T")


def unzip_platform(
    resolver: PlatformResolver,
    base: PlatformAttributes,
    perplat: dict[str, PlatformAttributes],
    extend: Callable[[PlatformAttributes, T], None],
    items: Iterable[tuple[str | None, T]],
    *,
    category: str,
) -> None:
    """Apply each ``(platform_expr, value)`` item to the record(s) it targets.

    Untagged values extend *base*. Tagged values extend the bucket of every
    platform name the expression selects, creating buckets on first use.
    """
    for expr, value in items:
        if expr is None:
            extend(base, value)
            continue
        try:
            names = resolver.platform_names_for_expr(expr)
        except PlatformExprError as exc:
            raise PlatformExprError(
                f'Bad platform expression "{expr}" for {category}.',
                expr=expr,
                hint=exc.hint,
                context={"category": category},
            ) from exc
        for name in sorted(names):
            bucket = perplat.get(name)
            if bucket is None:
                bucket = perplat[name] = PlatformAttributes()
            extend(bucket, value)
