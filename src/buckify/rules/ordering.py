"""Label and path ordering matching the Starlark formatter's list sorting.

The formatter sorts string lists in three classes: local references (``:foo``)
first, then fully qualified labels (``//foo:bar`` or ``cell//foo:bar``), then
everything else. Within a class values are compared piece by piece after
splitting on ``/``, ``:`` and ``.``, and finally by the raw string.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

_SEPARATORS = re.compile(r"[/:.]")
_QUALIFIED = re.compile(r"^[A-Za-z0-9_@.+-]*//")

LOCAL = 0
QUALIFIED = 1
OTHER = 2


def label_class(label: str) -> int:
    if label.startswith(":"):
        return LOCAL
    if _QUALIFIED.match(label):
        return QUALIFIED
    return OTHER


def label_sort_key(label: str) -> tuple[int, tuple[str, ...], str]:
    return (label_class(label), tuple(_SEPARATORS.split(label)), label)


def sorted_labels(labels: Iterable[str]) -> list[str]:
    """Sort and deduplicate *labels* in formatter order."""
    return sorted(set(labels), key=label_sort_key)
