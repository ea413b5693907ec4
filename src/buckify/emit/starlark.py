"""Minimal Starlark value rendering for generated build files.

Values are plain Python data: ``str``, ``bool``, ``int``, lists (already in
their final order), dicts and :class:`Call` records. Fields whose value is
absent, empty or ``False`` are dropped before rendering.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from buckify.errors import SerializationError

INDENT = "    "

_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}

Field = tuple[str, Any]


@dataclass(frozen=True, slots=True)
class Call:
    """A nested ``name(key = value, ...)`` record."""

    name: str
    fields: tuple[Field, ...]


def is_omitted(value: Any) -> bool:
    if value is None or value is False:
        return True
    if isinstance(value, (list, tuple, dict, set, frozenset)) and not value:
        return True
    return False


def present(fields: Iterable[Field]) -> tuple[Field, ...]:
    return tuple((key, value) for key, value in fields if not is_omitted(value))


def quote(text: str) -> str:
    try:
        text.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise SerializationError(
            "String is not representable as UTF-8 text.",
            context={"value": repr(text)},
        ) from exc
    return '"' + "".join(_ESCAPES.get(char, char) for char in text) + '"'


def render_value(value: Any, depth: int = 0) -> str:
    if isinstance(value, bool):
        return "True" if value else "False"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        return quote(value)
    if isinstance(value, Call):
        return _render_call(value.name, value.fields, depth)
    if isinstance(value, Mapping):
        return _render_dict(value, depth)
    if isinstance(value, Sequence):
        return _render_list(value, depth)
    raise SerializationError(
        "Value has no Starlark representation.",
        context={"type": type(value).__name__},
    )


def _render_list(items: Sequence[Any], depth: int) -> str:
    if not items:
        return "[]"
    if len(items) == 1:
        return f"[{render_value(items[0], depth)}]"
    inner = INDENT * (depth + 1)
    lines = ["["]
    for item in items:
        lines.append(f"{inner}{render_value(item, depth + 1)},")
    lines.append(f"{INDENT * depth}]")
    return "\n".join(lines)


def _render_dict(entries: Mapping[str, Any], depth: int) -> str:
    if not entries:
        return "{}"
    inner = INDENT * (depth + 1)
    lines = ["{"]
    for key, value in entries.items():
        lines.append(f"{inner}{quote(key)}: {render_value(value, depth + 1)},")
    lines.append(f"{INDENT * depth}}}")
    return "\n".join(lines)


def _render_call(name: str, fields: Sequence[Field], depth: int) -> str:
    kept = present(fields)
    if not kept:
        return f"{name}()"
    inner = INDENT * (depth + 1)
    lines = [f"{name}("]
    for key, value in kept:
        lines.append(f"{inner}{key} = {render_value(value, depth + 1)},")
    lines.append(f"{INDENT * depth})")
    return "\n".join(lines)


def function_call(name: str, fields: Iterable[Field]) -> str:
    """Render a top-level rule invocation terminated by a newline."""
    return _render_call(name, tuple(fields), 0) + "\n"
