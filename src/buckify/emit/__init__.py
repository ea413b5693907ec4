"""Starlark rendering and output writing for generated Buck files."""

from .buckfile import (
    PUBLIC_VISIBILITY,
    TARGETS_FILE_HEADER,
    render_buckfile,
    render_rule,
    render_targets_file,
    rule_fields,
    rule_kind,
    run_formatter,
    write_if_changed,
)
from .starlark import Call, function_call, is_omitted, quote, render_value

__all__ = [
    "Call",
    "PUBLIC_VISIBILITY",
    "TARGETS_FILE_HEADER",
    "function_call",
    "is_omitted",
    "quote",
    "render_buckfile",
    "render_rule",
    "render_targets_file",
    "render_value",
    "rule_fields",
    "rule_kind",
    "run_formatter",
    "write_if_changed",
]
