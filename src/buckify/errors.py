"""Typed error model with stable, machine-readable error codes."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from enum import StrEnum


class ErrorCode(StrEnum):
    """Stable error identifiers used across generation and output."""

    CONFIG = "E_CONFIG"
    PLATFORM_EXPR = "E_PLATFORM_EXPR"
    FIXUP = "E_FIXUP"
    FORMATTER = "E_FORMATTER"
    OUTPUT_WRITE = "E_OUTPUT_WRITE"
    SERIALIZATION = "E_SERIALIZATION"
    GENERATION = "E_GENERATION"


class BuckifyError(Exception):
    """Base error class that carries code, optional hint, and context."""

    code: str
    hint: str | None
    context: Mapping[str, str]

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code.value
        self.hint = hint
        self.context = dict(context or {})

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.hint:
            parts.append(f"Hint: {self.hint}")
        if self.context:
            for k, v in self.context.items():
                if v:
                    parts.append(f"  {k}: {v}")
        return "\n".join(parts)

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "code": self.code,
            "message": str(self),
            "context": dict(self.context),
        }
        if self.hint is not None:
            payload["hint"] = self.hint
        return payload


class ConfigError(BuckifyError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.CONFIG, hint=hint, context=context)


class PlatformExprError(BuckifyError):
    """A platform expression could not be parsed or expanded."""

    expr: str

    def __init__(
        self,
        message: str,
        *,
        expr: str,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        merged = {"expr": expr, **dict(context or {})}
        super().__init__(message, code=ErrorCode.PLATFORM_EXPR, hint=hint, context=merged)
        self.expr = expr


class FixupError(BuckifyError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.FIXUP, hint=hint, context=context)


class FormatterError(BuckifyError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.FORMATTER, hint=hint, context=context)


class OutputWriteError(BuckifyError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.OUTPUT_WRITE, hint=hint, context=context)


class SerializationError(BuckifyError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.SERIALIZATION, hint=hint, context=context)


class GenerationError(BuckifyError):
    """Rule generation collected one or more per-target failures.

    The message and context come from one representative failure; every
    collected failure is kept on ``errors``.
    """

    errors: tuple[BaseException, ...]

    def __init__(
        self,
        message: str,
        *,
        errors: Sequence[BaseException],
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.GENERATION, hint=hint, context=context)
        self.errors = tuple(errors)


__all__ = [
    "BuckifyError",
    "ConfigError",
    "ErrorCode",
    "FixupError",
    "FormatterError",
    "GenerationError",
    "OutputWriteError",
    "PlatformExprError",
    "SerializationError",
]
