"""Validation Error Builders

Ergonomic constructors for the errors the engines report themselves.
Rule validators use ``make_error``; everything else has a named builder so
codes and messages stay consistent between the sync and async engines.
"""
from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

from formschema.validation.model import (
    MISSING, Severity, ValidationError, ValidatorContext, join_path,
)

from .types import ErrorCode


def describe_type(value: Any) -> str:
    """Name a runtime type the way error messages spell it."""
    if value is MISSING: return "undefined"
    if value is None: return "null"
    if isinstance(value, bool): return "boolean"
    if isinstance(value, (int, float)): return "number"
    if isinstance(value, str): return "string"
    if isinstance(value, (list, tuple)): return "array"
    if isinstance(value, Mapping): return "object"
    if isinstance(value, (date, datetime)): return "date"
    return type(value).__name__


def _path_of(context: ValidatorContext | str) -> str:
    return context if isinstance(context, str) else context.path


# =============================================================================
# Generic
# =============================================================================

def make_error(
    context: ValidatorContext | str,
    code: ErrorCode | str,
    message: str,
    *,
    soft: bool = False,
    received: Any = MISSING,
    expected: Any = MISSING,
) -> ValidationError:
    """Create an error at the context's path with the given severity."""
    return ValidationError(
        field=_path_of(context),
        code=code,
        message=message,
        severity=Severity.SOFT if soft else Severity.HARD,
        received=received,
        expected=expected,
    )


# =============================================================================
# Type and Presence (always hard)
# =============================================================================

def type_error(context: ValidatorContext | str, expected: str, value: Any,
               code: ErrorCode = ErrorCode.INVALID_TYPE, message: str | None = None) -> ValidationError:
    return make_error(context, code, message or f"Expected {expected}, got {describe_type(value)}",
        received=value, expected=expected)


def required_error(context: ValidatorContext | str, message: str | None = None) -> ValidationError:
    return make_error(context, ErrorCode.REQUIRED, message or "This field is required")


# =============================================================================
# Structural (always hard)
# =============================================================================

def unknown_key_error(base_path: str, key: str, value: Any = MISSING) -> ValidationError:
    return make_error(join_path(base_path, key), ErrorCode.UNKNOWN_KEY,
        f"Unknown key '{key}' is not allowed", received=value)


def transform_error(context: ValidatorContext | str, exc: BaseException, value: Any) -> ValidationError:
    detail = str(exc) or type(exc).__name__
    return make_error(context, ErrorCode.TRANSFORM_ERROR, f"Transform failed: {detail}", received=value)


# =============================================================================
# Async
# =============================================================================

def async_error(
    context: ValidatorContext | str,
    message: str,
    *,
    soft: bool = False,
    received: Any = MISSING,
    failed: bool = False,
) -> ValidationError:
    """Async rule outcome: ``failed`` marks a rejected value, otherwise an infrastructure fault."""
    code = ErrorCode.ASYNC_VALIDATION_FAILED if failed else ErrorCode.ASYNC_VALIDATION_ERROR
    return make_error(context, code, message, soft=soft, received=received)
