"""Error Accumulation

Routes reported errors into hard and soft buckets, applying the caller's
``error_map`` first. Two strategies:

- COLLECT_ALL: keep every error
- FAIL_FAST: stop the whole walk at the first hard error (soft errors so far
  are kept); the engines unwind with ``ValidationHalted``
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from enum import Enum

from .model import (
    ErrorMap, Severity, ValidationError, ValidationOptions, ValidationResult, build_result,
)

_MAPPABLE_KEYS = ("field", "code", "message", "severity", "received", "expected")


class ValidationMode(str, Enum):
    """Validation accumulation strategy."""
    FAIL_FAST = "fail_fast"
    COLLECT_ALL = "collect_all"


class ValidationHalted(Exception):
    """Internal signal unwinding an abort-early walk. Never escapes the engines."""


def apply_error_map(error: ValidationError, error_map: ErrorMap | None) -> ValidationError:
    """Apply a caller's error map.

    The map may return a replacement ``ValidationError``, a mapping (only a
    ``message`` key: message override; otherwise the listed attributes are
    replaced), a plain message string, or None to keep the error unchanged.
    """
    if error_map is None or (mapped := error_map(error)) is None: return error
    if isinstance(mapped, ValidationError): return mapped
    if isinstance(mapped, str): return error.replace(message=mapped)
    if isinstance(mapped, Mapping):
        return error.replace(**{key: mapped[key] for key in _MAPPABLE_KEYS if key in mapped})
    raise TypeError(f"error_map must return a ValidationError, mapping, str or None, got {type(mapped).__name__}")


class ErrorAccumulator(ABC):
    """Abstract base for error accumulation strategies."""

    def __init__(self, error_map: ErrorMap | None = None):
        self.error_map = error_map
        self.hard: list[ValidationError] = []
        self.soft: list[ValidationError] = []

    @property
    @abstractmethod
    def mode(self) -> ValidationMode:
        """Get the accumulation mode."""

    @abstractmethod
    def _should_continue(self, error: ValidationError) -> bool:
        """Decide after bucketing ``error`` whether the walk may go on."""

    def add(self, error: ValidationError) -> bool:
        """Map, bucket and record an error. Returns True if the walk should continue."""
        error = apply_error_map(error, self.error_map)
        (self.soft if error.severity is Severity.SOFT else self.hard).append(error)
        return self._should_continue(error)

    def extend(self, errors: Iterable[ValidationError]) -> bool:
        """Add errors in order, stopping at the first one that halts the walk."""
        for error in errors:
            if not self.add(error): return False
        return True

    def to_result(self, aggregate_by_field: bool = False) -> ValidationResult:
        return build_result(self.hard, self.soft, aggregate_by_field)


class CollectAllAccumulator(ErrorAccumulator):
    """Collect-all accumulator: gathers every error."""

    @property
    def mode(self) -> ValidationMode: return ValidationMode.COLLECT_ALL

    def _should_continue(self, error: ValidationError) -> bool: return True


class FailFastAccumulator(ErrorAccumulator):
    """Fail-fast accumulator: stops at the first hard error."""

    @property
    def mode(self) -> ValidationMode: return ValidationMode.FAIL_FAST

    def _should_continue(self, error: ValidationError) -> bool: return error.severity is not Severity.HARD


def create_accumulator(options: ValidationOptions) -> ErrorAccumulator:
    """Factory for creating accumulators based on options."""
    if options.abort_early: return FailFastAccumulator(options.error_map)
    return CollectAllAccumulator(options.error_map)
