"""Error Taxonomy and Result Types

Error codes are string tags carried by every reported validation error.
Exceptions are reserved for misuse of the API; invalid *data* is always
reported as values, never raised.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import (
    TYPE_CHECKING, Any, Callable, Generic, Iterator, NoReturn,
    TypeVar, Union, final,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Sequence

    from formschema.validation.model import ValidationError

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E")


class ErrorCode(str, Enum):
    """Validation error code taxonomy.

    type:     the value's runtime shape disagrees with the declared kind
    presence: a required value is missing
    rule:     a declared rule rejected the value
    async:    an async rule failed, timed out or raised
    schema:   structural problems (unknown keys, failing transforms)
    """
    # Type
    INVALID_TYPE = "INVALID_TYPE"
    INVALID_NUMBER = "INVALID_NUMBER"
    INVALID_DATE = "INVALID_DATE"

    # Presence
    REQUIRED = "REQUIRED"

    # Generic rules
    MIN_VALUE = "MIN_VALUE"
    MIN_LENGTH = "MIN_LENGTH"
    MIN_ITEMS = "MIN_ITEMS"
    MAX_VALUE = "MAX_VALUE"
    MAX_LENGTH = "MAX_LENGTH"
    MAX_ITEMS = "MAX_ITEMS"
    INVALID_ENUM = "INVALID_ENUM"
    CUSTOM_VALIDATION = "CUSTOM_VALIDATION"
    WARNING = "WARNING"

    # String rules
    INVALID_EMAIL = "INVALID_EMAIL"
    INVALID_URL = "INVALID_URL"
    INVALID_IP = "INVALID_IP"
    INVALID_IPV6 = "INVALID_IPV6"
    INVALID_ALPHA = "INVALID_ALPHA"
    INVALID_ALPHANUMERIC = "INVALID_ALPHANUMERIC"
    INVALID_NUMERIC = "INVALID_NUMERIC"
    INVALID_LOWERCASE = "INVALID_LOWERCASE"
    INVALID_UPPERCASE = "INVALID_UPPERCASE"
    INVALID_SLUG = "INVALID_SLUG"
    INVALID_HEX = "INVALID_HEX"
    INVALID_BASE64 = "INVALID_BASE64"
    INVALID_JSON = "INVALID_JSON"
    INVALID_LENGTH = "INVALID_LENGTH"
    INVALID_CONTAINS = "INVALID_CONTAINS"
    INVALID_STARTS_WITH = "INVALID_STARTS_WITH"
    INVALID_ENDS_WITH = "INVALID_ENDS_WITH"
    PATTERN_MISMATCH = "PATTERN_MISMATCH"

    # Number rules
    NOT_INTEGER = "NOT_INTEGER"
    NOT_POSITIVE = "NOT_POSITIVE"
    NOT_NEGATIVE = "NOT_NEGATIVE"
    INVALID_PORT = "INVALID_PORT"
    INVALID_LATITUDE = "INVALID_LATITUDE"
    INVALID_LONGITUDE = "INVALID_LONGITUDE"
    INVALID_PERCENTAGE = "INVALID_PERCENTAGE"
    INVALID_BETWEEN = "INVALID_BETWEEN"
    INVALID_DIVISIBLE_BY = "INVALID_DIVISIBLE_BY"
    INVALID_MULTIPLE_OF = "INVALID_MULTIPLE_OF"
    INVALID_EVEN = "INVALID_EVEN"
    INVALID_ODD = "INVALID_ODD"
    INVALID_SAFE_INTEGER = "INVALID_SAFE_INTEGER"
    INVALID_FINITE = "INVALID_FINITE"

    # Boolean rules
    INVALID_TRUE = "INVALID_TRUE"
    INVALID_FALSE = "INVALID_FALSE"

    # Date rules
    INVALID_AFTER = "INVALID_AFTER"
    INVALID_BEFORE = "INVALID_BEFORE"
    INVALID_PAST = "INVALID_PAST"
    INVALID_FUTURE = "INVALID_FUTURE"
    INVALID_TODAY = "INVALID_TODAY"
    INVALID_YESTERDAY = "INVALID_YESTERDAY"
    INVALID_TOMORROW = "INVALID_TOMORROW"
    INVALID_THIS_WEEK = "INVALID_THIS_WEEK"
    INVALID_THIS_MONTH = "INVALID_THIS_MONTH"
    INVALID_THIS_YEAR = "INVALID_THIS_YEAR"
    INVALID_WEEKDAY = "INVALID_WEEKDAY"
    INVALID_WEEKEND = "INVALID_WEEKEND"
    INVALID_AGE_MIN = "INVALID_AGE_MIN"
    INVALID_AGE_MAX = "INVALID_AGE_MAX"
    INVALID_DATE_BEFORE = "INVALID_DATE_BEFORE"
    INVALID_DATE_AFTER = "INVALID_DATE_AFTER"

    # Array rules
    INVALID_UNIQUE = "INVALID_UNIQUE"
    INVALID_INCLUDES = "INVALID_INCLUDES"
    INVALID_EXCLUDES = "INVALID_EXCLUDES"
    INVALID_EMPTY = "INVALID_EMPTY"
    INVALID_NOT_EMPTY = "INVALID_NOT_EMPTY"
    INVALID_SORTED = "INVALID_SORTED"
    INVALID_COMPACT = "INVALID_COMPACT"

    # Object rules
    INVALID_KEYS = "INVALID_KEYS"
    INVALID_PICK = "INVALID_PICK"
    INVALID_OMIT = "INVALID_OMIT"

    # Cross-field rules
    FIELD_MISMATCH = "FIELD_MISMATCH"
    INVALID_NOT_MATCHES = "INVALID_NOT_MATCHES"
    INVALID_GREATER_THAN = "INVALID_GREATER_THAN"
    INVALID_LESS_THAN = "INVALID_LESS_THAN"
    INVALID_DEPENDS_ON = "INVALID_DEPENDS_ON"

    # Async
    ASYNC_VALIDATION_ERROR = "ASYNC_VALIDATION_ERROR"
    ASYNC_VALIDATION_FAILED = "ASYNC_VALIDATION_FAILED"

    # Schema / structural
    UNKNOWN_KEY = "UNKNOWN_KEY"
    TRANSFORM_ERROR = "TRANSFORM_ERROR"

    def __str__(self) -> str:
        return self.value

    @property
    def category(self) -> str:
        """Taxonomy bucket of this code."""
        if self in _TYPE_CODES:
            return "type"
        if self is ErrorCode.REQUIRED:
            return "presence"
        if self in _ASYNC_CODES:
            return "async"
        if self in _SCHEMA_CODES:
            return "schema"
        return "rule"

    @property
    def always_hard(self) -> bool:
        """Codes whose severity is fixed regardless of rule declaration."""
        return self.category in ("type", "presence", "schema")


_TYPE_CODES = frozenset({ErrorCode.INVALID_TYPE, ErrorCode.INVALID_NUMBER, ErrorCode.INVALID_DATE})
_ASYNC_CODES = frozenset({ErrorCode.ASYNC_VALIDATION_ERROR, ErrorCode.ASYNC_VALIDATION_FAILED})
_SCHEMA_CODES = frozenset({ErrorCode.UNKNOWN_KEY, ErrorCode.TRANSFORM_ERROR})


# =============================================================================
# Exceptions (API misuse only)
# =============================================================================

class FormSchemaError(Exception):
    """Base class for every exception raised by formschema."""


class SchemaDefinitionError(FormSchemaError):
    """A schema document or builder call is malformed.

    ``details`` lists ``(location, message)`` pairs when the problem comes from
    a parsed interchange document.
    """

    def __init__(self, message: str, details: Sequence[tuple[str, str]] = ()):
        super().__init__(message)
        self.message = message
        self.details = list(details)

    def __str__(self) -> str:
        if not self.details:
            return self.message
        if len(self.details) == 1:
            loc, msg = self.details[0]
            return f"{self.message}: {loc}: {msg}"
        return f"{self.message} ({len(self.details)} problems)"


class ValidationFailedError(FormSchemaError):
    """Raised by ``assert_valid`` when data has hard errors.

    The full hard-error list is attached for programmatic inspection.
    """

    def __init__(self, hard_errors: Sequence[ValidationError], message: str = "Validation failed"):
        super().__init__(message)
        self.message = message
        self.hard_errors = tuple(hard_errors)

    @property
    def errors(self) -> tuple[ValidationError, ...]:
        return self.hard_errors

    @property
    def field_errors(self) -> dict[str, list[ValidationError]]:
        """Group errors by field path."""
        result: dict[str, list[ValidationError]] = {}
        for error in self.hard_errors: result.setdefault(error.field, []).append(error)
        return result

    def __str__(self) -> str:
        if not self.hard_errors: return self.message
        if len(self.hard_errors) == 1: return f"{(e := self.hard_errors[0]).field}: {e.message}"
        return f"{self.message} ({len(self.hard_errors)} errors)"

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API responses."""
        return {"error": {"type": "validation_error", "message": self.message,
            "error_count": len(self.hard_errors), "errors": [e.to_dict() for e in self.hard_errors]}}


class ValidationCancelledError(FormSchemaError):
    """A debounced validation call was superseded by a newer call for the same key."""

    def __init__(self, key: Any = None, reason: str = "Validation cancelled - new input received"):
        super().__init__(reason)
        self.key = key
        self.reason = reason


# =============================================================================
# Result type
# =============================================================================

@final
@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Success variant of Result."""
    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value

    def unwrap_err(self) -> NoReturn:
        raise ValueError(f"Called unwrap_err on Ok: {self.value!r}")

    def map(self, f: Callable[[T], U]) -> Result[U, Any]:
        """Transform the success value."""
        return Ok(f(self.value))

    def __iter__(self) -> Iterator[T]:
        yield self.value


@final
@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Failure variant of Result."""
    error: E

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> NoReturn:
        """Raises because Err has no value to unwrap."""
        if isinstance(self.error, BaseException):
            raise self.error
        raise ValueError(f"Called unwrap on Err: {self.error}")

    def unwrap_or(self, default: T) -> T:
        return default

    def unwrap_err(self) -> E:
        return self.error

    def map(self, f: Callable[[Any], U]) -> Result[U, E]:
        """No-op for Err variant."""
        return self  # type: ignore

    def __iter__(self) -> Iterator:
        return iter([])


Result = Union[Ok[T], Err[E]]


def try_result(f: Callable[[], T]) -> Result[T, Exception]:
    """Execute ``f`` and wrap its outcome, catching exceptions into Err."""
    try:
        return Ok(f())
    except Exception as e:
        return Err(e)


async def try_result_async(f: Callable[[], Awaitable[T]]) -> Result[T, Exception]:
    """Async variant of try_result."""
    try:
        return Ok(await f())
    except Exception as e:
        return Err(e)
