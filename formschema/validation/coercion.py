"""Explicit Opt-in Coercion

Coercion never happens implicitly: a field opts in by listing a helper as its
``preprocess`` or ``transform``. The helpers return their input unchanged when
it cannot be coerced, so the field's type check reports the problem instead of
the transform raising.

Features:
- Type-safe coercion rules returning Result values
- Plain-callable helpers usable directly in field builders
- Named transforms that survive schema serialization
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Generic, TypeVar

from formschema.errors import Err, Ok, Result

T = TypeVar("T")
S = TypeVar("S")


@dataclass(frozen=True, slots=True)
class CoercionRule(ABC, Generic[S, T]):
    """Base class for coercion rules."""

    @abstractmethod
    def coerce(self, value: Any) -> Result[T, str]:
        """Coerce value to the target type. Returns Result."""

    def __call__(self, value: Any) -> Any:
        """Coerced value, or the input unchanged when coercion fails."""
        return self.coerce(value).unwrap_or(value)


@dataclass(frozen=True, slots=True)
class StringToNumber(CoercionRule[str, float]):
    """Coerce numeric strings; integral text stays ``int``."""

    def coerce(self, value: Any) -> Result[int | float, str]:
        if not isinstance(value, str):
            return Err(f"Cannot coerce {type(value).__name__} to number")
        if not (stripped := value.strip()):
            return Err("Cannot coerce an empty string to number")
        try:
            return Ok(int(stripped))
        except ValueError:
            pass
        try:
            return Ok(float(stripped))
        except ValueError as e:
            return Err(f"Cannot coerce '{value}' to number: {e}")


@dataclass(frozen=True, slots=True)
class StringToBool(CoercionRule[str, bool]):
    """Coerce string to boolean.

    Truthy: "true", "1", "yes", "on", "y"
    Falsy: "false", "0", "no", "off", "n"
    """
    true_values: frozenset[str] = frozenset({"true", "1", "yes", "on", "y"})
    false_values: frozenset[str] = frozenset({"false", "0", "no", "off", "n"})

    def coerce(self, value: Any) -> Result[bool, str]:
        if not isinstance(value, str):
            return Err(f"Cannot coerce {type(value).__name__} to bool")
        lower = value.strip().lower()
        if lower in self.true_values:
            return Ok(True)
        if lower in self.false_values:
            return Ok(False)
        return Err(f"Cannot coerce '{value}' to bool. Valid values: {sorted(self.true_values | self.false_values)}")


@dataclass(frozen=True, slots=True)
class ISO8601ToDateTime(CoercionRule[str, datetime]):
    """Coerce ISO8601 strings and epoch milliseconds to datetime."""

    def coerce(self, value: Any) -> Result[datetime, str]:
        if isinstance(value, datetime):
            return Ok(value)
        if isinstance(value, date):
            return Ok(datetime(value.year, value.month, value.day))
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            try:
                return Ok(datetime.fromtimestamp(value / 1000))
            except (OverflowError, OSError, ValueError) as e:
                return Err(f"Cannot coerce timestamp {value}: {e}")
        if not isinstance(value, str):
            return Err(f"Cannot coerce {type(value).__name__} to datetime")
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            return Ok(datetime.fromisoformat(text))
        except ValueError as e:
            return Err(f"Cannot coerce '{value}' to datetime: {e}")


@dataclass(frozen=True, slots=True)
class AnyToString(CoercionRule[Any, str]):
    """Stringify scalars; containers and null are left alone."""

    def coerce(self, value: Any) -> Result[str, str]:
        if isinstance(value, str):
            return Ok(value)
        if isinstance(value, bool):
            return Ok("true" if value else "false")
        if isinstance(value, date):
            return Ok(value.isoformat())
        if isinstance(value, (int, float, Decimal)):
            return Ok(str(value))
        return Err(f"Cannot coerce {type(value).__name__} to string")


# =============================================================================
# Helpers usable as preprocess/transform callables
# =============================================================================

_to_number = StringToNumber()
_to_boolean = StringToBool()
_to_date = ISO8601ToDateTime()
_to_string = AnyToString()


def to_number(value: Any) -> Any:
    return _to_number(value) if isinstance(value, str) else value


def to_boolean(value: Any) -> Any:
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value in (0, 1):
        return bool(value)
    return _to_boolean(value) if isinstance(value, str) else value


def to_date(value: Any) -> Any:
    if isinstance(value, date) or value is None:
        return value
    return _to_date(value)


def to_string(value: Any) -> Any:
    return _to_string(value)


def trim(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


def lowercase(value: Any) -> Any:
    return value.lower() if isinstance(value, str) else value


def uppercase(value: Any) -> Any:
    return value.upper() if isinstance(value, str) else value


NAMED_TRANSFORMS: dict[str, Callable[[Any], Any]] = {
    "toNumber": to_number,
    "toBoolean": to_boolean,
    "toDate": to_date,
    "toString": to_string,
    "trim": trim,
    "lowercase": lowercase,
    "uppercase": uppercase,
}

_NAMES_BY_TRANSFORM: dict[Callable[[Any], Any], str] = {fn: name for name, fn in NAMED_TRANSFORMS.items()}


def transform_name(fn: Callable[[Any], Any]) -> str | None:
    """Registered name of a transform, or None for anonymous callables."""
    return _NAMES_BY_TRANSFORM.get(fn)
