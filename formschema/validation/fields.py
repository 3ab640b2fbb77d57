"""Field Rule Builder DSL

Fluent, persistent builders for ``FieldDefinition`` values. Every method
returns a *new* builder wrapping a new definition, so a partially built chain
can be reused as a base without leaking rules between schemas:

    name = field.string().trim().min(2)
    first = name.required()        # name itself is unchanged
    nick = name.max(20)

Date and pattern parameters are stored as strings so that built-in rules
stay serializable.
"""
from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Awaitable, Callable, ClassVar, Self

from formschema.config import get_settings
from formschema.errors import SchemaDefinitionError

from .coercion import lowercase, trim, uppercase
from .model import (
    FieldDefinition, FieldKind, SchemaDefinition, UnknownKeyPolicy, ValidationRule,
)
from .registry import RuleKind

AsyncCheck = Callable[[Any], Awaitable["bool | Mapping[str, Any]"]]
CustomCheck = Callable[[Any, Any], "bool | Mapping[str, Any]"]


def to_definition(value: FieldBuilder | FieldDefinition) -> FieldDefinition:
    """Accept a builder or an already built definition."""
    if isinstance(value, FieldDefinition): return value
    if isinstance(value, FieldBuilder): return value.build()
    raise SchemaDefinitionError(f"Expected a field builder or FieldDefinition, got {type(value).__name__}")


def to_schema(value: SchemaDefinition | Mapping[str, FieldBuilder | FieldDefinition]) -> SchemaDefinition:
    if isinstance(value, SchemaDefinition): return value
    if isinstance(value, Mapping): return SchemaDefinition({name: to_definition(f) for name, f in value.items()})
    raise SchemaDefinitionError(f"Expected a schema or a mapping of fields, got {type(value).__name__}")


def _date_param(value: date | datetime | str) -> str:
    if isinstance(value, (date, datetime)): return value.isoformat()
    if isinstance(value, str): return value
    raise SchemaDefinitionError(f"Date parameter must be a date, datetime or ISO string, got {type(value).__name__}")


# =============================================================================
# Base Builder
# =============================================================================

class FieldBuilder:
    """Common modifiers shared by every field kind."""
    __slots__ = ("_definition",)
    kind: ClassVar[FieldKind]

    def __init__(self, definition: FieldDefinition | None = None):
        self._definition = definition if definition is not None else FieldDefinition(self.kind)

    def __repr__(self) -> str:
        d = self._definition
        return f"{type(self).__name__}(required={d.required}, rules={[r.kind for r in d.rules]})"

    def _derive(self, **changes: Any) -> Self:
        return type(self)(self._definition.replace(**changes))

    def _rule(self, kind: RuleKind | str, params: Mapping[str, Any] | None = None, *,
              message: str | None = None, soft: bool = False, **options: Any) -> Self:
        return type(self)(self._definition.with_rule(
            ValidationRule(kind, params or {}, message=message, soft=soft, **options)))

    def build(self) -> FieldDefinition:
        return self._definition

    @property
    def definition(self) -> FieldDefinition:
        return self._definition

    # Presence --------------------------------------------------------------

    def required(self, message: str | None = None) -> Self:
        """Mark required; ``message`` overrides the REQUIRED error text."""
        rules = tuple(r for r in self._definition.rules if r.kind != RuleKind.REQUIRED.value)
        if message is not None:
            rules = (*rules, ValidationRule(RuleKind.REQUIRED, message=message))
        return self._derive(required=True, rules=rules)

    def optional(self) -> Self:
        return self._derive(required=False)

    def default(self, value: Any) -> Self:
        return self._derive(default=value)

    def nullable(self) -> Self:
        return self._derive(nullable=True)

    def nullish(self) -> Self:
        return self._derive(nullish=True)

    # Value shaping ---------------------------------------------------------

    def transform(self, fn: Callable[[Any], Any]) -> Self:
        if not callable(fn): raise SchemaDefinitionError("transform requires a callable")
        return self._derive(transforms=(*self._definition.transforms, fn))

    def preprocess(self, fn: Callable[[Any], Any]) -> Self:
        if not callable(fn): raise SchemaDefinitionError("preprocess requires a callable")
        return self._derive(preprocess=fn)

    def meta(self, **data: Any) -> Self:
        return self._derive(meta={**self._definition.meta, **data})

    # Generic rules ---------------------------------------------------------

    def rule(self, kind: RuleKind | str, params: Mapping[str, Any] | None = None, *,
             message: str | None = None, soft: bool = False) -> Self:
        """Reference any registered validator by tag."""
        return self._rule(kind, params, message=message, soft=soft)

    def custom(self, fn: CustomCheck, message: str | None = None, *, soft: bool = False) -> Self:
        """``fn(value, context)`` returns bool or ``{"valid": ..., "message": ...}``."""
        if not callable(fn): raise SchemaDefinitionError("custom requires a callable")
        return self._rule(RuleKind.CUSTOM, {"validate": fn}, message=message, soft=soft)

    def soft_custom(self, fn: CustomCheck, message: str | None = None) -> Self:
        return self.custom(fn, message, soft=True)

    def soft(self, message: str) -> Self:
        """Attach an advisory notice reported whenever the field has a value."""
        return self._rule(RuleKind.WARNING, message=message, soft=True)

    def refine_async(self, fn: AsyncCheck, *, message: str | None = None, debounce_ms: int | bool | None = None,
                     timeout_ms: int | None = None, soft: bool = False) -> Self:
        """Async check of the working value; ``debounce_ms=True`` uses the configured window."""
        if not callable(fn): raise SchemaDefinitionError("refine_async requires a callable")
        if debounce_ms is True: debounce_ms = get_settings().DEBOUNCE_MS
        elif debounce_ms is False: debounce_ms = None
        if timeout_ms is not None and timeout_ms <= 0:
            raise SchemaDefinitionError(f"timeout_ms must be positive, got {timeout_ms}")
        return self._rule(RuleKind.REFINE_ASYNC, {"validate": fn}, message=message, soft=soft,
            is_async=True, debounce_ms=debounce_ms, timeout_ms=timeout_ms)

    # Cross-field -----------------------------------------------------------

    def matches(self, other: str, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.MATCHES, {"field": other}, message=message, soft=soft)

    def not_matches(self, other: str, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.NOT_MATCHES, {"field": other}, message=message, soft=soft)

    def greater_than(self, other: str, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.GREATER_THAN, {"field": other}, message=message, soft=soft)

    def less_than(self, other: str, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.LESS_THAN, {"field": other}, message=message, soft=soft)

    def depends_on(self, other: str, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.DEPENDS_ON, {"field": other}, message=message, soft=soft)

    def when(self, other: str, equals: Any, then: RuleKind | str, params: Mapping[str, Any] | None = None, *,
             message: str | None = None, soft: bool = False) -> Self:
        """Apply rule ``then`` only while field ``other`` equals ``equals``."""
        nested = {"kind": str(then), "params": dict(params or {})}
        return self._rule(RuleKind.WHEN, {"field": other, "is": equals, "then": nested}, message=message, soft=soft)


class _SizedMixin:
    """min/max/length shared by strings (characters) and arrays (items)."""
    __slots__ = ()

    def min(self, value: int, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.MIN, {"value": value}, message=message, soft=soft)

    def max(self, value: int, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.MAX, {"value": value}, message=message, soft=soft)

    def min_soft(self, value: int, message: str | None = None) -> Self:
        return self.min(value, message, soft=True)

    def max_soft(self, value: int, message: str | None = None) -> Self:
        return self.max(value, message, soft=True)

    def length(self, value: int, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.LENGTH, {"length": value}, message=message, soft=soft)


# =============================================================================
# String
# =============================================================================

class StringField(_SizedMixin, FieldBuilder):
    __slots__ = ()
    kind = FieldKind.STRING

    def email(self, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.EMAIL, message=message, soft=soft)

    def url(self, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.URL, message=message, soft=soft)

    def ip_address(self, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.IP_ADDRESS, message=message, soft=soft)

    def ipv6(self, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.IPV6, message=message, soft=soft)

    def alpha(self, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.ALPHA, message=message, soft=soft)

    def alphanumeric(self, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.ALPHANUMERIC, message=message, soft=soft)

    def numeric(self, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.NUMERIC, message=message, soft=soft)

    def lowercase(self, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.LOWERCASE, message=message, soft=soft)

    def uppercase(self, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.UPPERCASE, message=message, soft=soft)

    def slug(self, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.SLUG, message=message, soft=soft)

    def hex(self, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.HEX, message=message, soft=soft)

    def base64(self, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.BASE64, message=message, soft=soft)

    def json(self, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.JSON, message=message, soft=soft)

    def contains(self, substring: str, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.CONTAINS, {"substring": substring}, message=message, soft=soft)

    def starts_with(self, prefix: str, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.STARTS_WITH, {"prefix": prefix}, message=message, soft=soft)

    def ends_with(self, suffix: str, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.ENDS_WITH, {"suffix": suffix}, message=message, soft=soft)

    def pattern(self, regex: str | re.Pattern, message: str | None = None, *, soft: bool = False) -> Self:
        source = regex.pattern if isinstance(regex, re.Pattern) else regex
        try:
            re.compile(source)
        except re.error as exc:
            raise SchemaDefinitionError(f"Invalid pattern {source!r}: {exc}") from exc
        return self._rule(RuleKind.PATTERN, {"pattern": source}, message=message, soft=soft)

    def enum(self, values: Iterable[str], message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.ENUM, {"values": list(values)}, message=message, soft=soft)

    def trim(self) -> Self:
        return self.transform(trim)

    def to_lower(self) -> Self:
        return self.transform(lowercase)

    def to_upper(self) -> Self:
        return self.transform(uppercase)


# =============================================================================
# Number
# =============================================================================

class NumberField(FieldBuilder):
    __slots__ = ()
    kind = FieldKind.NUMBER

    def min(self, value: float, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.MIN, {"value": value}, message=message, soft=soft)

    def max(self, value: float, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.MAX, {"value": value}, message=message, soft=soft)

    def min_soft(self, value: float, message: str | None = None) -> Self:
        return self.min(value, message, soft=True)

    def max_soft(self, value: float, message: str | None = None) -> Self:
        return self.max(value, message, soft=True)

    def warn_below(self, value: float, message: str | None = None) -> Self:
        return self.min_soft(value, message)

    def warn_above(self, value: float, message: str | None = None) -> Self:
        return self.max_soft(value, message)

    def integer(self, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.INTEGER, message=message, soft=soft)

    def positive(self, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.POSITIVE, message=message, soft=soft)

    def negative(self, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.NEGATIVE, message=message, soft=soft)

    def port(self, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.PORT, message=message, soft=soft)

    def latitude(self, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.LATITUDE, message=message, soft=soft)

    def longitude(self, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.LONGITUDE, message=message, soft=soft)

    def percentage(self, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.PERCENTAGE, message=message, soft=soft)

    def between(self, low: float, high: float, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.NUMBER_BETWEEN, {"min": low, "max": high}, message=message, soft=soft)

    def divisible_by(self, divisor: float, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.DIVISIBLE_BY, {"divisor": divisor}, message=message, soft=soft)

    def multiple_of(self, multiple: float, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.MULTIPLE_OF, {"multiple": multiple}, message=message, soft=soft)

    def even(self, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.EVEN, message=message, soft=soft)

    def odd(self, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.ODD, message=message, soft=soft)

    def safe(self, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.SAFE, message=message, soft=soft)

    def finite(self, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.FINITE, message=message, soft=soft)

    def enum(self, values: Iterable[float], message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.ENUM, {"values": list(values)}, message=message, soft=soft)


# =============================================================================
# Boolean
# =============================================================================

class BooleanField(FieldBuilder):
    __slots__ = ()
    kind = FieldKind.BOOLEAN

    def is_true(self, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.IS_TRUE, message=message, soft=soft)

    def is_false(self, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.IS_FALSE, message=message, soft=soft)

    def enum(self, values: Iterable[bool], message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.ENUM, {"values": list(values)}, message=message, soft=soft)


# =============================================================================
# Date
# =============================================================================

class DateField(FieldBuilder):
    __slots__ = ()
    kind = FieldKind.DATE

    def after(self, moment: date | datetime | str, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.AFTER, {"date": _date_param(moment)}, message=message, soft=soft)

    def before(self, moment: date | datetime | str, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.BEFORE, {"date": _date_param(moment)}, message=message, soft=soft)

    def past(self, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.PAST, message=message, soft=soft)

    def future(self, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.FUTURE, message=message, soft=soft)

    def today(self, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.TODAY, message=message, soft=soft)

    def yesterday(self, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.YESTERDAY, message=message, soft=soft)

    def tomorrow(self, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.TOMORROW, message=message, soft=soft)

    def this_week(self, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.THIS_WEEK, message=message, soft=soft)

    def this_month(self, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.THIS_MONTH, message=message, soft=soft)

    def this_year(self, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.THIS_YEAR, message=message, soft=soft)

    def weekday(self, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.WEEKDAY, message=message, soft=soft)

    def weekend(self, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.WEEKEND, message=message, soft=soft)

    def age(self, min: int | None = None, max: int | None = None, message: str | None = None, *,
            soft: bool = False) -> Self:
        params = {k: v for k, v in (("min", min), ("max", max)) if v is not None}
        return self._rule(RuleKind.AGE, params, message=message, soft=soft)

    def between(self, start: date | datetime | str, end: date | datetime | str, message: str | None = None, *,
                soft: bool = False) -> Self:
        return self._rule(RuleKind.DATE_BETWEEN, {"start": _date_param(start), "end": _date_param(end)},
            message=message, soft=soft)


# =============================================================================
# Array
# =============================================================================

class ArrayField(_SizedMixin, FieldBuilder):
    __slots__ = ()
    kind = FieldKind.ARRAY

    def of(self, item: FieldBuilder | FieldDefinition) -> Self:
        """Validate every element against ``item``."""
        return self._derive(items=to_definition(item))

    def unique(self, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.UNIQUE, message=message, soft=soft)

    def includes(self, item: Any, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.INCLUDES, {"item": item}, message=message, soft=soft)

    def excludes(self, item: Any, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.EXCLUDES, {"item": item}, message=message, soft=soft)

    def empty(self, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.EMPTY, message=message, soft=soft)

    def not_empty(self, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.NOT_EMPTY, message=message, soft=soft)

    def sorted(self, order: str = "asc", message: str | None = None, *, soft: bool = False) -> Self:
        if order not in ("asc", "desc"): raise SchemaDefinitionError(f"Sort order must be 'asc' or 'desc', got {order!r}")
        return self._rule(RuleKind.SORTED, {"order": order}, message=message, soft=soft)

    def compact(self, message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.COMPACT, message=message, soft=soft)


# =============================================================================
# Object
# =============================================================================

class ObjectField(FieldBuilder):
    __slots__ = ()
    kind = FieldKind.OBJECT

    def _nested(self) -> SchemaDefinition:
        return self._definition.schema if self._definition.schema is not None else SchemaDefinition()

    def shape(self, fields: SchemaDefinition | Mapping[str, FieldBuilder | FieldDefinition]) -> Self:
        return self._derive(schema=to_schema(fields))

    def strict(self) -> Self:
        return self._derive(schema=self._nested().replace(unknown_keys=UnknownKeyPolicy.STRICT, catchall=None))

    def passthrough(self) -> Self:
        return self._derive(schema=self._nested().replace(unknown_keys=UnknownKeyPolicy.PASSTHROUGH, catchall=None))

    def catchall(self, item: FieldBuilder | FieldDefinition) -> Self:
        return self._derive(schema=self._nested().replace(unknown_keys=UnknownKeyPolicy.CATCHALL,
            catchall=to_definition(item)))

    def keys(self, regex: str | re.Pattern, message: str | None = None, *, soft: bool = False) -> Self:
        """Every key must match ``regex``."""
        source = regex.pattern if isinstance(regex, re.Pattern) else regex
        try:
            re.compile(source)
        except re.error as exc:
            raise SchemaDefinitionError(f"Invalid key pattern {source!r}: {exc}") from exc
        return self._rule(RuleKind.KEYS, {"pattern": source}, message=message, soft=soft)

    def allowed_keys(self, names: Iterable[str], message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.ALLOWED_KEYS, {"keys": list(names)}, message=message, soft=soft)

    def forbidden_keys(self, names: Iterable[str], message: str | None = None, *, soft: bool = False) -> Self:
        return self._rule(RuleKind.FORBIDDEN_KEYS, {"keys": list(names)}, message=message, soft=soft)


# =============================================================================
# Entry Points
# =============================================================================

_BUILDERS: dict[FieldKind, type[FieldBuilder]] = {
    FieldKind.STRING: StringField,
    FieldKind.NUMBER: NumberField,
    FieldKind.BOOLEAN: BooleanField,
    FieldKind.DATE: DateField,
    FieldKind.ARRAY: ArrayField,
    FieldKind.OBJECT: ObjectField,
}


def builder_for(definition: FieldDefinition) -> FieldBuilder:
    """Wrap an existing definition in the builder for its kind to keep chaining."""
    return _BUILDERS[definition.kind](definition)


class FieldFactory:
    """Entry points: ``field.string()``, ``field.array(field.number())``, ..."""

    @staticmethod
    def string() -> StringField:
        return StringField()

    @staticmethod
    def number() -> NumberField:
        return NumberField()

    @staticmethod
    def boolean() -> BooleanField:
        return BooleanField()

    @staticmethod
    def date() -> DateField:
        return DateField()

    @staticmethod
    def array(item: FieldBuilder | FieldDefinition | None = None) -> ArrayField:
        builder = ArrayField()
        return builder.of(item) if item is not None else builder

    @staticmethod
    def object(fields: SchemaDefinition | Mapping[str, FieldBuilder | FieldDefinition] | None = None) -> ObjectField:
        builder = ObjectField()
        return builder.shape(fields) if fields is not None else builder

    @staticmethod
    def enum(values: Iterable[Any], message: str | None = None) -> StringField | NumberField | BooleanField:
        """Field restricted to ``values``; the kind is inferred from them."""
        values = list(values)
        if not values: raise SchemaDefinitionError("enum requires at least one value")
        if all(isinstance(x, str) for x in values): return StringField().enum(values, message)
        if all(isinstance(x, bool) for x in values): return BooleanField().enum(values, message)
        if all(isinstance(x, (int, float, Decimal)) and not isinstance(x, bool) for x in values):
            return NumberField().enum(values, message)
        raise SchemaDefinitionError(f"enum values must share one kind, got {values!r}")


field = FieldFactory()
