"""Rule Validator Registry

Dispatches rule tags to validator functions.

Built-in rules form a closed enumeration (``RuleKind``) with an exhaustive
dispatch table checked at import time. User rules live in a separate
side-table per registry; built-ins always resolve first, so a custom
registration can never shadow a built-in tag.

Usage:
    registry = ValidatorRegistry()

    @registry.validator("zipCode")
    def zip_code(value, params, context):
        if is_empty(value) or ZIP.match(value): return None
        return make_error(context, "INVALID_ZIP", params.get("message") or "Invalid ZIP code")

    validate(schema, data, registry=registry)
"""
from __future__ import annotations

from enum import Enum
from typing import Callable

from formschema.config import get_settings
from formschema.logging import registry_logger

from . import validators as v
from .model import FieldKind
from .validators import TypeCheckFn, ValidatorFn


class RuleKind(str, Enum):
    """Every built-in rule tag."""
    # General
    REQUIRED = "required"
    MIN = "min"
    MAX = "max"
    ENUM = "enum"
    CUSTOM = "custom"
    WARNING = "warning"
    # String
    EMAIL = "email"
    URL = "url"
    IP_ADDRESS = "ipAddress"
    IPV6 = "ipv6"
    ALPHA = "alpha"
    ALPHANUMERIC = "alphanumeric"
    NUMERIC = "numeric"
    LOWERCASE = "lowercase"
    UPPERCASE = "uppercase"
    SLUG = "slug"
    HEX = "hex"
    BASE64 = "base64"
    JSON = "json"
    LENGTH = "length"
    CONTAINS = "contains"
    STARTS_WITH = "startsWith"
    ENDS_WITH = "endsWith"
    PATTERN = "pattern"
    # Number
    INTEGER = "integer"
    POSITIVE = "positive"
    NEGATIVE = "negative"
    PORT = "port"
    LATITUDE = "latitude"
    LONGITUDE = "longitude"
    PERCENTAGE = "percentage"
    NUMBER_BETWEEN = "numberBetween"
    DIVISIBLE_BY = "divisibleBy"
    MULTIPLE_OF = "multipleOf"
    EVEN = "even"
    ODD = "odd"
    SAFE = "safe"
    FINITE = "finite"
    # Boolean
    IS_TRUE = "isTrue"
    IS_FALSE = "isFalse"
    # Date
    AFTER = "after"
    BEFORE = "before"
    PAST = "past"
    FUTURE = "future"
    TODAY = "today"
    YESTERDAY = "yesterday"
    TOMORROW = "tomorrow"
    THIS_WEEK = "thisWeek"
    THIS_MONTH = "thisMonth"
    THIS_YEAR = "thisYear"
    WEEKDAY = "weekday"
    WEEKEND = "weekend"
    AGE = "age"
    DATE_BETWEEN = "dateBetween"
    # Array
    UNIQUE = "unique"
    INCLUDES = "includes"
    EXCLUDES = "excludes"
    EMPTY = "empty"
    NOT_EMPTY = "notEmpty"
    SORTED = "sorted"
    COMPACT = "compact"
    # Object
    KEYS = "keys"
    ALLOWED_KEYS = "allowedKeys"
    FORBIDDEN_KEYS = "forbiddenKeys"
    # Cross-field
    MATCHES = "matches"
    NOT_MATCHES = "notMatches"
    GREATER_THAN = "greaterThan"
    LESS_THAN = "lessThan"
    DEPENDS_ON = "dependsOn"
    WHEN = "when"
    # Async
    REFINE_ASYNC = "refineAsync"

    def __str__(self) -> str:
        return self.value


def _deferred_to_async_engine(value, params, context):
    """Async rules are executed by the async engine, never through dispatch."""
    return None


_RULE_TABLE: dict[RuleKind, ValidatorFn] = {
    RuleKind.REQUIRED: v.required,
    RuleKind.MIN: v.min_,
    RuleKind.MAX: v.max_,
    RuleKind.ENUM: v.enum,
    RuleKind.CUSTOM: v.custom,
    RuleKind.WARNING: v.warning,
    RuleKind.EMAIL: v.email,
    RuleKind.URL: v.url,
    RuleKind.IP_ADDRESS: v.ip_address,
    RuleKind.IPV6: v.ipv6,
    RuleKind.ALPHA: v.alpha,
    RuleKind.ALPHANUMERIC: v.alphanumeric,
    RuleKind.NUMERIC: v.numeric,
    RuleKind.LOWERCASE: v.lowercase,
    RuleKind.UPPERCASE: v.uppercase,
    RuleKind.SLUG: v.slug,
    RuleKind.HEX: v.hex_,
    RuleKind.BASE64: v.base64,
    RuleKind.JSON: v.json_,
    RuleKind.LENGTH: v.length,
    RuleKind.CONTAINS: v.contains,
    RuleKind.STARTS_WITH: v.starts_with,
    RuleKind.ENDS_WITH: v.ends_with,
    RuleKind.PATTERN: v.pattern,
    RuleKind.INTEGER: v.integer,
    RuleKind.POSITIVE: v.positive,
    RuleKind.NEGATIVE: v.negative,
    RuleKind.PORT: v.port,
    RuleKind.LATITUDE: v.latitude,
    RuleKind.LONGITUDE: v.longitude,
    RuleKind.PERCENTAGE: v.percentage,
    RuleKind.NUMBER_BETWEEN: v.number_between,
    RuleKind.DIVISIBLE_BY: v.divisible_by,
    RuleKind.MULTIPLE_OF: v.multiple_of,
    RuleKind.EVEN: v.even,
    RuleKind.ODD: v.odd,
    RuleKind.SAFE: v.safe,
    RuleKind.FINITE: v.finite,
    RuleKind.IS_TRUE: v.is_true,
    RuleKind.IS_FALSE: v.is_false,
    RuleKind.AFTER: v.after,
    RuleKind.BEFORE: v.before,
    RuleKind.PAST: v.past,
    RuleKind.FUTURE: v.future,
    RuleKind.TODAY: v.today,
    RuleKind.YESTERDAY: v.yesterday,
    RuleKind.TOMORROW: v.tomorrow,
    RuleKind.THIS_WEEK: v.this_week,
    RuleKind.THIS_MONTH: v.this_month,
    RuleKind.THIS_YEAR: v.this_year,
    RuleKind.WEEKDAY: v.weekday,
    RuleKind.WEEKEND: v.weekend,
    RuleKind.AGE: v.age,
    RuleKind.DATE_BETWEEN: v.date_between,
    RuleKind.UNIQUE: v.unique,
    RuleKind.INCLUDES: v.includes,
    RuleKind.EXCLUDES: v.excludes,
    RuleKind.EMPTY: v.empty,
    RuleKind.NOT_EMPTY: v.not_empty,
    RuleKind.SORTED: v.sorted_,
    RuleKind.COMPACT: v.compact,
    RuleKind.KEYS: v.keys,
    RuleKind.ALLOWED_KEYS: v.allowed_keys,
    RuleKind.FORBIDDEN_KEYS: v.forbidden_keys,
    RuleKind.MATCHES: v.matches,
    RuleKind.NOT_MATCHES: v.not_matches,
    RuleKind.GREATER_THAN: v.greater_than,
    RuleKind.LESS_THAN: v.less_than,
    RuleKind.DEPENDS_ON: v.depends_on,
    RuleKind.WHEN: v.when,
    RuleKind.REFINE_ASYNC: _deferred_to_async_engine,
}

_TYPE_TABLE: dict[FieldKind, TypeCheckFn] = {
    FieldKind.STRING: v.check_string,
    FieldKind.NUMBER: v.check_number,
    FieldKind.BOOLEAN: v.check_boolean,
    FieldKind.DATE: v.check_date,
    FieldKind.ARRAY: v.check_array,
    FieldKind.OBJECT: v.check_object,
}

if missing := set(RuleKind) - set(_RULE_TABLE):
    raise RuntimeError(f"Built-in rules without a validator: {sorted(k.value for k in missing)}")
if missing_types := set(FieldKind) - set(_TYPE_TABLE):
    raise RuntimeError(f"Field kinds without a type check: {sorted(k.value for k in missing_types)}")

_BUILTINS: dict[str, ValidatorFn] = {kind.value: fn for kind, fn in _RULE_TABLE.items()}


def is_builtin(tag: str) -> bool:
    return str(tag) in _BUILTINS


class ValidatorRegistry:
    """Built-in dispatch plus an open side-table of custom validators."""

    def __init__(self, custom: dict[str, ValidatorFn] | None = None):
        self._custom: dict[str, ValidatorFn] = {}
        for tag, fn in (custom or {}).items():
            self.register(tag, fn)

    def register(self, tag: str, fn: ValidatorFn) -> None:
        """Add or overwrite a custom validator. Built-in tags cannot be overridden."""
        tag = str(tag)
        if not callable(fn):
            raise TypeError(f"Validator for '{tag}' must be callable, got {type(fn).__name__}")
        if is_builtin(tag):
            registry_logger().warning("builtin_validator_shadowed", tag=tag)
            return
        if tag in self._custom:
            registry_logger().info("custom_validator_replaced", tag=tag)
        self._custom[tag] = fn

    def validator(self, tag: str) -> Callable[[ValidatorFn], ValidatorFn]:
        """Decorator form of ``register``."""
        def decorator(fn: ValidatorFn) -> ValidatorFn:
            self.register(tag, fn)
            return fn
        return decorator

    def unregister(self, tag: str) -> bool:
        return self._custom.pop(str(tag), None) is not None

    def resolve(self, tag: str) -> ValidatorFn | None:
        """Built-ins first, then custom entries."""
        tag = str(tag)
        return _BUILTINS.get(tag) or self._custom.get(tag)

    @staticmethod
    def resolve_type(kind: FieldKind | str) -> TypeCheckFn:
        return _TYPE_TABLE[FieldKind(kind)]

    def report_unknown(self, tag: str, path: str) -> None:
        """Log a rule tag nothing resolves; the rule is skipped by the caller."""
        if get_settings().WARN_ON_UNKNOWN_RULE:
            registry_logger().warning("unknown_validator", tag=str(tag), path=path)

    def custom_tags(self) -> tuple[str, ...]:
        return tuple(self._custom)

    def copy(self) -> ValidatorRegistry:
        return ValidatorRegistry(dict(self._custom))

    def __contains__(self, tag: object) -> bool:
        return isinstance(tag, str) and (is_builtin(tag) or tag in self._custom)


default_registry = ValidatorRegistry()


def register_validator(tag: str, fn: ValidatorFn | None = None):
    """Register on the default registry; usable as ``@register_validator("tag")``."""
    if fn is None:
        return default_registry.validator(tag)
    default_registry.register(tag, fn)
    return fn


def get_validator(tag: str) -> ValidatorFn | None:
    return default_registry.resolve(tag)
