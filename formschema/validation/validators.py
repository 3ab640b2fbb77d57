"""Built-in Validators

Type checks and rule validators dispatched by the registry.

Every rule validator has the signature ``(value, params, context)`` and
returns ``ValidationError | None``. Validators never raise for invalid input
and are no-ops for empty values (MISSING, None, ""): presence is decided by
the engine, not per rule. ``params`` carries the rule's own parameters plus
``soft`` and ``message``.

Features:
- Compiled regex constants for the string formats
- Tolerant date parsing (date/datetime objects and ISO-8601 strings)
- Cross-field rules resolve dotted paths against the root input
"""
from __future__ import annotations

import json
import math
import re
from collections.abc import Mapping
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from ipaddress import IPv6Address
from typing import Any, Callable
from urllib.parse import urlsplit

from formschema.errors import ErrorCode
from formschema.errors.builders import make_error, type_error
from formschema.logging import registry_logger

from .model import MISSING, ValidationError, ValidatorContext, is_empty, thaw

ValidatorFn = Callable[[Any, Mapping[str, Any], ValidatorContext], "ValidationError | None"]
TypeCheckFn = Callable[[Any, ValidatorContext], "ValidationError | None"]

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
IPV4_REGEX = re.compile(r"^((25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}(25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)$")
ALPHA_REGEX = re.compile(r"^[a-zA-Z]+$")
ALPHANUMERIC_REGEX = re.compile(r"^[a-zA-Z0-9]+$")
NUMERIC_REGEX = re.compile(r"^[0-9]+$")
SLUG_REGEX = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
HEX_REGEX = re.compile(r"^(0x)?[0-9a-fA-F]+$")
BASE64_REGEX = re.compile(r"^(?:[A-Za-z0-9+/]{4})*(?:[A-Za-z0-9+/]{2}==|[A-Za-z0-9+/]{3}=)?$")
URL_SCHEME_REGEX = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*$")
NETWORK_SCHEMES = frozenset({"http", "https", "ftp", "ws", "wss"})
MAX_SAFE_INTEGER = 2**53 - 1


# =============================================================================
# Helpers
# =============================================================================

def _fail(params: Mapping[str, Any], context: ValidatorContext, code: ErrorCode, default: str,
          value: Any = MISSING, expected: Any = MISSING) -> ValidationError:
    """Error honoring the rule's ``message`` override and ``soft`` flag."""
    return make_error(context, code, params.get("message") or default, soft=bool(params.get("soft")),
        received=value, expected=expected)


def is_number(value: Any) -> bool:
    """Real number, excluding bool and NaN."""
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)): return False
    if isinstance(value, float): return not math.isnan(value)
    if isinstance(value, Decimal): return not value.is_nan()
    return True


def is_integral(value: Any) -> bool:
    if not is_number(value): return False
    if isinstance(value, int): return True
    if isinstance(value, float): return value.is_integer()
    return value.is_finite() and value == value.to_integral_value()


def parse_date(value: Any) -> datetime | None:
    """Parse into a naive local datetime, or None when not a date."""
    if isinstance(value, datetime): parsed = value
    elif isinstance(value, date): return datetime.combine(value, time())
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")): text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    return parsed.astimezone().replace(tzinfo=None) if parsed.tzinfo is not None else parsed


def _describe(value: Any) -> str:
    try:
        return json.dumps(value)
    except (TypeError, ValueError):
        return repr(value)


def _unique_key(item: Any) -> Any:
    try:
        hash(item)
    except TypeError:
        return ("json", json.dumps(item, sort_keys=True, default=repr))
    return (isinstance(item, bool), item)


def _contains(items: Any, expected: Any) -> bool:
    return any(thaw(item) == expected for item in items)


def _search(pattern: Any, text: str) -> bool | None:
    """Regex search; None when the pattern itself is invalid."""
    try:
        return re.search(pattern, text) is not None
    except (re.error, TypeError):
        return None


# =============================================================================
# Type Checks (always hard; MISSING and None pass)
# =============================================================================

def check_string(value: Any, context: ValidatorContext) -> ValidationError | None:
    if value is MISSING or value is None or isinstance(value, str): return None
    return type_error(context, "string", value)


def check_number(value: Any, context: ValidatorContext) -> ValidationError | None:
    if value is MISSING or value is None: return None
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return type_error(context, "number", value)
    if not is_number(value):
        return type_error(context, "number", value, ErrorCode.INVALID_NUMBER, "Value is not a valid number")
    return None


def check_boolean(value: Any, context: ValidatorContext) -> ValidationError | None:
    if value is MISSING or value is None or isinstance(value, bool): return None
    return type_error(context, "boolean", value)


def check_date(value: Any, context: ValidatorContext) -> ValidationError | None:
    if value is MISSING or value is None or isinstance(value, date): return None
    if isinstance(value, str):
        if parse_date(value) is None:
            return type_error(context, "date", value, ErrorCode.INVALID_DATE, "Invalid date format")
        return None
    return type_error(context, "date", value)


def check_array(value: Any, context: ValidatorContext) -> ValidationError | None:
    if value is MISSING or value is None or isinstance(value, (list, tuple)): return None
    return type_error(context, "array", value)


def check_object(value: Any, context: ValidatorContext) -> ValidationError | None:
    if value is MISSING or value is None or isinstance(value, Mapping): return None
    return type_error(context, "object", value)


# =============================================================================
# General Validators
# =============================================================================

def required(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    """The one validator that fires on empty values."""
    if is_empty(value) or (isinstance(value, (list, tuple)) and not value):
        return make_error(context, ErrorCode.REQUIRED, params.get("message") or "This field is required")
    return None


def min_(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    if is_empty(value) or (bound := params.get("value")) is None: return None
    if is_number(value) and value < bound:
        return _fail(params, context, ErrorCode.MIN_VALUE, f"Value must be at least {bound}", value, bound)
    if isinstance(value, str) and len(value) < bound:
        return _fail(params, context, ErrorCode.MIN_LENGTH, f"Must be at least {bound} characters", value, bound)
    if isinstance(value, (list, tuple)) and len(value) < bound:
        return _fail(params, context, ErrorCode.MIN_ITEMS, f"Must have at least {bound} items", value, bound)
    return None


def max_(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    if is_empty(value) or (bound := params.get("value")) is None: return None
    if is_number(value) and value > bound:
        return _fail(params, context, ErrorCode.MAX_VALUE, f"Value must be at most {bound}", value, bound)
    if isinstance(value, str) and len(value) > bound:
        return _fail(params, context, ErrorCode.MAX_LENGTH, f"Must be at most {bound} characters", value, bound)
    if isinstance(value, (list, tuple)) and len(value) > bound:
        return _fail(params, context, ErrorCode.MAX_ITEMS, f"Must have at most {bound} items", value, bound)
    return None


def enum(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    if is_empty(value): return None
    values = list(params.get("values") or ())
    if not any(value == allowed and isinstance(value, bool) == isinstance(allowed, bool) for allowed in values):
        return _fail(params, context, ErrorCode.INVALID_ENUM,
            f"Value must be one of: {', '.join(str(v) for v in values)}", value, values)
    return None


def custom(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    """Run a user callback ``(value, context)`` returning bool or ``{valid, message}``."""
    if is_empty(value) or (check := params.get("validate")) is None: return None
    try:
        outcome = check(value, context)
    except Exception as exc:
        registry_logger().warning("custom_validator_raised", path=context.path, error=str(exc))
        return _fail(params, context, ErrorCode.CUSTOM_VALIDATION, str(exc) or "Validation failed", value)
    if isinstance(outcome, Mapping):
        if outcome.get("valid"): return None
        return make_error(context, ErrorCode.CUSTOM_VALIDATION,
            outcome.get("message") or params.get("message") or "Validation failed",
            soft=bool(params.get("soft")), received=value)
    if not outcome:
        return _fail(params, context, ErrorCode.CUSTOM_VALIDATION, "Validation failed", value)
    return None


def warning(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    """Always reports its message; declared soft for advisory notices."""
    if is_empty(value): return None
    return _fail(params, context, ErrorCode.WARNING, "Please review this value", value)


# =============================================================================
# String Validators
# =============================================================================

def _format_rule(regex: re.Pattern, code: ErrorCode, default: str, noun: str) -> ValidatorFn:
    def validate(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
        if is_empty(value): return None
        if not isinstance(value, str):
            return _fail(params, context, code, f"{noun} must be a string", value)
        if not regex.match(value): return _fail(params, context, code, default, value)
        return None
    return validate


email = _format_rule(EMAIL_REGEX, ErrorCode.INVALID_EMAIL, "Invalid email address", "Email")
ip_address = _format_rule(IPV4_REGEX, ErrorCode.INVALID_IP, "Invalid IP address format", "IP address")
alpha = _format_rule(ALPHA_REGEX, ErrorCode.INVALID_ALPHA, "Must contain only letters", "Value")
alphanumeric = _format_rule(ALPHANUMERIC_REGEX, ErrorCode.INVALID_ALPHANUMERIC,
    "Must contain only letters and numbers", "Value")
numeric = _format_rule(NUMERIC_REGEX, ErrorCode.INVALID_NUMERIC, "Must contain only numbers", "Value")
slug = _format_rule(SLUG_REGEX, ErrorCode.INVALID_SLUG, "Must be a valid URL slug (lowercase, numbers, hyphens)", "Slug")
hex_ = _format_rule(HEX_REGEX, ErrorCode.INVALID_HEX, "Must be a valid hexadecimal string", "Hex value")
base64 = _format_rule(BASE64_REGEX, ErrorCode.INVALID_BASE64, "Must be a valid base64 string", "Base64 value")


def url(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    if is_empty(value): return None
    if not isinstance(value, str):
        return _fail(params, context, ErrorCode.INVALID_URL, "URL must be a string", value)
    try:
        parts = urlsplit(value)
    except ValueError:
        return _fail(params, context, ErrorCode.INVALID_URL, "Invalid URL format", value)
    valid = (not any(ch.isspace() for ch in value) and bool(URL_SCHEME_REGEX.match(parts.scheme))
        and bool(parts.netloc or parts.path)
        and (parts.scheme.lower() not in NETWORK_SCHEMES or bool(parts.hostname)))
    return None if valid else _fail(params, context, ErrorCode.INVALID_URL, "Invalid URL format", value)


def ipv6(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    if is_empty(value): return None
    try:
        IPv6Address(value if isinstance(value, str) else "")
    except ValueError:
        return _fail(params, context, ErrorCode.INVALID_IPV6, "Invalid IPv6 address format", value)
    return None


def lowercase(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    if is_empty(value) or not isinstance(value, str): return None
    if value != value.lower(): return _fail(params, context, ErrorCode.INVALID_LOWERCASE, "Must be lowercase", value)
    return None


def uppercase(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    if is_empty(value) or not isinstance(value, str): return None
    if value != value.upper(): return _fail(params, context, ErrorCode.INVALID_UPPERCASE, "Must be uppercase", value)
    return None


def json_(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    if is_empty(value): return None
    if not isinstance(value, str):
        return _fail(params, context, ErrorCode.INVALID_JSON, "JSON value must be a string", value)
    try:
        json.loads(value)
    except ValueError:
        return _fail(params, context, ErrorCode.INVALID_JSON, "Must be valid JSON", value)
    return None


def length(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    if is_empty(value): return None
    expected = params.get("length")
    if isinstance(value, str) and len(value) != expected:
        return _fail(params, context, ErrorCode.INVALID_LENGTH, f"Must be exactly {expected} characters", value, expected)
    if isinstance(value, (list, tuple)) and len(value) != expected:
        return _fail(params, context, ErrorCode.INVALID_LENGTH, f"Must have exactly {expected} items", value, expected)
    return None


def contains(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    if is_empty(value) or not isinstance(value, str): return None
    substring = str(params.get("substring", ""))
    if substring not in value:
        return _fail(params, context, ErrorCode.INVALID_CONTAINS, f'Must contain "{substring}"', value, substring)
    return None


def starts_with(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    if is_empty(value) or not isinstance(value, str): return None
    prefix = str(params.get("prefix", ""))
    if not value.startswith(prefix):
        return _fail(params, context, ErrorCode.INVALID_STARTS_WITH, f'Must start with "{prefix}"', value, prefix)
    return None


def ends_with(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    if is_empty(value) or not isinstance(value, str): return None
    suffix = str(params.get("suffix", ""))
    if not value.endswith(suffix):
        return _fail(params, context, ErrorCode.INVALID_ENDS_WITH, f'Must end with "{suffix}"', value, suffix)
    return None


def pattern(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    if is_empty(value) or not isinstance(value, str): return None
    if (matched := _search(params.get("pattern"), value)) is None:
        registry_logger().warning("invalid_pattern", path=context.path, pattern=params.get("pattern"))
        return None
    if not matched:
        return _fail(params, context, ErrorCode.PATTERN_MISMATCH, "Value does not match required pattern",
            value, params.get("pattern"))
    return None


# =============================================================================
# Number Validators
# =============================================================================

def integer(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    if is_empty(value): return None
    if not is_integral(value): return _fail(params, context, ErrorCode.NOT_INTEGER, "Value must be an integer", value)
    return None


def positive(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    if is_number(value) and value <= 0:
        return _fail(params, context, ErrorCode.NOT_POSITIVE, "Value must be positive", value)
    return None


def negative(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    if is_number(value) and value >= 0:
        return _fail(params, context, ErrorCode.NOT_NEGATIVE, "Value must be negative", value)
    return None


def _range_rule(low: float, high: float, code: ErrorCode, default: str, *, integral: bool = False) -> ValidatorFn:
    def validate(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
        if not is_number(value): return None
        if (integral and not is_integral(value)) or not (low <= value <= high):
            return _fail(params, context, code, default, value, [low, high])
        return None
    return validate


port = _range_rule(0, 65535, ErrorCode.INVALID_PORT, "Must be a valid port number (0-65535)", integral=True)
latitude = _range_rule(-90, 90, ErrorCode.INVALID_LATITUDE, "Latitude must be between -90 and 90")
longitude = _range_rule(-180, 180, ErrorCode.INVALID_LONGITUDE, "Longitude must be between -180 and 180")
percentage = _range_rule(0, 100, ErrorCode.INVALID_PERCENTAGE, "Percentage must be between 0 and 100")


def number_between(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    if not is_number(value): return None
    low, high = params.get("min"), params.get("max")
    if (low is not None and value < low) or (high is not None and value > high):
        return _fail(params, context, ErrorCode.INVALID_BETWEEN, f"Must be between {low} and {high}", value, [low, high])
    return None


def divisible_by(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    divisor = params.get("divisor")
    if not is_number(value) or not is_number(divisor) or divisor == 0: return None
    if value % divisor != 0:
        return _fail(params, context, ErrorCode.INVALID_DIVISIBLE_BY, f"Must be divisible by {divisor}", value, divisor)
    return None


def multiple_of(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    """Like divisible_by but tolerant of binary float error (0.3 is a multiple of 0.1)."""
    multiple = params.get("multiple")
    if not is_number(value) or not is_number(multiple) or multiple == 0: return None
    quotient = float(value) / float(multiple)
    if not math.isclose(quotient, round(quotient), rel_tol=1e-9, abs_tol=1e-9):
        return _fail(params, context, ErrorCode.INVALID_MULTIPLE_OF, f"Must be a multiple of {multiple}", value, multiple)
    return None


def even(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    if is_number(value) and value % 2 != 0:
        return _fail(params, context, ErrorCode.INVALID_EVEN, "Must be an even number", value)
    return None


def odd(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    if is_number(value) and value % 2 != 1:
        return _fail(params, context, ErrorCode.INVALID_ODD, "Must be an odd number", value)
    return None


def safe(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    if not is_number(value): return None
    if not is_integral(value) or abs(value) > MAX_SAFE_INTEGER:
        return _fail(params, context, ErrorCode.INVALID_SAFE_INTEGER, "Must be a safe integer", value)
    return None


def finite(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    if not is_number(value): return None
    if not math.isfinite(value):
        return _fail(params, context, ErrorCode.INVALID_FINITE, "Must be a finite number", value)
    return None


# =============================================================================
# Boolean Validators
# =============================================================================

def is_true(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    if is_empty(value) or value is True: return None
    return _fail(params, context, ErrorCode.INVALID_TRUE, "Must be true", value)


def is_false(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    if is_empty(value) or value is False: return None
    return _fail(params, context, ErrorCode.INVALID_FALSE, "Must be false", value)


# =============================================================================
# Date Validators
# =============================================================================

def after(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    if (moment := parse_date(value)) is None or (bound := parse_date(params.get("date"))) is None: return None
    if moment <= bound:
        return _fail(params, context, ErrorCode.INVALID_AFTER, f"Date must be after {params.get('date')}", value, params.get("date"))
    return None


def before(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    if (moment := parse_date(value)) is None or (bound := parse_date(params.get("date"))) is None: return None
    if moment >= bound:
        return _fail(params, context, ErrorCode.INVALID_BEFORE, f"Date must be before {params.get('date')}", value, params.get("date"))
    return None


def past(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    if (moment := parse_date(value)) is None: return None
    if moment >= datetime.now(): return _fail(params, context, ErrorCode.INVALID_PAST, "Date must be in the past", value)
    return None


def future(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    if (moment := parse_date(value)) is None: return None
    if moment <= datetime.now(): return _fail(params, context, ErrorCode.INVALID_FUTURE, "Date must be in the future", value)
    return None


def _calendar_rule(predicate: Callable[[date, date], bool], code: ErrorCode, default: str) -> ValidatorFn:
    """Rule comparing the value's calendar day with today's."""
    def validate(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
        if (moment := parse_date(value)) is None: return None
        if not predicate(moment.date(), date.today()): return _fail(params, context, code, default, value)
        return None
    return validate


def _start_of_week(day: date) -> date:
    """Weeks start on Sunday."""
    return day - timedelta(days=(day.weekday() + 1) % 7)


today = _calendar_rule(lambda d, now: d == now, ErrorCode.INVALID_TODAY, "Date must be today")
yesterday = _calendar_rule(lambda d, now: d == now - timedelta(days=1), ErrorCode.INVALID_YESTERDAY, "Date must be yesterday")
tomorrow = _calendar_rule(lambda d, now: d == now + timedelta(days=1), ErrorCode.INVALID_TOMORROW, "Date must be tomorrow")
this_week = _calendar_rule(lambda d, now: _start_of_week(d) == _start_of_week(now),
    ErrorCode.INVALID_THIS_WEEK, "Date must be within this week")
this_month = _calendar_rule(lambda d, now: (d.year, d.month) == (now.year, now.month),
    ErrorCode.INVALID_THIS_MONTH, "Date must be within this month")
this_year = _calendar_rule(lambda d, now: d.year == now.year, ErrorCode.INVALID_THIS_YEAR, "Date must be within this year")
weekday = _calendar_rule(lambda d, now: d.weekday() < 5, ErrorCode.INVALID_WEEKDAY, "Date must be a weekday")
weekend = _calendar_rule(lambda d, now: d.weekday() >= 5, ErrorCode.INVALID_WEEKEND, "Date must be a weekend")


def age_on(birth: date, on: date) -> int:
    """Whole years between ``birth`` and ``on``."""
    return on.year - birth.year - ((on.month, on.day) < (birth.month, birth.day))


def age(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    if (birth := parse_date(value)) is None: return None
    years = age_on(birth.date(), date.today())
    low, high = params.get("min"), params.get("max")
    if low is not None and years < low:
        return _fail(params, context, ErrorCode.INVALID_AGE_MIN, f"Age must be at least {low}", value, low)
    if high is not None and years > high:
        return _fail(params, context, ErrorCode.INVALID_AGE_MAX, f"Age must be at most {high}", value, high)
    return None


def date_between(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    if (moment := parse_date(value)) is None: return None
    start, end = parse_date(params.get("start")), parse_date(params.get("end"))
    if start is not None and moment < start:
        return _fail(params, context, ErrorCode.INVALID_DATE_BEFORE, f"Date must be after {start.date().isoformat()}",
            value, params.get("start"))
    if end is not None and moment > end:
        return _fail(params, context, ErrorCode.INVALID_DATE_AFTER, f"Date must be before {end.date().isoformat()}",
            value, params.get("end"))
    return None


# =============================================================================
# Array Validators
# =============================================================================

def unique(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    if not isinstance(value, (list, tuple)): return None
    seen: set[Any] = set()
    for item in value:
        if (key := _unique_key(item)) in seen:
            return _fail(params, context, ErrorCode.INVALID_UNIQUE, "Array items must be unique", value)
        seen.add(key)
    return None


def includes(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    if not isinstance(value, (list, tuple)): return None
    if not _contains(value, item := thaw(params.get("item"))):
        return _fail(params, context, ErrorCode.INVALID_INCLUDES, f"Array must include {_describe(item)}", value, item)
    return None


def excludes(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    if not isinstance(value, (list, tuple)): return None
    if _contains(value, item := thaw(params.get("item"))):
        return _fail(params, context, ErrorCode.INVALID_EXCLUDES, f"Array must not include {_describe(item)}", value, item)
    return None


def empty(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    if isinstance(value, (list, tuple)) and value:
        return _fail(params, context, ErrorCode.INVALID_EMPTY, "Array must be empty", value)
    return None


def not_empty(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    if isinstance(value, (list, tuple)) and not value:
        return _fail(params, context, ErrorCode.INVALID_NOT_EMPTY, "Array must not be empty", value)
    return None


def sorted_(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    if not isinstance(value, (list, tuple)): return None
    descending = params.get("order", "asc") == "desc"
    default = f"Array must be sorted in {'descending' if descending else 'ascending'} order"
    try:
        in_order = all((prev >= curr) if descending else (prev <= curr) for prev, curr in zip(value, value[1:]))
    except TypeError:
        in_order = False
    return None if in_order else _fail(params, context, ErrorCode.INVALID_SORTED, default, value)


def compact(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    if isinstance(value, (list, tuple)) and not all(value):
        return _fail(params, context, ErrorCode.INVALID_COMPACT, "Array must not contain falsy values", value)
    return None


# =============================================================================
# Object Validators
# =============================================================================

def keys(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    if not isinstance(value, Mapping) or not (key_pattern := params.get("pattern")): return None
    if _search(key_pattern, "") is None:
        registry_logger().warning("invalid_pattern", path=context.path, pattern=key_pattern)
        return None
    invalid = [str(key) for key in value if not _search(key_pattern, str(key))]
    if invalid:
        return _fail(params, context, ErrorCode.INVALID_KEYS, f"Invalid keys: {', '.join(invalid)}", value, key_pattern)
    return None


def allowed_keys(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    if not isinstance(value, Mapping) or (allowed := params.get("keys")) is None: return None
    if extra := [str(key) for key in value if key not in allowed]:
        return _fail(params, context, ErrorCode.INVALID_PICK, f"Unexpected keys: {', '.join(extra)}", value, list(allowed))
    return None


def forbidden_keys(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    if not isinstance(value, Mapping) or not (forbidden := params.get("keys")): return None
    if found := [str(key) for key in value if key in forbidden]:
        return _fail(params, context, ErrorCode.INVALID_OMIT, f"Forbidden keys found: {', '.join(found)}", value, list(forbidden))
    return None


# =============================================================================
# Cross-field Validators
# =============================================================================

def matches(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    if is_empty(value): return None
    other = params.get("field", "")
    if value != context.lookup(other):
        return _fail(params, context, ErrorCode.FIELD_MISMATCH, f"Must match {other}", value)
    return None


def not_matches(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    if is_empty(value): return None
    other = params.get("field", "")
    if value == context.lookup(other):
        return _fail(params, context, ErrorCode.INVALID_NOT_MATCHES, f"Must not match {other}", value)
    return None


def greater_than(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    other = params.get("field", "")
    if is_number(value) and is_number(other_value := context.lookup(other)) and value <= other_value:
        return _fail(params, context, ErrorCode.INVALID_GREATER_THAN, f"Must be greater than {other}", value, other_value)
    return None


def less_than(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    other = params.get("field", "")
    if is_number(value) and is_number(other_value := context.lookup(other)) and value >= other_value:
        return _fail(params, context, ErrorCode.INVALID_LESS_THAN, f"Must be less than {other}", value, other_value)
    return None


def depends_on(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    if is_empty(value) or not (other := params.get("field")): return None
    if is_empty(context.lookup(other)):
        return _fail(params, context, ErrorCode.INVALID_DEPENDS_ON, f"This field requires {other} to be set", value)
    return None


def when(value: Any, params: Mapping[str, Any], context: ValidatorContext) -> ValidationError | None:
    """Apply the nested ``then`` rule only while another field equals ``is``.

    ``then`` is a mapping ``{"kind", "params", "message", "soft"}``; omitted
    ``message``/``soft`` fall back to this rule's own.
    """
    if is_empty(value) or not (other := params.get("field")) or not isinstance(then := params.get("then"), Mapping):
        return None
    if thaw(context.lookup(other)) != thaw(params.get("is")): return None

    if (registry := context.registry) is None:
        from .registry import default_registry as registry
    if (validator := registry.resolve(then.get("kind", ""))) is None:
        registry.report_unknown(then.get("kind", ""), context.path)
        return None
    nested = {**(then.get("params") or {}),
        "soft": then.get("soft", params.get("soft", False)),
        "message": then.get("message") or params.get("message")}
    return validator(value, nested, context)
