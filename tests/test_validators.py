"""Tests for the built-in validators, called directly."""

from datetime import date, datetime, timedelta

import pytest

from formschema.errors import ErrorCode
from formschema.validation import validators as v
from formschema.validation.model import MISSING, Severity, ValidationRule


def params(**kwargs):
    return {"soft": False, "message": None, **kwargs}


class TestTypeChecks:
    """Test per-kind type checks."""

    def test_absent_and_null_pass(self, ctx):
        for check in (v.check_string, v.check_number, v.check_boolean, v.check_date, v.check_array, v.check_object):
            assert check(MISSING, ctx()) is None
            assert check(None, ctx()) is None

    def test_string(self, ctx):
        error = v.check_string(42, ctx("name"))
        assert error.code == ErrorCode.INVALID_TYPE
        assert error.message == "Expected string, got number"
        assert error.severity is Severity.HARD

    def test_number_rejects_bool_and_nan(self, ctx):
        assert v.check_number(True, ctx()).code == ErrorCode.INVALID_TYPE
        assert v.check_number(float("nan"), ctx()).code == ErrorCode.INVALID_NUMBER
        assert v.check_number(3.5, ctx()) is None

    def test_date_accepts_objects_and_iso_strings(self, ctx):
        assert v.check_date(date(2024, 1, 1), ctx()) is None
        assert v.check_date("2024-01-01T10:00:00Z", ctx()) is None
        assert v.check_date("not a date", ctx()).code == ErrorCode.INVALID_DATE
        assert v.check_date(123, ctx()).code == ErrorCode.INVALID_TYPE

    def test_array_and_object(self, ctx):
        assert v.check_array((1, 2), ctx()) is None
        assert v.check_array({"a": 1}, ctx()).message == "Expected array, got object"
        assert v.check_object([1], ctx()).message == "Expected object, got array"


class TestGeneralValidators:
    """Test min/max/enum/custom/warning."""

    def test_min_dispatches_on_value_type(self, ctx):
        assert v.min_(5, params(value=10), ctx()).code == ErrorCode.MIN_VALUE
        assert v.min_("ab", params(value=3), ctx()).code == ErrorCode.MIN_LENGTH
        assert v.min_([1], params(value=2), ctx()).code == ErrorCode.MIN_ITEMS
        assert v.min_(10, params(value=10), ctx()) is None

    def test_max_messages(self, ctx):
        assert v.max_(11, params(value=10), ctx()).message == "Value must be at most 10"
        assert v.max_("abcd", params(value=3), ctx()).message == "Must be at most 3 characters"

    def test_message_and_soft_override(self, ctx):
        error = v.min_(1, params(value=2, message="Too low", soft=True), ctx())
        assert error.message == "Too low"
        assert error.severity is Severity.SOFT

    def test_empty_values_skip(self, ctx):
        assert v.min_("", params(value=3), ctx()) is None
        assert v.email(None, params(), ctx()) is None

    def test_enum_distinguishes_bool_from_int(self, ctx):
        assert v.enum(1, params(values=[True, False]), ctx()).code == ErrorCode.INVALID_ENUM
        assert v.enum("b", params(values=["a", "b"]), ctx()) is None

    def test_custom_bool_and_mapping_outcomes(self, ctx):
        assert v.custom("x", params(validate=lambda value, c: True), ctx()) is None
        failed = v.custom("x", params(validate=lambda value, c: {"valid": False, "message": "Nope"}), ctx())
        assert failed.code == ErrorCode.CUSTOM_VALIDATION and failed.message == "Nope"

    def test_custom_that_raises_is_reported(self, ctx):
        def boom(value, context):
            raise ValueError("backend unavailable")

        error = v.custom("x", params(validate=boom), ctx())
        assert error.code == ErrorCode.CUSTOM_VALIDATION
        assert error.message == "backend unavailable"

    def test_warning_reports_message(self, ctx):
        error = v.warning("x", params(message="Looks unusual", soft=True), ctx())
        assert error.code == ErrorCode.WARNING and error.is_soft


class TestStringValidators:
    """Test string format validators."""

    @pytest.mark.parametrize("value,ok", [("a@b.co", True), ("a@b", False), ("a b@c.io", False)])
    def test_email(self, ctx, value, ok):
        assert (v.email(value, params(), ctx()) is None) is ok

    @pytest.mark.parametrize("value,ok", [
        ("https://example.com/path", True),
        ("mailto:someone@example.com", True),
        ("http://", False),
        ("example.com", False),
    ])
    def test_url(self, ctx, value, ok):
        assert (v.url(value, params(), ctx()) is None) is ok

    def test_ip_addresses(self, ctx):
        assert v.ip_address("192.168.0.1", params(), ctx()) is None
        assert v.ip_address("256.1.1.1", params(), ctx()).code == ErrorCode.INVALID_IP
        assert v.ipv6("::1", params(), ctx()) is None
        assert v.ipv6("12345::", params(), ctx()).code == ErrorCode.INVALID_IPV6

    def test_character_classes(self, ctx):
        assert v.alpha("abc", params(), ctx()) is None
        assert v.alphanumeric("ab-1", params(), ctx()).code == ErrorCode.INVALID_ALPHANUMERIC
        assert v.numeric("0123", params(), ctx()) is None
        assert v.slug("my-post-1", params(), ctx()) is None
        assert v.slug("My Post", params(), ctx()).code == ErrorCode.INVALID_SLUG
        assert v.hex_("0xFF", params(), ctx()) is None
        assert v.base64("aGVsbG8=", params(), ctx()) is None
        assert v.lowercase("Abc", params(), ctx()).code == ErrorCode.INVALID_LOWERCASE
        assert v.uppercase("ABC", params(), ctx()) is None

    @pytest.mark.parametrize("check", [v.email, v.url, v.json_, v.slug])
    def test_non_string_keeps_caller_message(self, ctx, check):
        error = check(42, params(message="Enter a valid value", soft=True), ctx())
        assert error.message == "Enter a valid value"
        assert error.severity is Severity.SOFT
        assert check(42, params(), ctx()).message.endswith("must be a string")

    def test_json_and_length(self, ctx):
        assert v.json_('{"a": 1}', params(), ctx()) is None
        assert v.json_("{a: 1}", params(), ctx()).code == ErrorCode.INVALID_JSON
        assert v.length("abcde", params(length=5), ctx()) is None
        assert v.length([1, 2], params(length=3), ctx()).message == "Must have exactly 3 items"

    def test_substrings(self, ctx):
        assert v.contains("hello world", params(substring="lo w"), ctx()) is None
        assert v.starts_with("hello", params(prefix="he"), ctx()) is None
        assert v.ends_with("hello", params(suffix="x"), ctx()).message == 'Must end with "x"'

    def test_pattern_searches(self, ctx):
        assert v.pattern("abc123", params(pattern=r"\d+"), ctx()) is None
        assert v.pattern("abc", params(pattern=r"^\d+$"), ctx()).code == ErrorCode.PATTERN_MISMATCH

    def test_invalid_pattern_is_skipped(self, ctx):
        assert v.pattern("abc", params(pattern="("), ctx()) is None


class TestNumberValidators:
    """Test number validators."""

    def test_sign_and_integrality(self, ctx):
        assert v.integer(3.0, params(), ctx()) is None
        assert v.integer(3.5, params(), ctx()).code == ErrorCode.NOT_INTEGER
        assert v.positive(0, params(), ctx()).code == ErrorCode.NOT_POSITIVE
        assert v.negative(-1, params(), ctx()) is None

    def test_ranges(self, ctx):
        assert v.port(8080, params(), ctx()) is None
        assert v.port(70000, params(), ctx()).code == ErrorCode.INVALID_PORT
        assert v.port(80.5, params(), ctx()).code == ErrorCode.INVALID_PORT
        assert v.latitude(-91, params(), ctx()).code == ErrorCode.INVALID_LATITUDE
        assert v.longitude(179.9, params(), ctx()) is None
        assert v.percentage(101, params(), ctx()).code == ErrorCode.INVALID_PERCENTAGE
        assert v.number_between(5, params(min=1, max=4), ctx()).message == "Must be between 1 and 4"

    def test_divisibility(self, ctx):
        assert v.divisible_by(9, params(divisor=3), ctx()) is None
        assert v.divisible_by(10, params(divisor=3), ctx()).code == ErrorCode.INVALID_DIVISIBLE_BY
        assert v.multiple_of(0.3, params(multiple=0.1), ctx()) is None
        assert v.multiple_of(0.35, params(multiple=0.1), ctx()).code == ErrorCode.INVALID_MULTIPLE_OF

    def test_parity_and_limits(self, ctx):
        assert v.even(3, params(), ctx()).code == ErrorCode.INVALID_EVEN
        assert v.odd(-3, params(), ctx()) is None
        assert v.safe(2**53, params(), ctx()).code == ErrorCode.INVALID_SAFE_INTEGER
        assert v.finite(float("inf"), params(), ctx()).code == ErrorCode.INVALID_FINITE


class TestDateValidators:
    """Test date validators relative to today."""

    def test_after_and_before(self, ctx):
        assert v.after("2024-06-01", params(date="2024-01-01"), ctx()) is None
        assert v.after("2023-06-01", params(date="2024-01-01"), ctx()).code == ErrorCode.INVALID_AFTER
        assert v.before(date(2025, 1, 1), params(date="2024-01-01"), ctx()).code == ErrorCode.INVALID_BEFORE

    def test_past_and_future(self, ctx):
        now = datetime.now()
        assert v.past(now - timedelta(days=1), params(), ctx()) is None
        assert v.future(now - timedelta(days=1), params(), ctx()).code == ErrorCode.INVALID_FUTURE

    def test_calendar_days(self, ctx):
        today = date.today()
        assert v.today(today, params(), ctx()) is None
        assert v.yesterday(today - timedelta(days=1), params(), ctx()) is None
        assert v.tomorrow(today, params(), ctx()).code == ErrorCode.INVALID_TOMORROW
        assert v.this_year(date(today.year - 1, 1, 1), params(), ctx()).code == ErrorCode.INVALID_THIS_YEAR

    def test_weekday_and_weekend(self, ctx):
        saturday, monday = date(2024, 6, 1), date(2024, 6, 3)
        assert v.weekend(saturday, params(), ctx()) is None
        assert v.weekday(saturday, params(), ctx()).code == ErrorCode.INVALID_WEEKDAY
        assert v.weekday(monday, params(), ctx()) is None

    def test_age_on(self):
        assert v.age_on(date(2000, 6, 15), date(2024, 6, 14)) == 23
        assert v.age_on(date(2000, 6, 15), date(2024, 6, 15)) == 24

    def test_age_bounds(self, ctx):
        young = date(date.today().year - 10, 1, 1)
        assert v.age(young, params(min=18), ctx()).code == ErrorCode.INVALID_AGE_MIN
        assert v.age(young, params(max=5), ctx()).code == ErrorCode.INVALID_AGE_MAX
        assert v.age(young, params(min=5, max=20), ctx()) is None

    def test_date_between(self, ctx):
        window = params(start="2024-01-01", end="2024-12-31")
        assert v.date_between("2024-05-05", window, ctx()) is None
        assert v.date_between("2023-05-05", window, ctx()).code == ErrorCode.INVALID_DATE_BEFORE
        assert v.date_between("2025-05-05", window, ctx()).code == ErrorCode.INVALID_DATE_AFTER


class TestArrayAndObjectValidators:
    """Test array and object validators."""

    def test_unique_handles_unhashable_items(self, ctx):
        assert v.unique([1, 2, 3], params(), ctx()) is None
        assert v.unique([{"a": 1}, {"a": 1}], params(), ctx()).code == ErrorCode.INVALID_UNIQUE
        assert v.unique([1, True], params(), ctx()) is None

    def test_membership(self, ctx):
        assert v.includes(["a", "b"], params(item="b"), ctx()) is None
        assert v.excludes(["a", "b"], params(item="b"), ctx()).message == 'Array must not include "b"'

    def test_membership_of_container_items(self, ctx):
        rule = ValidationRule("includes", {"item": [1, 2]})
        assert v.includes([[1, 2], [3]], rule.call_params(), ctx()) is None
        assert v.excludes([[1, 2]], rule.call_params(), ctx()).code == ErrorCode.INVALID_EXCLUDES

    def test_emptiness_and_compact(self, ctx):
        assert v.empty([1], params(), ctx()).code == ErrorCode.INVALID_EMPTY
        assert v.not_empty([], params(), ctx()).code == ErrorCode.INVALID_NOT_EMPTY
        assert v.compact([1, 0], params(), ctx()).code == ErrorCode.INVALID_COMPACT

    def test_sorted(self, ctx):
        assert v.sorted_([1, 2, 2, 3], params(order="asc"), ctx()) is None
        assert v.sorted_([3, 1], params(order="asc"), ctx()).code == ErrorCode.INVALID_SORTED
        assert v.sorted_([3, 1], params(order="desc"), ctx()) is None
        assert v.sorted_([1, "a"], params(order="asc"), ctx()).code == ErrorCode.INVALID_SORTED

    def test_object_keys(self, ctx):
        assert v.keys({"a_1": 1, "B": 2}, params(pattern=r"^[a-z_0-9]+$"), ctx()).message == "Invalid keys: B"
        assert v.allowed_keys({"a": 1, "z": 2}, params(keys=["a"]), ctx()).code == ErrorCode.INVALID_PICK
        assert v.forbidden_keys({"password": "x"}, params(keys=["password"]), ctx()).code == ErrorCode.INVALID_OMIT


class TestCrossFieldValidators:
    """Test validators that read sibling values from the root."""

    def test_matches(self, ctx):
        root = {"password": "secret", "confirm": "secrex"}
        assert v.matches("secrex", params(field="password"), ctx("confirm", root)).code == ErrorCode.FIELD_MISMATCH
        assert v.not_matches("other", params(field="password"), ctx("confirm", root)) is None

    def test_ordering(self, ctx):
        root = {"start": 5, "end": 3}
        assert v.greater_than(3, params(field="start"), ctx("end", root)).code == ErrorCode.INVALID_GREATER_THAN
        assert v.less_than(5, params(field="end"), ctx("start", root)).code == ErrorCode.INVALID_LESS_THAN

    def test_depends_on(self, ctx):
        assert v.depends_on("x", params(field="country"), ctx("state", {})).code == ErrorCode.INVALID_DEPENDS_ON
        assert v.depends_on("x", params(field="country"), ctx("state", {"country": "US"})) is None

    def test_when_applies_nested_rule(self, ctx):
        rule = params(field="country", **{"is": "US", "then": {"kind": "pattern", "params": {"pattern": r"^\d{5}$"}}})
        assert v.when("ABC", rule, ctx("zip", {"country": "US"})).code == ErrorCode.PATTERN_MISMATCH
        assert v.when("ABC", rule, ctx("zip", {"country": "FR"})) is None

    def test_when_with_unknown_rule_is_skipped(self, ctx):
        rule = params(field="country", **{"is": "US", "then": {"kind": "noSuchRule"}})
        assert v.when("ABC", rule, ctx("zip", {"country": "US"})) is None
