"""Tests for opt-in coercion helpers."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from formschema.errors import ErrorCode
from formschema.validation import field, schema, validate
from formschema.validation.coercion import (
    NAMED_TRANSFORMS,
    AnyToString,
    ISO8601ToDateTime,
    StringToBool,
    StringToNumber,
    lowercase,
    to_boolean,
    to_date,
    to_number,
    to_string,
    transform_name,
    trim,
    uppercase,
)


class TestCoercionRules:
    """Result-returning rule classes."""

    @pytest.mark.parametrize("text,expected", [("42", 42), (" -7 ", -7), ("3.5", 3.5), ("1e3", 1000.0)])
    def test_string_to_number(self, text, expected):
        outcome = StringToNumber().coerce(text)
        assert outcome.is_ok()
        assert outcome.unwrap() == expected
        assert type(outcome.unwrap()) is type(expected)

    @pytest.mark.parametrize("value", ["", "   ", "forty", 42])
    def test_string_to_number_rejects(self, value):
        assert StringToNumber().coerce(value).is_err()

    def test_string_to_bool(self):
        rule = StringToBool()
        assert rule.coerce("Yes").unwrap() is True
        assert rule.coerce(" off ").unwrap() is False
        assert rule.coerce("maybe").is_err()
        assert rule.coerce(1).is_err()

    def test_iso_datetime(self):
        rule = ISO8601ToDateTime()
        assert rule.coerce("2024-03-01T10:00:00Z").unwrap() == datetime(2024, 3, 1, 10, tzinfo=timezone.utc)
        assert rule.coerce(date(2024, 3, 1)).unwrap() == datetime(2024, 3, 1)
        assert rule.coerce("yesterday").is_err()
        assert rule.coerce(True).is_err()

    def test_any_to_string(self):
        rule = AnyToString()
        assert rule.coerce(True).unwrap() == "true"
        assert rule.coerce(Decimal("1.50")).unwrap() == "1.50"
        assert rule.coerce(date(2024, 1, 2)).unwrap() == "2024-01-02"
        assert rule.coerce([1]).is_err()

    def test_call_returns_input_on_failure(self):
        assert StringToNumber()("abc") == "abc"
        assert StringToNumber()("12") == 12


class TestHelpers:
    """Plain callables used as transforms."""

    def test_to_number_leaves_non_strings(self):
        assert to_number(5) == 5
        assert to_number(None) is None

    def test_to_boolean(self):
        assert to_boolean("true") is True
        assert to_boolean(0) is False
        assert to_boolean(2) == 2
        assert to_boolean("nah") == "nah"

    def test_to_date(self):
        d = date(2024, 1, 1)
        assert to_date(d) is d
        assert to_date(None) is None
        assert to_date("2024-01-01") == datetime(2024, 1, 1)
        assert to_date("soon") == "soon"

    def test_string_helpers(self):
        assert to_string(12) == "12"
        assert to_string(None) is None
        assert trim("  a ") == "a"
        assert lowercase("AbC") == "abc"
        assert uppercase("AbC") == "ABC"
        assert trim(3) == 3

    def test_named_transforms(self):
        assert NAMED_TRANSFORMS["trim"] is trim
        assert transform_name(to_number) == "toNumber"
        assert transform_name(lambda v: v) is None


class TestCoercionInSchemas:
    """Coercion only happens when a field opts in."""

    def test_no_implicit_coercion(self):
        result = validate(schema({"n": field.number()}), {"n": "5"})
        assert result.hard_errors[0].code == ErrorCode.INVALID_TYPE

    def test_preprocess_then_transforms(self):
        s = schema({"flag": field.boolean().preprocess(trim).transform(to_boolean).is_true()})
        assert validate(s, {"flag": " yes "}).is_valid
        assert validate(s, {"flag": "no"}).hard_errors[0].code == ErrorCode.INVALID_TRUE

    def test_builder_shortcuts(self):
        s = schema({"tag": field.string().trim().to_lower().enum(["red", "blue"])})
        assert validate(s, {"tag": "  RED "}).is_valid
