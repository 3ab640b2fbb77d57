"""Tests for the asynchronous validation engine."""

import asyncio

import pytest

from formschema.errors import ErrorCode, ValidationFailedError
from formschema.resilience import DebounceRegistry
from formschema.validation import (
    AsyncValidator,
    assert_valid_async,
    field,
    is_valid_async,
    schema,
    validate,
    validate_async,
)


def codes(errors):
    return [(e.field, e.code) for e in errors]


class TestAsyncRules:
    """refine_async outcomes."""

    @pytest.mark.asyncio
    async def test_timeout_is_one_hard_error(self):
        async def slow(value):
            await asyncio.sleep(0.1)
            return True

        s = schema({"username": field.string().refine_async(slow, timeout_ms=50).required()})
        result = await validate_async(s, {"username": "ada"})
        assert not result.is_valid
        assert codes(result.hard_errors) == [("username", ErrorCode.ASYNC_VALIDATION_ERROR)]
        assert result.hard_errors[0].message == "Async validation timed out after 50ms"

    @pytest.mark.asyncio
    async def test_rejection_uses_returned_message(self):
        async def taken(value):
            return {"valid": False, "message": f"{value} is taken"}

        s = schema({"username": field.string().refine_async(taken)})
        result = await validate_async(s, {"username": "ada"})
        assert codes(result.hard_errors) == [("username", ErrorCode.ASYNC_VALIDATION_FAILED)]
        assert result.hard_errors[0].message == "ada is taken"

    @pytest.mark.asyncio
    async def test_false_uses_rule_message_then_default(self):
        async def no(value):
            return False

        with_message = schema({"u": field.string().refine_async(no, message="Unavailable")})
        without = schema({"u": field.string().refine_async(no)})
        assert (await validate_async(with_message, {"u": "x"})).hard_errors[0].message == "Unavailable"
        assert (await validate_async(without, {"u": "x"})).hard_errors[0].message == "Async validation failed"

    @pytest.mark.asyncio
    async def test_exception_becomes_error(self):
        async def broken(value):
            raise ConnectionError("service down")

        s = schema({"u": field.string().refine_async(broken)})
        result = await validate_async(s, {"u": "x"})
        assert codes(result.hard_errors) == [("u", ErrorCode.ASYNC_VALIDATION_ERROR)]
        assert result.hard_errors[0].message == "service down"

    @pytest.mark.asyncio
    async def test_soft_async_rule(self):
        async def unusual(value):
            return False

        s = schema({"u": field.string().refine_async(unusual, message="Unusual name", soft=True)})
        result = await validate_async(s, {"u": "x"})
        assert result.is_valid
        assert codes(result.soft_errors) == [("u", ErrorCode.ASYNC_VALIDATION_FAILED)]

    @pytest.mark.asyncio
    async def test_sync_callable_accepted(self):
        s = schema({"u": field.string().refine_async(lambda value: value != "root")})
        assert await is_valid_async(s, {"u": "ada"})
        assert not await is_valid_async(s, {"u": "root"})

    @pytest.mark.asyncio
    async def test_async_rule_skipped_for_empty_optional(self):
        calls = []

        async def check(value):
            calls.append(value)
            return True

        s = schema({"u": field.string().refine_async(check)})
        assert (await validate_async(s, {"u": ""})).is_valid
        assert calls == []


class TestParityWithSyncEngine:
    """Without async rules both engines agree."""

    @pytest.mark.asyncio
    async def test_same_result_as_sync(self, order_schema, signup_schema):
        samples = [
            (order_schema, {"customer": {"email": "x"}, "items": [{"qty": 0}, {"sku": 1}]}),
            (signup_schema, {"email": "bad", "age": 130}),
            (signup_schema, "not an object"),
        ]
        for s, data in samples:
            assert await validate_async(s, data) == validate(s, data)

    @pytest.mark.asyncio
    async def test_sync_rule_exception_is_hard_async_error(self, registry):
        def explode(value, params, context):
            raise RuntimeError("bad validator")

        registry.register("explode", explode)
        s = schema({"x": field.string().rule("explode", soft=True)})
        result = await validate_async(s, {"x": "a"}, registry=registry)
        assert codes(result.hard_errors) == [("x", ErrorCode.ASYNC_VALIDATION_ERROR)]
        assert result.hard_errors[0].message == "bad validator"


class TestConcurrency:
    """Fan-out and deterministic ordering."""

    @pytest.mark.asyncio
    async def test_siblings_run_concurrently(self):
        async def slow(value):
            await asyncio.sleep(0.05)
            return False

        s = schema({name: field.string().refine_async(slow, message=name) for name in ("a", "b", "c", "d")})
        loop = asyncio.get_running_loop()
        started = loop.time()
        result = await validate_async(s, {"a": "1", "b": "2", "c": "3", "d": "4"})
        assert loop.time() - started < 0.15
        assert [e.message for e in result.hard_errors] == ["a", "b", "c", "d"]

    @pytest.mark.asyncio
    async def test_order_follows_declaration_not_completion(self):
        def delayed(seconds):
            async def check(value):
                await asyncio.sleep(seconds)
                return False
            return check

        s = schema({
            "first": field.string().refine_async(delayed(0.03), message="first").min(5),
            "items": field.array(field.string().refine_async(delayed(0.0), message="item")),
        })
        result = await validate_async(s, {"first": "abc", "items": ["x", "y"]})
        assert codes(result.hard_errors) == [
            ("first", ErrorCode.ASYNC_VALIDATION_FAILED),
            ("first", ErrorCode.MIN_LENGTH),
            ("items[0]", ErrorCode.ASYNC_VALIDATION_FAILED),
            ("items[1]", ErrorCode.ASYNC_VALIDATION_FAILED),
        ]

    @pytest.mark.asyncio
    async def test_parallel_calls_are_independent(self, signup_schema):
        data = [{"email": f"user{i}@x.io" if i % 2 else "bad", "age": i} for i in range(100)]
        results = await asyncio.gather(*(validate_async(signup_schema, d) for d in data))
        assert results == [validate(signup_schema, d) for d in data]


class TestOptions:
    """abort_early and error_map."""

    @pytest.mark.asyncio
    async def test_abort_early(self):
        async def no(value):
            await asyncio.sleep(0.02)
            return False

        s = schema({"a": field.string().refine_async(no), "b": field.number().min(10)})
        result = await validate_async(s, {"a": "x", "b": 1}, {"abort_early": True})
        assert codes(result.hard_errors) == [("a", ErrorCode.ASYNC_VALIDATION_FAILED)]

    @pytest.mark.asyncio
    async def test_abort_early_cancels_trailing_work(self):
        """Rules ordered after a hard error are cancelled, not awaited."""
        finished = []

        async def slow(value):
            await asyncio.sleep(0.5)
            finished.append(value)
            return True

        s = schema({
            "a": field.number().min(10),
            "b": field.string().refine_async(slow, timeout_ms=2000),
            "c": field.array(field.string().refine_async(slow, timeout_ms=2000)),
        })
        loop = asyncio.get_running_loop()
        started = loop.time()
        result = await validate_async(s, {"a": 1, "b": "x", "c": ["y"]}, {"abort_early": True})
        assert loop.time() - started < 0.25
        assert codes(result.hard_errors) == [("a", ErrorCode.MIN_VALUE)]
        await asyncio.sleep(0)
        assert finished == []

    @pytest.mark.asyncio
    async def test_abort_early_keeps_soft_errors_before_the_hard_one(self):
        async def slow_no(value):
            await asyncio.sleep(0.03)
            return False

        s = schema({
            "age": field.number().max_soft(120, "Please double-check the age"),
            "user": field.string().refine_async(slow_no, message="Taken"),
            "b": field.number().min(10),
        })
        result = await validate_async(s, {"age": 150, "user": "ada", "b": 1}, {"abort_early": True})
        assert [e.message for e in result.soft_errors] == ["Please double-check the age"]
        assert [e.message for e in result.hard_errors] == ["Taken"]

    @pytest.mark.asyncio
    async def test_abort_early_decides_on_mapped_severity(self):
        """An error the map softens does not stop the walk."""
        async def no(value):
            await asyncio.sleep(0.01)
            return False

        def soften(error):
            return {"severity": "soft"} if error.code == ErrorCode.MIN_VALUE else None

        s = schema({"a": field.number().min(10), "b": field.string().refine_async(no)})
        result = await validate_async(s, {"a": 1, "b": "x"}, {"abort_early": True, "error_map": soften})
        assert codes(result.soft_errors) == [("a", ErrorCode.MIN_VALUE)]
        assert codes(result.hard_errors) == [("b", ErrorCode.ASYNC_VALIDATION_FAILED)]

    @pytest.mark.asyncio
    async def test_error_map(self):
        s = schema({"b": field.number().min(10)})
        result = await validate_async(s, {"b": 1}, {"error_map": lambda e: "mapped"})
        assert result.hard_errors[0].message == "mapped"

    @pytest.mark.asyncio
    async def test_error_map_applies_to_root_type_error(self):
        result = await validate_async(schema({}), ["not", "an", "object"], {"error_map": lambda e: "mapped"})
        assert [e.message for e in result.hard_errors] == ["mapped"]


class TestDebounce:
    """Debounced async rules."""

    @pytest.mark.asyncio
    async def test_superseded_call_reports_nothing(self):
        seen = []

        async def taken(value):
            seen.append(value)
            return False

        validator = AsyncValidator(debouncer=DebounceRegistry())
        s = schema({"username": field.string().refine_async(taken, debounce_ms=30)})
        first, second = await asyncio.gather(
            validator.validate(s, {"username": "a"}),
            validator.validate(s, {"username": "ab"}),
        )
        assert first.is_valid and first.errors == ()
        assert codes(second.hard_errors) == [("username", ErrorCode.ASYNC_VALIDATION_FAILED)]
        assert seen == ["ab"]
        assert len(validator.debouncer) == 0

    @pytest.mark.asyncio
    async def test_different_fields_do_not_interfere(self):
        async def ok(value):
            return True

        validator = AsyncValidator(debouncer=DebounceRegistry())
        s = schema({
            "a": field.string().refine_async(ok, debounce_ms=10),
            "b": field.string().refine_async(ok, debounce_ms=10),
        })
        assert (await validator.validate(s, {"a": "x", "b": "y"})).is_valid

    @pytest.mark.asyncio
    async def test_schemas_sharing_a_path_do_not_supersede_each_other(self):
        """Two forms with a debounced check on the same field path both report."""
        async def available(value):
            return True

        async def taken(value):
            return {"valid": False, "message": "Username taken"}

        signup = schema({"username": field.string().refine_async(available, debounce_ms=20)})
        rename = schema({"username": field.string().refine_async(taken, debounce_ms=20)})
        accepted, rejected = await asyncio.gather(
            validate_async(signup, {"username": "ada"}),
            validate_async(rename, {"username": "ada"}),
        )
        assert accepted.is_valid
        assert [e.message for e in rejected.hard_errors] == ["Username taken"]


class TestAssertValidAsync:
    """assert_valid_async."""

    @pytest.mark.asyncio
    async def test_raises_with_hard_errors(self):
        async def no(value):
            return False

        s = schema({"u": field.string().refine_async(no).required()})
        with pytest.raises(ValidationFailedError) as exc_info:
            await assert_valid_async(s, {"u": "x"})
        assert codes(exc_info.value.hard_errors) == [("u", ErrorCode.ASYNC_VALIDATION_FAILED)]

    @pytest.mark.asyncio
    async def test_returns_data(self):
        data = {"u": "x"}
        assert await assert_valid_async(schema({"u": field.string()}), data) is data
