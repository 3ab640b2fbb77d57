"""Asynchronous Validation Engine

Same walk as the synchronous engine, plus ``refineAsync`` rules:

- Every rule of a field, sibling fields, nested objects and array items run
  concurrently with ``asyncio.gather``; errors are still reported in
  declaration and structural order.
- Each async rule is raced against its timeout (``TimeoutPolicy``); expiry and
  exceptions become ASYNC_VALIDATION_ERROR, a rejected value becomes
  ASYNC_VALIDATION_FAILED. Nothing raised by a rule escapes the engine.
- Rules with a debounce window go through a ``DebounceRegistry`` keyed by
  field path and rule identity. A superseded call contributes no error.
- Errors pass through the error map as they are produced. Under abort-early,
  work ordered after a hard error is cancelled rather than awaited.
"""
from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Mapping
from dataclasses import replace as dc_replace
from typing import Any

from formschema.config import get_settings
from formschema.errors import Err, Ok, ValidationCancelledError, ValidationFailedError, try_result, try_result_async
from formschema.errors.builders import async_error, unknown_key_error
from formschema.logging import async_logger
from formschema.resilience import DebounceRegistry, TimeoutPolicy

from .engine import (
    SchemaLike, checked_rules, field_value, prepare_field, resolve_schema, root_context,
    root_type_error, run_rule, unknown_keys,
)
from .errors import apply_error_map, create_accumulator
from .model import (
    FieldDefinition, FieldKind, SchemaDefinition, UnknownKeyPolicy, ValidationError,
    ValidationOptions, ValidationResult, ValidationRule, ValidatorContext,
)
from .registry import ValidatorRegistry, default_registry

_FAILED_MESSAGE = "Async validation failed"
_ERROR_MESSAGE = "Async validation error"


async def _invoke(check: Any, value: Any) -> Any:
    outcome = check(value)
    if inspect.isawaitable(outcome):
        outcome = await outcome
    return outcome


def _rejection_message(outcome: Any, rule: ValidationRule) -> str | None:
    """None when ``outcome`` accepts the value, otherwise the failure message."""
    if isinstance(outcome, Mapping):
        if outcome.get("valid"): return None
        return outcome.get("message") or rule.message or _FAILED_MESSAGE
    if hasattr(outcome, "valid"):
        if outcome.valid: return None
        return getattr(outcome, "message", None) or rule.message or _FAILED_MESSAGE
    return None if outcome else (rule.message or _FAILED_MESSAGE)


async def _collect(branches: list[Awaitable[list[ValidationError]]], abort_early: bool) -> list[ValidationError]:
    """Run branches concurrently; errors are concatenated in branch order.

    Under ``abort_early``, once a branch reports a hard error every branch
    ordered after it is cancelled: the accumulator would discard its errors.
    Earlier branches still finish, one of them may hold the first hard error.
    """
    if not abort_early:
        return [error for errors in await asyncio.gather(*branches) for error in errors]

    tasks = [asyncio.ensure_future(branch) for branch in branches]
    cutoff = len(tasks)
    pending = set(tasks)
    cancelled = 0
    try:
        while pending:
            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                index = tasks.index(task)
                if index < cutoff and any(not error.is_soft for error in task.result()):
                    cutoff = index
            for task in [task for task in pending if tasks.index(task) > cutoff]:
                task.cancel()
                pending.discard(task)
                cancelled += 1
    finally:
        for task in tasks:
            if not task.done(): task.cancel()
    if cancelled: async_logger().debug("async_branches_cancelled", count=cancelled)
    return [error for task in tasks[:cutoff + 1] for error in task.result()]


class AsyncValidator:
    """Asynchronous engine bound to a registry and a debounce registry.

    The debounce registry is per validator; long-lived form controllers keep
    one validator so repeated keystrokes on a field coalesce.
    """

    def __init__(self, registry: ValidatorRegistry | None = None, debouncer: DebounceRegistry | None = None,
                 default_timeout_ms: int | None = None):
        self.registry = registry if registry is not None else default_registry
        self.debouncer = debouncer if debouncer is not None else DebounceRegistry()
        self.default_timeout_ms = default_timeout_ms or get_settings().ASYNC_TIMEOUT_MS

    async def validate(self, schema: SchemaLike, data: Any,
                       options: ValidationOptions | Mapping[str, Any] | None = None) -> ValidationResult:
        schema = resolve_schema(schema)
        options = ValidationOptions.coerce(options)
        if isinstance(data, Mapping):
            errors = await self._walk_object(schema, data, root_context(data, self.registry), options)
        else:
            errors = [apply_error_map(root_type_error(data), options.error_map)]

        # Errors arrive already mapped
        sink = create_accumulator(dc_replace(options, error_map=None))
        sink.extend(errors)
        result = sink.to_result(options.aggregate_by_field)
        async_logger().debug("async_validation_completed", valid=result.is_valid,
            hard=len(result.hard_errors), soft=len(result.soft_errors))
        return result

    async def is_valid(self, schema: SchemaLike, data: Any,
                       options: ValidationOptions | Mapping[str, Any] | None = None) -> bool:
        return (await self.validate(schema, data, options)).is_valid

    async def assert_valid(self, schema: SchemaLike, data: Any,
                           options: ValidationOptions | Mapping[str, Any] | None = None) -> Any:
        result = await self.validate(schema, data, options)
        if not result.is_valid:
            raise ValidationFailedError(result.hard_errors)
        return data

    # Walk ------------------------------------------------------------------

    async def _walk_object(self, schema: SchemaDefinition, data: Mapping[str, Any], context: ValidatorContext,
                           options: ValidationOptions) -> list[ValidationError]:
        branches = [self._walk_field(definition, field_value(data, name), context.child(name, data), options)
            for name, definition in schema.fields.items()]
        strict_errors: list[ValidationError] = []
        if schema.unknown_keys is UnknownKeyPolicy.STRICT:
            strict_errors = [apply_error_map(unknown_key_error(context.path, str(key), data[key]), options.error_map)
                for key in unknown_keys(schema, data)]
        elif schema.unknown_keys is UnknownKeyPolicy.CATCHALL:
            branches += [self._walk_field(schema.catchall, data[key], context.child(str(key), data), options)
                for key in unknown_keys(schema, data)]

        return await _collect(branches, options.abort_early) + strict_errors

    async def _walk_field(self, definition: FieldDefinition, value: Any, context: ValidatorContext,
                          options: ValidationOptions) -> list[ValidationError]:
        prepared = prepare_field(definition, value, context, self.registry)
        if not prepared.proceed: return [apply_error_map(error, options.error_map) for error in prepared.errors]
        working = prepared.value

        branches = [self._check(rule, working, context, options) for rule in checked_rules(definition)]
        if definition.kind is FieldKind.OBJECT and definition.schema is not None and isinstance(working, Mapping):
            branches.append(self._walk_object(definition.schema, working, context, options))
        if definition.kind is FieldKind.ARRAY and definition.items is not None and isinstance(working, (list, tuple)):
            branches += [self._walk_field(definition.items, item, context.item(index, working), options)
                for index, item in enumerate(working)]
        return await _collect(branches, options.abort_early)

    # Rules -----------------------------------------------------------------

    async def _check(self, rule: ValidationRule, value: Any, context: ValidatorContext,
                     options: ValidationOptions) -> list[ValidationError]:
        if rule.is_async:
            error = await self._check_async(rule, value, context)
        else:
            match try_result(lambda: run_rule(rule, value, context, self.registry)):
                case Ok(error):
                    pass
                case Err(exc):
                    async_logger().warning("sync_rule_raised", path=context.path, rule=rule.kind, error=str(exc))
                    error = async_error(context, str(exc) or _ERROR_MESSAGE, received=value)
        return [] if error is None else [apply_error_map(error, options.error_map)]

    async def _check_async(self, rule: ValidationRule, value: Any,
                           context: ValidatorContext) -> ValidationError | None:
        check = rule.params.get("validate")
        if not callable(check):
            async_logger().warning("async_rule_without_callable", path=context.path, rule=rule.kind)
            return None

        async def attempt() -> ValidationError | None:
            return await self._execute(check, rule, value, context)

        if not rule.debounce_ms:
            return await attempt()
        try:
            return await self.debouncer.run((context.path, id(rule)), rule.debounce_ms, attempt)
        except ValidationCancelledError:
            async_logger().debug("async_rule_superseded", path=context.path, rule=rule.kind)
            return None

    async def _execute(self, check: Any, rule: ValidationRule, value: Any,
                       context: ValidatorContext) -> ValidationError | None:
        policy = TimeoutPolicy(rule.timeout_ms or self.default_timeout_ms, f"{context.path}:{rule.kind}")
        match await try_result_async(lambda: policy.execute(lambda: _invoke(check, value))):
            case Err(exc):
                async_logger().warning("async_rule_raised", path=context.path, rule=rule.kind, error=str(exc))
                return async_error(context, str(exc) or _ERROR_MESSAGE, soft=rule.soft, received=value)
            case Ok(Err(elapsed)):
                async_logger().warning("async_rule_timed_out", path=context.path, timeout_ms=elapsed.timeout_ms)
                return async_error(context, elapsed.message, soft=rule.soft, received=value)
            case Ok(Ok(result)):
                if (message := _rejection_message(result, rule)) is None: return None
                return async_error(context, message, soft=rule.soft, received=value, failed=True)


# =============================================================================
# Module-level API
# =============================================================================

_default_validator: AsyncValidator | None = None


def get_async_validator() -> AsyncValidator:
    """Shared validator used by the module-level functions."""
    global _default_validator
    if _default_validator is None:
        _default_validator = AsyncValidator()
    return _default_validator


def _validator_for(registry: ValidatorRegistry | None) -> AsyncValidator:
    shared = get_async_validator()
    if registry is None or registry is shared.registry: return shared
    return AsyncValidator(registry, debouncer=shared.debouncer, default_timeout_ms=shared.default_timeout_ms)


async def validate_async(schema: SchemaLike, data: Any, options: ValidationOptions | Mapping[str, Any] | None = None,
                         *, registry: ValidatorRegistry | None = None) -> ValidationResult:
    """Validate ``data`` against ``schema``, running async rules."""
    return await _validator_for(registry).validate(schema, data, options)


async def is_valid_async(schema: SchemaLike, data: Any, options: ValidationOptions | Mapping[str, Any] | None = None,
                         *, registry: ValidatorRegistry | None = None) -> bool:
    return await _validator_for(registry).is_valid(schema, data, options)


async def assert_valid_async(schema: SchemaLike, data: Any,
                             options: ValidationOptions | Mapping[str, Any] | None = None, *,
                             registry: ValidatorRegistry | None = None) -> Any:
    return await _validator_for(registry).assert_valid(schema, data, options)
