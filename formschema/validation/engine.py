"""Synchronous Validation Engine

Recursive walk of a ``SchemaDefinition`` against an input value.

Per field, at a given path:
1. null/absent admitted by ``nullable``/``nullish`` on an optional field: stop
2. apply ``preprocess`` then each transform to present values
3. optional field whose original value is empty: stop
4. type check for the field kind; failure stops the field
5. required and missing: one REQUIRED error, stop
6. run each rule in declaration order
7. recurse into nested object schemas, enforcing their unknown-key policy
8. validate each array element at ``field[i]``

The walk is pure: no shared mutable state, and a fresh ``ValidatorContext``
at every level, so concurrent calls never interfere.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Iterator

from formschema.errors import Err, ErrorCode, Ok, ValidationFailedError, try_result
from formschema.errors.builders import (
    required_error, transform_error, type_error, unknown_key_error,
)
from formschema.logging import engine_logger

from .errors import ErrorAccumulator, ValidationHalted, create_accumulator
from .fields import FieldBuilder, to_schema
from .model import (
    MISSING, FieldDefinition, FieldKind, SchemaDefinition, Severity, UnknownKeyPolicy,
    ValidationError, ValidationOptions, ValidationResult, ValidationRule, ValidatorContext, is_blank,
)
from .registry import RuleKind, ValidatorRegistry, default_registry

SchemaLike = SchemaDefinition | Mapping[str, "FieldBuilder | FieldDefinition"]


# =============================================================================
# Shared Walk Steps (used by both engines)
# =============================================================================

@dataclass(frozen=True, slots=True)
class PreparedField:
    """Outcome of the presence, transform and type steps for one field."""
    value: Any
    errors: tuple[ValidationError, ...] = ()
    proceed: bool = True


_STOP = PreparedField(MISSING, (), False)


def _is_missing(definition: FieldDefinition, value: Any) -> bool:
    if value is MISSING: return not definition.nullish
    if value is None: return not definition.nullable and not definition.nullish
    if isinstance(value, str): return value == ""
    return isinstance(value, (list, tuple)) and len(value) == 0


def _required_message(definition: FieldDefinition) -> str | None:
    for rule in definition.rules:
        if rule.kind == RuleKind.REQUIRED.value and rule.message: return rule.message
    return None


def _apply_transforms(definition: FieldDefinition, value: Any) -> Any:
    if definition.preprocess is not None: value = definition.preprocess(value)
    for fn in definition.transforms: value = fn(value)
    return value


def prepare_field(definition: FieldDefinition, value: Any, context: ValidatorContext,
                  registry: ValidatorRegistry) -> PreparedField:
    """Steps 1-5: returns the working value, or the errors that stop the field."""
    if (value is MISSING or value is None) and not definition.required:
        if definition.nullish or (definition.nullable and value is None): return _STOP

    working = value
    if value is not MISSING:
        match try_result(lambda: _apply_transforms(definition, value)):
            case Ok(transformed):
                working = transformed
            case Err(exc):
                if not definition.required and is_blank(value): return _STOP
                engine_logger().debug("transform_failed", path=context.path, error=str(exc))
                return PreparedField(value, (transform_error(context, exc, value),), False)

    if not definition.required and is_blank(value): return _STOP

    if (error := registry.resolve_type(definition.kind)(working, context)) is not None:
        return PreparedField(working, (error,), False)

    if definition.required and _is_missing(definition, working):
        return PreparedField(working, (required_error(context, _required_message(definition)),), False)

    return PreparedField(working)


def _fixed_severity(code: Any) -> bool:
    try:
        return ErrorCode(code).always_hard
    except ValueError:
        return False


def run_rule(rule: ValidationRule, value: Any, context: ValidatorContext,
             registry: ValidatorRegistry) -> ValidationError | None:
    """Dispatch one synchronous rule; unknown tags are reported and skipped.

    A soft rule downgrades what its validator reports, except type, presence and
    structural codes, which stay hard.
    """
    if (validator := registry.resolve(rule.kind)) is None:
        registry.report_unknown(rule.kind, context.path)
        return None
    error = validator(value, rule.call_params(), context)
    if error is not None and rule.soft and error.severity is Severity.HARD and not _fixed_severity(error.code):
        error = error.replace(severity=Severity.SOFT)
    return error


def checked_rules(definition: FieldDefinition) -> Iterator[ValidationRule]:
    """Rules the rule step runs, in declaration order. Presence is handled earlier."""
    for rule in definition.rules:
        if rule.kind != RuleKind.REQUIRED.value: yield rule


def unknown_keys(schema: SchemaDefinition, data: Mapping[str, Any]) -> list[str]:
    """Undeclared keys in input order."""
    return [key for key in data if key not in schema.fields]


def field_value(data: Mapping[str, Any], name: str) -> Any:
    return data[name] if name in data else MISSING


def root_context(data: Any, registry: ValidatorRegistry) -> ValidatorContext:
    return ValidatorContext(path="", root=data, parent=None, registry=registry)


def root_type_error(data: Any) -> ValidationError:
    return type_error("", "object", data)


def resolve_schema(schema: SchemaLike) -> SchemaDefinition:
    return to_schema(schema)


# =============================================================================
# Synchronous Validator
# =============================================================================

class SyncValidator:
    """Synchronous engine bound to a validator registry.

    Async rules are skipped; use ``AsyncValidator`` for schemas that need them.
    """

    def __init__(self, registry: ValidatorRegistry | None = None):
        self.registry = registry if registry is not None else default_registry

    def validate(self, schema: SchemaLike, data: Any,
                 options: ValidationOptions | Mapping[str, Any] | None = None) -> ValidationResult:
        schema = resolve_schema(schema)
        options = ValidationOptions.coerce(options)
        sink = create_accumulator(options)
        if schema.has_async_rules:
            engine_logger().info("async_rules_skipped", hint="use validate_async to run them")
        try:
            if isinstance(data, Mapping):
                self._walk_object(schema, data, root_context(data, self.registry), sink)
            else:
                self._emit(sink, root_type_error(data))
        except ValidationHalted:
            engine_logger().debug("validation_aborted_early", hard=len(sink.hard), soft=len(sink.soft))
        result = sink.to_result(options.aggregate_by_field)
        engine_logger().debug("validation_completed", valid=result.is_valid,
            hard=len(result.hard_errors), soft=len(result.soft_errors))
        return result

    def is_valid(self, schema: SchemaLike, data: Any,
                 options: ValidationOptions | Mapping[str, Any] | None = None) -> bool:
        return self.validate(schema, data, options).is_valid

    def assert_valid(self, schema: SchemaLike, data: Any,
                     options: ValidationOptions | Mapping[str, Any] | None = None) -> Any:
        """Return ``data`` unchanged, or raise ``ValidationFailedError`` with every hard error."""
        result = self.validate(schema, data, options)
        if not result.is_valid:
            raise ValidationFailedError(result.hard_errors)
        return data

    @staticmethod
    def _emit(sink: ErrorAccumulator, error: ValidationError) -> None:
        if not sink.add(error): raise ValidationHalted()

    def _walk_object(self, schema: SchemaDefinition, data: Mapping[str, Any], context: ValidatorContext,
                     sink: ErrorAccumulator) -> None:
        for name, definition in schema.fields.items():
            self._walk_field(definition, field_value(data, name), context.child(name, data), sink)

        if schema.unknown_keys is UnknownKeyPolicy.STRICT:
            for key in unknown_keys(schema, data):
                self._emit(sink, unknown_key_error(context.path, str(key), data[key]))
        elif schema.unknown_keys is UnknownKeyPolicy.CATCHALL:
            for key in unknown_keys(schema, data):
                self._walk_field(schema.catchall, data[key], context.child(str(key), data), sink)

    def _walk_field(self, definition: FieldDefinition, value: Any, context: ValidatorContext,
                    sink: ErrorAccumulator) -> None:
        prepared = prepare_field(definition, value, context, self.registry)
        for error in prepared.errors: self._emit(sink, error)
        if not prepared.proceed: return
        working = prepared.value

        for rule in checked_rules(definition):
            if rule.is_async: continue
            if (error := run_rule(rule, working, context, self.registry)) is not None:
                self._emit(sink, error)

        if definition.kind is FieldKind.OBJECT and definition.schema is not None and isinstance(working, Mapping):
            self._walk_object(definition.schema, working, context, sink)

        if definition.kind is FieldKind.ARRAY and definition.items is not None and isinstance(working, (list, tuple)):
            for index, item in enumerate(working):
                self._walk_field(definition.items, item, context.item(index, working), sink)


# =============================================================================
# Module-level API
# =============================================================================

_default_validator = SyncValidator()


def _validator_for(registry: ValidatorRegistry | None) -> SyncValidator:
    return _default_validator if registry is None or registry is default_registry else SyncValidator(registry)


def validate(schema: SchemaLike, data: Any, options: ValidationOptions | Mapping[str, Any] | None = None, *,
             registry: ValidatorRegistry | None = None) -> ValidationResult:
    """Validate ``data`` against ``schema`` synchronously."""
    return _validator_for(registry).validate(schema, data, options)


def is_valid(schema: SchemaLike, data: Any, options: ValidationOptions | Mapping[str, Any] | None = None, *,
             registry: ValidatorRegistry | None = None) -> bool:
    return _validator_for(registry).is_valid(schema, data, options)


def assert_valid(schema: SchemaLike, data: Any, options: ValidationOptions | Mapping[str, Any] | None = None, *,
                 registry: ValidatorRegistry | None = None) -> Any:
    return _validator_for(registry).assert_valid(schema, data, options)
