"""Validation Data Model

Immutable value types consumed by the engines:

- FieldDefinition / SchemaDefinition: what a value must look like
- ValidationRule: one declared check, dispatched by its string tag
- ValidatorContext: where in the input a check is running
- ValidationError / ValidationResult: what went wrong, split into hard and soft

Nothing here has behavior beyond construction helpers. Schemas are never
mutated after construction; use ``replace`` to derive modified copies.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field, replace as dc_replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping, Sequence

from formschema.errors import ErrorCode, SchemaDefinitionError


# =============================================================================
# Sentinels and Enumerations
# =============================================================================

class _MissingType:
    """Marks a key absent from its container. ``None`` models an explicit null."""
    __slots__ = ()
    _instance: _MissingType | None = None

    def __new__(cls) -> _MissingType:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str: return "MISSING"
    def __bool__(self) -> bool: return False
    def __copy__(self) -> _MissingType: return self
    def __deepcopy__(self, memo: dict) -> _MissingType: return self
    def __reduce__(self) -> str: return "MISSING"


MISSING: Any = _MissingType()


class FieldKind(str, Enum):
    """Runtime shape a field value must have."""
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    ARRAY = "array"
    OBJECT = "object"


class Severity(str, Enum):
    """Hard errors invalidate a result; soft errors are advisory."""
    HARD = "hard"
    SOFT = "soft"


class UnknownKeyPolicy(str, Enum):
    """How an object treats keys its schema does not declare."""
    IGNORE = "ignore"
    PASSTHROUGH = "passthrough"
    STRICT = "strict"
    CATCHALL = "catchall"


def freeze(value: Any) -> Any:
    """Read-only deep copy: mappings become proxies, lists and tuples become tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({key: freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)): return tuple(freeze(item) for item in value)
    if isinstance(value, set): return frozenset(value)
    return value


def thaw(value: Any) -> Any:
    """Plain dicts and lists again, for comparison with user data and for export."""
    if isinstance(value, Mapping): return {key: thaw(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)): return [thaw(item) for item in value]
    return value


def freeze_mapping(mapping: Mapping[str, Any] | None) -> Mapping[str, Any]:
    """Read-only deep copy preserving insertion order."""
    return freeze(mapping or {})


def _empty_mapping() -> Mapping[str, Any]:
    return MappingProxyType({})


def is_empty(value: Any) -> bool:
    """Absent, null or empty string. Built-in rule validators skip these."""
    return value is MISSING or value is None or (isinstance(value, str) and value == "")


def is_blank(value: Any) -> bool:
    """``is_empty`` plus empty arrays; used for the optional short-circuit."""
    return is_empty(value) or (isinstance(value, (list, tuple)) and len(value) == 0)


# =============================================================================
# Paths
# =============================================================================

_PATH_SEGMENT = re.compile(r"\[(\d+)\]|([^.\[\]]+)")


def parse_path(path: str) -> tuple[str | int, ...]:
    """Split ``items[2].sku`` into ``("items", 2, "sku")``."""
    if not path: return ()
    return tuple(int(index) if index else name for index, name in _PATH_SEGMENT.findall(path))


def join_path(base: str, name: str) -> str:
    return f"{base}.{name}" if base else name


def index_path(base: str, index: int) -> str:
    return f"{base}[{index}]"


def lookup_path(data: Any, path: str) -> Any:
    """Resolve a dotted/bracket path against nested mappings and sequences.

    Returns MISSING when any segment cannot be resolved.
    """
    current = data
    for segment in parse_path(path):
        if isinstance(segment, int):
            if not isinstance(current, (list, tuple)) or segment >= len(current): return MISSING
            current = current[segment]
        else:
            if not isinstance(current, Mapping) or segment not in current: return MISSING
            current = current[segment]
    return current


# =============================================================================
# Schema Definition Types
# =============================================================================

@dataclass(frozen=True, slots=True)
class ValidationRule:
    """One declared check on a field.

    ``kind`` is the string tag the registry dispatches on. ``params`` holds the
    rule's own parameters; the engine adds ``soft`` and ``message`` before the
    validator sees them.
    """
    kind: str
    params: Mapping[str, Any] = field(default_factory=_empty_mapping)
    message: str | None = None
    soft: bool = False
    is_async: bool = False
    debounce_ms: int | None = None
    timeout_ms: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", getattr(self.kind, "value", self.kind))
        object.__setattr__(self, "params", freeze_mapping(self.params))

    @property
    def severity(self) -> Severity: return Severity.SOFT if self.soft else Severity.HARD

    def call_params(self) -> dict[str, Any]:
        """Parameters as handed to a validator function."""
        return {**self.params, "soft": self.soft, "message": self.message}


@dataclass(frozen=True, slots=True)
class FieldDefinition:
    """Immutable description of one field.

    ``schema`` is only meaningful for object fields, ``items`` for arrays.
    ``nullable`` admits ``None``; ``nullish`` admits ``None`` and MISSING.
    """
    kind: FieldKind
    rules: tuple[ValidationRule, ...] = ()
    required: bool = False
    default: Any = MISSING
    schema: SchemaDefinition | None = None
    items: FieldDefinition | None = None
    nullable: bool = False
    nullish: bool = False
    transforms: tuple[Callable[[Any], Any], ...] = ()
    preprocess: Callable[[Any], Any] | None = None
    meta: Mapping[str, Any] = field(default_factory=_empty_mapping)

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", FieldKind(self.kind))
        object.__setattr__(self, "rules", tuple(self.rules))
        object.__setattr__(self, "transforms", tuple(self.transforms))
        object.__setattr__(self, "meta", freeze_mapping(self.meta))
        if self.schema is not None and self.kind is not FieldKind.OBJECT:
            raise SchemaDefinitionError(f"Nested schema requires an object field, got {self.kind.value}")
        if self.items is not None and self.kind is not FieldKind.ARRAY:
            raise SchemaDefinitionError(f"Item definition requires an array field, got {self.kind.value}")

    def replace(self, **changes: Any) -> FieldDefinition:
        return dc_replace(self, **changes)

    def with_rule(self, rule: ValidationRule) -> FieldDefinition:
        return dc_replace(self, rules=(*self.rules, rule))

    @property
    def has_default(self) -> bool: return self.default is not MISSING

    @property
    def has_async_rules(self) -> bool:
        """True if this field or anything nested under it declares an async rule."""
        if any(rule.is_async for rule in self.rules): return True
        if self.items is not None and self.items.has_async_rules: return True
        return self.schema is not None and self.schema.has_async_rules


@dataclass(frozen=True, slots=True)
class SchemaDefinition:
    """Ordered mapping of field names to definitions plus an unknown-key policy."""
    fields: Mapping[str, FieldDefinition] = field(default_factory=_empty_mapping)
    unknown_keys: UnknownKeyPolicy = UnknownKeyPolicy.IGNORE
    catchall: FieldDefinition | None = None
    meta: Mapping[str, Any] = field(default_factory=_empty_mapping)

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", freeze_mapping(self.fields))
        object.__setattr__(self, "unknown_keys", UnknownKeyPolicy(self.unknown_keys))
        object.__setattr__(self, "meta", freeze_mapping(self.meta))
        for name, definition in self.fields.items():
            if not isinstance(definition, FieldDefinition):
                raise SchemaDefinitionError(f"Field '{name}' is not a FieldDefinition: {type(definition).__name__}")
        if self.unknown_keys is UnknownKeyPolicy.CATCHALL and self.catchall is None:
            raise SchemaDefinitionError("Catchall policy requires a catchall field definition")
        if self.catchall is not None and self.unknown_keys is not UnknownKeyPolicy.CATCHALL:
            raise SchemaDefinitionError(f"Catchall field given with '{self.unknown_keys.value}' policy")

    def replace(self, **changes: Any) -> SchemaDefinition:
        return dc_replace(self, **changes)

    @property
    def field_names(self) -> tuple[str, ...]: return tuple(self.fields)

    @property
    def has_async_rules(self) -> bool:
        if self.catchall is not None and self.catchall.has_async_rules: return True
        return any(definition.has_async_rules for definition in self.fields.values())

    def __contains__(self, name: object) -> bool: return name in self.fields
    def __len__(self) -> int: return len(self.fields)


# =============================================================================
# Runtime Types
# =============================================================================

@dataclass(frozen=True, slots=True)
class ValidatorContext:
    """Position being validated. A new context is created per recursion level."""
    path: str
    root: Any
    parent: Any = None
    registry: Any = field(default=None, compare=False, repr=False)

    def child(self, name: str, container: Any) -> ValidatorContext:
        return ValidatorContext(join_path(self.path, name), self.root, container, self.registry)

    def item(self, index: int, container: Any) -> ValidatorContext:
        return ValidatorContext(index_path(self.path, index), self.root, container, self.registry)

    def lookup(self, path: str) -> Any:
        """Resolve another field relative to the root input."""
        return lookup_path(self.root, path)


@dataclass(frozen=True, slots=True)
class ValidationError:
    """A single reported failure. ``path`` is always ``parse_path(field)``."""
    field: str
    code: str
    message: str
    severity: Severity = Severity.HARD
    received: Any = MISSING
    expected: Any = MISSING
    path: tuple[str | int, ...] = field(init=False, default=())

    def __post_init__(self) -> None:
        object.__setattr__(self, "severity", Severity(self.severity))
        object.__setattr__(self, "path", parse_path(self.field))

    @property
    def is_soft(self) -> bool: return self.severity is Severity.SOFT

    def replace(self, **changes: Any) -> ValidationError:
        changes.pop("path", None)
        return dc_replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for transport; absent received/expected values are omitted."""
        result: dict[str, Any] = {"field": self.field, "path": list(self.path), "code": str(self.code),
            "message": self.message, "severity": self.severity.value}
        if self.received is not MISSING: result["received"] = self.received
        if self.expected is not MISSING: result["expected"] = self.expected
        return result


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Outcome of one validation call.

    ``is_valid`` is derived from ``hard_errors`` so it cannot disagree with it.
    """
    hard_errors: tuple[ValidationError, ...] = ()
    soft_errors: tuple[ValidationError, ...] = ()
    errors_by_field: Mapping[str, tuple[ValidationError, ...]] | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "hard_errors", tuple(self.hard_errors))
        object.__setattr__(self, "soft_errors", tuple(self.soft_errors))
        if self.errors_by_field is not None:
            object.__setattr__(self, "errors_by_field", MappingProxyType(
                {name: tuple(errors) for name, errors in self.errors_by_field.items()}))

    @property
    def is_valid(self) -> bool: return len(self.hard_errors) == 0

    @property
    def errors(self) -> tuple[ValidationError, ...]:
        """Hard errors followed by soft errors."""
        return self.hard_errors + self.soft_errors

    def __bool__(self) -> bool: return self.is_valid

    def errors_for(self, field_path: str) -> list[ValidationError]:
        return [error for error in self.errors if error.field == field_path]

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"valid": self.is_valid,
            "hard_errors": [e.to_dict() for e in self.hard_errors],
            "soft_errors": [e.to_dict() for e in self.soft_errors]}
        if self.errors_by_field is not None:
            result["errors_by_field"] = {name: [e.to_dict() for e in errors] for name, errors in self.errors_by_field.items()}
        return result


ErrorMap = Callable[[ValidationError], "ValidationError | Mapping[str, Any] | str | None"]


@dataclass(frozen=True, slots=True)
class ValidationOptions:
    """Per-call engine options."""
    error_map: ErrorMap | None = None
    abort_early: bool = False
    aggregate_by_field: bool = False

    @classmethod
    def coerce(cls, options: ValidationOptions | Mapping[str, Any] | None) -> ValidationOptions:
        """Accept an options object, a plain mapping, or None."""
        if options is None: return _DEFAULT_OPTIONS
        if isinstance(options, cls): return options
        return cls(**dict(options))


_DEFAULT_OPTIONS = ValidationOptions()


# =============================================================================
# Result Helpers
# =============================================================================

def group_by_field(errors: Iterable[ValidationError]) -> dict[str, tuple[ValidationError, ...]]:
    """Group errors by ``field`` preserving first-seen order."""
    grouped: dict[str, list[ValidationError]] = {}
    for error in errors: grouped.setdefault(error.field, []).append(error)
    return {name: tuple(items) for name, items in grouped.items()}


def merge_results(*results: ValidationResult) -> ValidationResult:
    """Concatenate the hard and soft lists of several results."""
    hard: list[ValidationError] = []
    soft: list[ValidationError] = []
    for result in results:
        hard.extend(result.hard_errors)
        soft.extend(result.soft_errors)
    return ValidationResult(tuple(hard), tuple(soft))


def valid_result() -> ValidationResult:
    return ValidationResult()


def error_result(field_path: str, code: str | ErrorCode, message: str, soft: bool = False) -> ValidationResult:
    """Result carrying one error in the bucket matching ``soft``."""
    error = ValidationError(field_path, code, message, Severity.SOFT if soft else Severity.HARD)
    return ValidationResult((), (error,)) if soft else ValidationResult((error,), ())


def build_result(hard: Sequence[ValidationError], soft: Sequence[ValidationError],
                 aggregate_by_field: bool = False) -> ValidationResult:
    """Assemble a result, grouping hard-then-soft errors by field when asked."""
    by_field = group_by_field([*hard, *soft]) if aggregate_by_field else None
    return ValidationResult(tuple(hard), tuple(soft), by_field)
