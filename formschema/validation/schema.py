"""Schema Construction and Composition

``schema`` turns builders into a ``SchemaDefinition``; the operators below
derive new schemas from existing ones. All operators are pure: inputs are
never modified and results share unchanged field definitions with them.

    user = schema({"email": field.string().email().required(), "age": field.number()})
    signup = extend(user, {"password": field.string().min(8).required()})
    patch = partial(signup)
    public = omit(signup, ["password"])
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from .fields import FieldBuilder, to_definition
from .model import FieldDefinition, FieldKind, SchemaDefinition, UnknownKeyPolicy

FieldsLike = Mapping[str, FieldBuilder | FieldDefinition]


def schema(
    fields: FieldsLike,
    *,
    unknown_keys: UnknownKeyPolicy | str = UnknownKeyPolicy.IGNORE,
    catchall: FieldBuilder | FieldDefinition | None = None,
    meta: Mapping[str, Any] | None = None,
) -> SchemaDefinition:
    """Build a schema from builders and/or definitions, in declaration order."""
    fallback = to_definition(catchall) if catchall is not None else None
    policy = UnknownKeyPolicy.CATCHALL if fallback is not None else UnknownKeyPolicy(unknown_keys)
    return SchemaDefinition(
        fields={name: to_definition(definition) for name, definition in fields.items()},
        unknown_keys=policy,
        catchall=fallback,
        meta=meta or {},
    )


def _as_schema(value: SchemaDefinition | FieldsLike) -> SchemaDefinition:
    return value if isinstance(value, SchemaDefinition) else schema(value)


# =============================================================================
# Field-set Operators
# =============================================================================

def merge(a: SchemaDefinition, b: SchemaDefinition) -> SchemaDefinition:
    """Field union; on collision ``b``'s definition wins entirely.

    The unknown-key policy is ``b``'s when ``b`` sets one, otherwise ``a``'s.
    """
    source = b if b.unknown_keys is not UnknownKeyPolicy.IGNORE else a
    return SchemaDefinition(
        fields={**a.fields, **b.fields},
        unknown_keys=source.unknown_keys,
        catchall=source.catchall,
        meta={**a.meta, **b.meta},
    )


def extend(base: SchemaDefinition, extra: SchemaDefinition | FieldsLike) -> SchemaDefinition:
    return merge(base, _as_schema(extra))


def pick(base: SchemaDefinition, keys: Iterable[str]) -> SchemaDefinition:
    """Keep only ``keys`` (in the base's order); unknown names are ignored."""
    wanted = set(keys)
    return base.replace(fields={name: d for name, d in base.fields.items() if name in wanted})


def omit(base: SchemaDefinition, keys: Iterable[str]) -> SchemaDefinition:
    dropped = set(keys)
    return base.replace(fields={name: d for name, d in base.fields.items() if name not in dropped})


# =============================================================================
# Presence Operators
# =============================================================================

def partial(base: SchemaDefinition) -> SchemaDefinition:
    """Every field becomes optional; rules are unchanged."""
    return base.replace(fields={name: d.replace(required=False) for name, d in base.fields.items()})


def _deep_partial_field(definition: FieldDefinition) -> FieldDefinition:
    if definition.kind is FieldKind.OBJECT and definition.schema is not None:
        return definition.replace(required=False, schema=deep_partial(definition.schema))
    return definition.replace(required=False)


def deep_partial(base: SchemaDefinition) -> SchemaDefinition:
    """``partial``, recursing into nested object schemas."""
    return base.replace(fields={name: _deep_partial_field(d) for name, d in base.fields.items()})


def required(base: SchemaDefinition, keys: Iterable[str]) -> SchemaDefinition:
    """Make the named fields required; others are untouched."""
    names = set(keys)
    return base.replace(fields={name: d.replace(required=True) if name in names else d
        for name, d in base.fields.items()})


def optional(base: SchemaDefinition, keys: Iterable[str]) -> SchemaDefinition:
    names = set(keys)
    return base.replace(fields={name: d.replace(required=False) if name in names else d
        for name, d in base.fields.items()})


# =============================================================================
# Unknown-key Policies
# =============================================================================

def passthrough(base: SchemaDefinition) -> SchemaDefinition:
    """Allow undeclared keys silently."""
    return base.replace(unknown_keys=UnknownKeyPolicy.PASSTHROUGH, catchall=None)


def strict(base: SchemaDefinition) -> SchemaDefinition:
    """Reject each undeclared key with a hard UNKNOWN_KEY error."""
    return base.replace(unknown_keys=UnknownKeyPolicy.STRICT, catchall=None)


def strip(base: SchemaDefinition) -> SchemaDefinition:
    """Back to the default policy: undeclared keys are ignored."""
    return base.replace(unknown_keys=UnknownKeyPolicy.IGNORE, catchall=None)


def catchall(base: SchemaDefinition, definition: FieldBuilder | FieldDefinition) -> SchemaDefinition:
    """Validate every undeclared key's value against ``definition``."""
    return base.replace(unknown_keys=UnknownKeyPolicy.CATCHALL, catchall=to_definition(definition))
