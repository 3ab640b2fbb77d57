"""Schema Interchange

Schemas serialize to a plain JSON document so the same definition can be
shipped between a server and a browser form. Documents are parsed back through
pydantic models; a malformed document raises ``SchemaDefinitionError`` listing
every offending location.

Callables do not serialize:
- rules whose params embed a callable (``custom``, ``refineAsync``) are dropped
- named transforms from ``coercion`` round-trip by name, others are dropped
Each drop is logged as a warning.

Document shape:
    {
        "version": 1,
        "fields": {
            "email": {"type": "string", "required": true, "transforms": ["trim"],
                      "rules": [{"kind": "email", "message": "Bad email"}]},
            "tags": {"type": "array", "items": {"type": "string"}}
        },
        "unknown_keys": "strict"
    }
"""
from __future__ import annotations

import json
from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError, field_validator
from pydantic_core import to_jsonable_python

from formschema.errors import Err, Ok, Result, SchemaDefinitionError
from formschema.logging import schema_logger

from .coercion import NAMED_TRANSFORMS, transform_name
from .model import (
    MISSING, FieldDefinition, FieldKind, SchemaDefinition, UnknownKeyPolicy, ValidationRule, join_path,
)

DOCUMENT_VERSION = 1


# =============================================================================
# Document Models
# =============================================================================

class RuleDocument(BaseModel):
    """One serialized rule."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    kind: str = Field(min_length=1)
    params: dict[str, Any] = Field(default_factory=dict)
    message: str | None = None
    soft: bool = False
    is_async: bool = Field(default=False, alias="async")
    debounce_ms: int | None = Field(default=None, ge=0)
    timeout_ms: int | None = Field(default=None, gt=0)


class FieldDocument(BaseModel):
    """One serialized field; ``default`` counts only when present in the document."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    type: FieldKind
    required: bool = False
    nullable: bool = False
    nullish: bool = False
    default: Any = None
    rules: list[RuleDocument] = Field(default_factory=list)
    shape: SchemaDocument | None = Field(default=None, alias="schema")
    items: FieldDocument | None = None
    transforms: list[str] = Field(default_factory=list)
    preprocess: str | None = None
    meta: dict[str, Any] = Field(default_factory=dict)

    @field_validator("transforms")
    @classmethod
    def _known_transforms(cls, names: list[str]) -> list[str]:
        for name in names:
            if name not in NAMED_TRANSFORMS:
                raise ValueError(f"unknown transform '{name}'")
        return names

    @field_validator("preprocess")
    @classmethod
    def _known_preprocess(cls, name: str | None) -> str | None:
        if name is not None and name not in NAMED_TRANSFORMS:
            raise ValueError(f"unknown transform '{name}'")
        return name


class SchemaDocument(BaseModel):
    """A serialized schema."""
    model_config = ConfigDict(extra="forbid")

    version: Literal[1] = DOCUMENT_VERSION
    fields: dict[str, FieldDocument] = Field(default_factory=dict)
    unknown_keys: UnknownKeyPolicy = UnknownKeyPolicy.IGNORE
    catchall: FieldDocument | None = None
    meta: dict[str, Any] = Field(default_factory=dict)


FieldDocument.model_rebuild()
SchemaDocument.model_rebuild()


# =============================================================================
# Schema -> Document
# =============================================================================

def _plain(value: Any) -> Any:
    """Thaw frozen containers; Decimals become JSON numbers so bounds load back as numbers."""
    if isinstance(value, Decimal):
        if value.is_finite() and value == value.to_integral_value(): return int(value)
        return float(value)
    if isinstance(value, Mapping): return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)): return [_plain(item) for item in value]
    return value


def _has_callable(value: Any) -> bool:
    if callable(value): return True
    if isinstance(value, Mapping): return any(_has_callable(v) for v in value.values())
    if isinstance(value, (list, tuple)): return any(_has_callable(v) for v in value)
    return False


def _rule_to_dict(rule: ValidationRule) -> dict[str, Any]:
    out: dict[str, Any] = {"kind": rule.kind}
    if rule.params: out["params"] = _plain(rule.params)
    if rule.message is not None: out["message"] = rule.message
    if rule.soft: out["soft"] = True
    if rule.is_async: out["async"] = True
    if rule.debounce_ms is not None: out["debounce_ms"] = rule.debounce_ms
    if rule.timeout_ms is not None: out["timeout_ms"] = rule.timeout_ms
    return out


def _transform_names(definition: FieldDefinition, path: str) -> list[str]:
    names = []
    for fn in definition.transforms:
        if (name := transform_name(fn)) is None:
            schema_logger().warning("transform_not_serializable", field=path, transform=repr(fn))
        else:
            names.append(name)
    return names


def _field_to_dict(definition: FieldDefinition, path: str) -> dict[str, Any]:
    out: dict[str, Any] = {"type": definition.kind.value}
    if definition.required: out["required"] = True
    if definition.nullable: out["nullable"] = True
    if definition.nullish: out["nullish"] = True
    if definition.has_default: out["default"] = _plain(definition.default)

    rules = []
    for rule in definition.rules:
        if _has_callable(rule.params):
            schema_logger().warning("rule_not_serializable", field=path, rule=rule.kind)
            continue
        rules.append(_rule_to_dict(rule))
    if rules: out["rules"] = rules

    if definition.schema is not None: out["schema"] = _schema_to_dict(definition.schema, path)
    if definition.items is not None: out["items"] = _field_to_dict(definition.items, f"{path}[]")
    if transforms := _transform_names(definition, path): out["transforms"] = transforms
    if definition.preprocess is not None:
        if (name := transform_name(definition.preprocess)) is None:
            schema_logger().warning("transform_not_serializable", field=path, transform=repr(definition.preprocess))
        else:
            out["preprocess"] = name
    if definition.meta: out["meta"] = _plain(definition.meta)
    return out


def _schema_to_dict(schema: SchemaDefinition, base: str = "") -> dict[str, Any]:
    out: dict[str, Any] = {"fields": {name: _field_to_dict(d, join_path(base, name)) for name, d in schema.fields.items()}}
    if schema.unknown_keys is not UnknownKeyPolicy.IGNORE: out["unknown_keys"] = schema.unknown_keys.value
    if schema.catchall is not None: out["catchall"] = _field_to_dict(schema.catchall, join_path(base, "*"))
    if schema.meta: out["meta"] = _plain(schema.meta)
    return out


def schema_to_dict(schema: SchemaDefinition) -> dict[str, Any]:
    """Serialize a schema to a JSON-compatible document."""
    return {"version": DOCUMENT_VERSION, **_schema_to_dict(schema)}


def dump_schema(schema: SchemaDefinition, *, indent: int | None = None) -> str:
    """Serialize a schema to JSON text. Dates in defaults or meta become ISO strings."""
    return json.dumps(schema_to_dict(schema), indent=indent, default=to_jsonable_python)


# =============================================================================
# Document -> Schema
# =============================================================================

def _rule_from_document(doc: RuleDocument) -> ValidationRule:
    return ValidationRule(kind=doc.kind, params=doc.params, message=doc.message, soft=doc.soft,
        is_async=doc.is_async, debounce_ms=doc.debounce_ms, timeout_ms=doc.timeout_ms)


def _field_from_document(doc: FieldDocument) -> FieldDefinition:
    return FieldDefinition(
        kind=doc.type,
        rules=tuple(_rule_from_document(rule) for rule in doc.rules),
        required=doc.required,
        default=doc.default if "default" in doc.model_fields_set else MISSING,
        schema=_schema_from_document(doc.shape) if doc.shape is not None else None,
        items=_field_from_document(doc.items) if doc.items is not None else None,
        nullable=doc.nullable,
        nullish=doc.nullish,
        transforms=tuple(NAMED_TRANSFORMS[name] for name in doc.transforms),
        preprocess=NAMED_TRANSFORMS[doc.preprocess] if doc.preprocess is not None else None,
        meta=doc.meta,
    )


def _schema_from_document(doc: SchemaDocument) -> SchemaDefinition:
    return SchemaDefinition(
        fields={name: _field_from_document(field) for name, field in doc.fields.items()},
        unknown_keys=doc.unknown_keys,
        catchall=_field_from_document(doc.catchall) if doc.catchall is not None else None,
        meta=doc.meta,
    )


def _definition_error(exc: PydanticValidationError) -> SchemaDefinitionError:
    details = [(".".join(str(part) for part in error["loc"]) or "<document>", error["msg"]) for error in exc.errors()]
    return SchemaDefinitionError("Invalid schema document", details)


def schema_from_dict(document: Mapping[str, Any]) -> SchemaDefinition:
    """Parse a document produced by ``schema_to_dict``.

    Raises:
        SchemaDefinitionError: the document is malformed.
    """
    try:
        parsed = SchemaDocument.model_validate(document)
    except PydanticValidationError as exc:
        raise _definition_error(exc) from exc
    return _schema_from_document(parsed)


def load_schema(text: str | bytes) -> SchemaDefinition:
    """Parse JSON text produced by ``dump_schema``.

    Raises:
        SchemaDefinitionError: the text is not JSON or not a valid document.
    """
    try:
        parsed = SchemaDocument.model_validate_json(text)
    except PydanticValidationError as exc:
        raise _definition_error(exc) from exc
    return _schema_from_document(parsed)


def load_schema_result(text: str | bytes) -> Result[SchemaDefinition, SchemaDefinitionError]:
    """``load_schema`` reporting failure as ``Err`` instead of raising."""
    try:
        return Ok(load_schema(text))
    except SchemaDefinitionError as exc:
        schema_logger().info("schema_document_rejected", problems=len(exc.details))
        return Err(exc)
