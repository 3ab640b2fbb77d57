"""Declarative Validation System

Schemas describe what a value must look like; engines walk a schema against
input and report every problem as a ``ValidationError``, split into hard
(blocking) and soft (advisory) errors. Invalid data never raises.

Key Features:
- Fluent, immutable field builders (``field.string().email().required()``)
- Closed set of built-in rules plus a registry for custom ones
- Schema algebra: merge, extend, pick, omit, partial, deep_partial, ...
- Sync engine and async engine (timeouts, debouncing, concurrent fan-out)
- Fail-fast or collect-all accumulation with caller error maps
- JSON interchange and an enterprise response envelope

Usage:
    from formschema.validation import field, schema, validate, validate_async

    signup = schema({
        "email": field.string().trim().email().required(),
        "password": field.string().min(8).required(),
        "confirm": field.string().matches("password", "Passwords must match"),
        "age": field.number().integer().min(18).warn_above(120),
    })

    result = validate(signup, payload)
    if not result.is_valid:
        return to_enterprise_response(result).to_dict()
"""

# Data model
from .model import (
    MISSING,
    FieldDefinition,
    FieldKind,
    SchemaDefinition,
    Severity,
    UnknownKeyPolicy,
    ValidationError,
    ValidationOptions,
    ValidationResult,
    ValidationRule,
    ValidatorContext,
    merge_results,
    valid_result,
    error_result,
)

# Registry
from .registry import (
    RuleKind,
    ValidatorRegistry,
    default_registry,
    register_validator,
    get_validator,
    is_builtin,
)

# Builders
from .fields import (
    FieldBuilder,
    StringField,
    NumberField,
    BooleanField,
    DateField,
    ArrayField,
    ObjectField,
    FieldFactory,
    field,
    builder_for,
)

# Composition
from .schema import (
    schema,
    merge,
    extend,
    pick,
    omit,
    partial,
    deep_partial,
    required,
    optional,
    passthrough,
    strict,
    strip,
    catchall,
)

# Accumulation
from .errors import (
    ValidationMode,
    ErrorAccumulator,
    CollectAllAccumulator,
    FailFastAccumulator,
    create_accumulator,
    apply_error_map,
)

# Engines
from .engine import (
    SyncValidator,
    validate,
    is_valid,
    assert_valid,
)
from .async_engine import (
    AsyncValidator,
    get_async_validator,
    validate_async,
    is_valid_async,
    assert_valid_async,
)

# Coercion
from .coercion import (
    CoercionRule,
    StringToNumber,
    StringToBool,
    ISO8601ToDateTime,
    AnyToString,
    NAMED_TRANSFORMS,
    to_number,
    to_boolean,
    to_date,
    to_string,
    trim,
    lowercase,
    uppercase,
)

# Interchange
from .serialization import (
    SchemaDocument,
    schema_to_dict,
    schema_from_dict,
    dump_schema,
    load_schema,
    load_schema_result,
)

# Response envelope
from .response import (
    EnterpriseResponse,
    to_enterprise_response,
    result_from_response,
)
