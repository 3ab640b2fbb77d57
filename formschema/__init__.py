"""formschema: declarative validation with hard and soft errors.

    from formschema import field, schema, validate

    signup = schema({
        "email": field.string().email().required(),
        "age": field.number().min(18).warn_above(120),
    })
    result = validate(signup, payload)
"""
__version__ = "0.1.0"

# Core module exports
from formschema.config import Settings, get_settings
from formschema.errors import (
    ErrorCode,
    Err,
    FormSchemaError,
    Ok,
    Result,
    SchemaDefinitionError,
    ValidationCancelledError,
    ValidationFailedError,
)
from formschema.logging import (
    configure_logging,
    get_logger,
    bind_context,
    clear_context,
    unbind_context,
)
from formschema.validation import (
    MISSING,
    AsyncValidator,
    FieldDefinition,
    FieldKind,
    SchemaDefinition,
    Severity,
    SyncValidator,
    UnknownKeyPolicy,
    ValidationError,
    ValidationOptions,
    ValidationResult,
    ValidationRule,
    ValidatorContext,
    ValidatorRegistry,
    assert_valid,
    assert_valid_async,
    dump_schema,
    field,
    is_valid,
    is_valid_async,
    load_schema,
    register_validator,
    schema,
    to_enterprise_response,
    validate,
    validate_async,
)
