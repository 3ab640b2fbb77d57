"""Error Handling for formschema

Invalid data is always reported as ``ValidationError`` values inside a
``ValidationResult``; the exceptions here are reserved for API misuse.

Key components:
- ErrorCode: string tag taxonomy carried by every reported error
- FormSchemaError and subclasses: raised for misuse, never for bad data
- Result[T, E]: Ok/Err container for operations that report failure as values

Error builders live in ``formschema.errors.builders``.

Usage:
    from formschema.errors import Ok, Err, SchemaDefinitionError

    match load_schema_result(text):
        case Ok(schema):
            validate(schema, payload)
        case Err(error):
            log.error("schema_rejected", problems=error.details)
"""
from .types import (
    ErrorCode,
    Err,
    FormSchemaError,
    Ok,
    Result,
    SchemaDefinitionError,
    ValidationCancelledError,
    ValidationFailedError,
    try_result,
    try_result_async,
)

__all__ = [
    "ErrorCode",
    "Err",
    "FormSchemaError",
    "Ok",
    "Result",
    "SchemaDefinitionError",
    "ValidationCancelledError",
    "ValidationFailedError",
    "try_result",
    "try_result_async",
]
