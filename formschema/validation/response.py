"""Enterprise Response Envelope

Boundary contract for HTTP adapters: a ``ValidationResult`` (plus the data it
validated) becomes

    {
        "status": "success" | "validation_error",
        "data": ...,                    # echoed only when valid
        "errors": [...],                # hard then soft
        "msg": "Validation successful" | "Validation failed",
        "validation": {"hard_validations": [...], "soft_validations": [...]}
    }

Adapters only choose the transport status code. ``result_from_response``
reads such a payload back into a ``ValidationResult`` on the client side.
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from .model import MISSING, Severity, ValidationError, ValidationResult


class ErrorPayload(BaseModel):
    """Wire form of a ``ValidationError``; absent received/expected stay unset."""
    model_config = ConfigDict(extra="ignore")

    field: str
    path: list[str | int] = Field(default_factory=list)
    code: str
    message: str
    severity: Severity = Severity.HARD
    received: Any = None
    expected: Any = None

    @classmethod
    def from_error(cls, error: ValidationError) -> ErrorPayload:
        return cls.model_validate(error.to_dict())

    def to_error(self) -> ValidationError:
        fields = self.model_fields_set
        return ValidationError(
            field=self.field,
            code=self.code,
            message=self.message,
            severity=self.severity,
            received=self.received if "received" in fields else MISSING,
            expected=self.expected if "expected" in fields else MISSING,
        )


class ValidationSummary(BaseModel):
    hard_validations: list[ErrorPayload] = Field(default_factory=list)
    soft_validations: list[ErrorPayload] = Field(default_factory=list)


class EnterpriseResponse(BaseModel):
    """Validation outcome in the envelope HTTP adapters return."""
    status: Literal["success", "validation_error"]
    data: Any = None
    errors: list[ErrorPayload] = Field(default_factory=list)
    msg: str
    validation: ValidationSummary = Field(default_factory=ValidationSummary)

    @property
    def is_success(self) -> bool:
        return self.status == "success"

    def to_dict(self) -> dict[str, Any]:
        """Plain JSON-compatible shape; ``data`` is omitted when not echoed."""
        payload = self.model_dump(mode="json", exclude_unset=True)
        payload.setdefault("errors", [])
        payload.setdefault("validation", {"hard_validations": [], "soft_validations": []})
        return payload


def to_enterprise_response(result: ValidationResult, data: Any = None) -> EnterpriseResponse:
    """Wrap a result; ``data`` is echoed only when the result is valid."""
    hard = [ErrorPayload.from_error(e) for e in result.hard_errors]
    soft = [ErrorPayload.from_error(e) for e in result.soft_errors]
    fields: dict[str, Any] = {
        "status": "success" if result.is_valid else "validation_error",
        "errors": hard + soft,
        "msg": "Validation successful" if result.is_valid else "Validation failed",
        "validation": ValidationSummary(hard_validations=hard, soft_validations=soft),
    }
    if result.is_valid and data is not None:
        fields["data"] = data
    return EnterpriseResponse(**fields)


def result_from_response(payload: Mapping[str, Any]) -> ValidationResult:
    """Rebuild a result from an envelope's flat ``errors`` or its ``validation`` block.

    Flat errors are bucketed by severity; when both forms are present the
    structured block wins so errors are not counted twice.
    """
    summary = payload.get("validation")
    if isinstance(summary, Mapping) and ("hard_validations" in summary or "soft_validations" in summary):
        parsed = ValidationSummary.model_validate(summary)
        return ValidationResult(
            tuple(e.to_error() for e in parsed.hard_validations),
            tuple(e.to_error() for e in parsed.soft_validations),
        )
    errors = [ErrorPayload.model_validate(e).to_error() for e in payload.get("errors") or ()]
    return ValidationResult(
        tuple(e for e in errors if not e.is_soft),
        tuple(e for e in errors if e.is_soft),
    )
