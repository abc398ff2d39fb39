from __future__ import annotations  # Schema validation with field-level diagnostics

from dataclasses import dataclass, field
from typing import Any, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .errors import FieldError, SchemaError

T = TypeVar("T", bound=BaseModel)


@dataclass
class ValidationReport(Generic[T]):  # Outcome of validating one agent payload
    ok: bool
    value: Optional[T] = None
    errors: List[FieldError] = field(default_factory=list)


def validate_payload(schema: Type[T], payload: Any) -> ValidationReport[T]:  # Check parsed JSON or raw text against schema
    try:
        if isinstance(payload, (str, bytes)):
            value = schema.model_validate_json(payload)
        else:
            value = schema.model_validate(payload)
    except ValidationError as exc:
        return ValidationReport(ok=False, errors=field_errors(exc))
    return ValidationReport(ok=True, value=value)


def require_valid(schema: Type[T], payload: Any, *, label: str) -> T:  # Validate or raise SchemaError
    report = validate_payload(schema, payload)
    if not report.ok or report.value is None:
        raise SchemaError(f"{label} validation failed", report.errors)
    return report.value


def field_errors(exc: ValidationError) -> List[FieldError]:  # Flatten pydantic errors into diagnostics
    result: List[FieldError] = []
    for item in exc.errors():
        loc = ".".join(str(part) for part in item.get("loc", ())) or "$"
        result.append(FieldError(loc=loc, message=str(item.get("msg", "invalid value"))))
    return result


__all__ = ["ValidationReport", "field_errors", "require_valid", "validate_payload"]
