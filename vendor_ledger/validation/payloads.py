"""
Request Payload Validation

DESIGN DECISION: Incoming requests are validated against pydantic request
models before the document is even loaded. Pydantic errors never leak to
callers; they are translated into our own ValidationError carrying one
ValidationIssue per failing field, so the transport layer only has to
know about vendor_ledger.errors.

IMPORTANT: Validation NEVER silently fixes issues beyond trimming
whitespace. Bad input is reported, not coerced.
"""

from collections.abc import Mapping
from typing import Any, TypeVar

import pydantic

from vendor_ledger.errors import ValidationError
from vendor_ledger.models.ledger import ValidationIssue


ModelT = TypeVar("ModelT", bound=pydantic.BaseModel)

_ISSUE_TYPES = {
    "missing": "missing",
    "string_too_short": "missing",
    "greater_than": "out_of_range",
    "greater_than_equal": "out_of_range",
    "finite_number": "invalid_value",
    "float_parsing": "invalid_format",
    "float_type": "invalid_format",
    "list_type": "invalid_format",
    "string_type": "invalid_format",
}


def issues_from_pydantic(error: pydantic.ValidationError) -> list[ValidationIssue]:
    """Convert pydantic error details into ValidationIssues."""
    issues = []
    for detail in error.errors():
        field = ".".join(str(part) for part in detail["loc"]) or "payload"
        issues.append(ValidationIssue(
            field=field,
            issue_type=_ISSUE_TYPES.get(detail["type"], "invalid_value"),
            message=detail["msg"],
            severity="error",
        ))
    return issues


def parse_payload(model_cls: type[ModelT], payload: Any) -> ModelT:
    """
    Validate a request payload against a request model.

    Raises:
        ValidationError: The payload is not a mapping or fails validation.
    """
    if not isinstance(payload, Mapping):
        raise ValidationError.for_field(
            "payload",
            "Request body must be an object.",
            issue_type="invalid_format",
        )

    try:
        return model_cls.model_validate(dict(payload))
    except pydantic.ValidationError as e:
        issues = issues_from_pydantic(e)
        summary = "; ".join(f"{issue.field}: {issue.message}" for issue in issues)
        raise ValidationError(f"Invalid request: {summary}", issues=issues) from e
