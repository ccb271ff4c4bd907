"""
Typed errors raised by the ledger core.

The transport layer maps these to responses using ``status_code``.
Nothing here is retried automatically: a ValidationError is the caller's
fault, a CorruptDataError needs an operator.
"""

from typing import Optional

from vendor_ledger.models.ledger import ValidationIssue


class LedgerError(Exception):
    """Base exception for all ledger operations."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LedgerError):
    """Missing or malformed input."""

    status_code = 400

    def __init__(
        self,
        message: str,
        issues: Optional[list[ValidationIssue]] = None,
    ):
        super().__init__(message)
        self.issues = issues or []

    @classmethod
    def for_field(cls, field: str, message: str, issue_type: str = "invalid_value") -> "ValidationError":
        """Build an error carrying a single field issue."""
        return cls(
            message,
            issues=[
                ValidationIssue(
                    field=field,
                    issue_type=issue_type,
                    message=message,
                    severity="error",
                )
            ],
        )


class InvalidReferenceError(ValidationError):
    """An id in the request points at an entity that does not exist."""


class NotFoundError(LedgerError):
    """Entity not found in the document."""

    status_code = 404


class ConflictError(LedgerError):
    """Operation would break a referential-integrity or uniqueness rule."""

    status_code = 409


class StorageFailure(LedgerError):
    """Underlying persistence I/O failed."""


class CorruptDataError(StorageFailure):
    """Persisted document exists but cannot be parsed."""
