"""
Audit Models for Vendor Ledger

The ledger document only holds current state. Audit events record how it
got there: which vendor, tag, contract, payment or file changed, and any
cleanup step that could not finish.

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """One member per kind of ledger change."""
    VENDOR_CREATED = "vendor_created"
    VENDOR_UPDATED = "vendor_updated"
    VENDOR_DELETED = "vendor_deleted"

    TAG_CREATED = "tag_created"
    TAG_DELETED = "tag_deleted"

    CONTRACT_CREATED = "contract_created"
    CONTRACT_UPDATED = "contract_updated"
    CONTRACT_DELETED = "contract_deleted"

    PAYMENT_ADDED = "payment_added"
    PAYMENT_UPDATED = "payment_updated"
    PAYMENT_DELETED = "payment_deleted"

    FILE_ATTACHED = "file_attached"
    FILE_DELETED = "file_deleted"
    BINARY_CLEANUP_FAILED = "binary_cleanup_failed"

    @property
    def entity_type(self) -> str:
        """The entity family this event belongs to ("vendor", "file", ...)."""
        if self is AuditEventType.BINARY_CLEANUP_FAILED:
            return "file"
        return self.value.split("_", 1)[0]


class AuditSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """A single change (or failed cleanup) recorded against one entity."""

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    entity_type: Optional[str] = Field(
        default=None,
        description="'vendor', 'tag', 'contract', 'payment' or 'file'"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Ledger id (or stored filename) of the entity"
    )
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="Shared by the events of one multi-step action, such as an upload"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Flatten for structlog: ids as strings, enums as values."""
        return self.model_dump(mode="json")


class AuditEventBuilder:
    """
    Builds the events LedgerService and the upload flow emit.

    Usage:
        event = AuditEventBuilder.entity_changed(
            AuditEventType.VENDOR_CREATED, "vendor", vendor.id, "Vendor created: Acme"
        )
    """

    @staticmethod
    def entity_changed(
        event_type: AuditEventType,
        entity_type: str,
        entity_id: str,
        description: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=description,
            details=details or {},
        )

    @staticmethod
    def binary_cleanup_failed(
        filename: str,
        contract_id: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        """A stored binary outlived its record (or its failed upload)."""
        return AuditEvent(
            event_type=AuditEventType.BINARY_CLEANUP_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="file",
            entity_id=filename,
            correlation_id=correlation_id,
            description=f"Could not remove stored file: {filename}",
            error_message=error_message,
            details={"contract_id": contract_id},
        )
