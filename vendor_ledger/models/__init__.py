"""
Data Models Package

This package contains all Pydantic models used in Vendor Ledger.
Everything read from or written to the ledger document conforms to these schemas.
"""

from vendor_ledger.models.ledger import (
    DEFAULT_TAG_COLOR,
    PAYMENT_METHODS,
    UNKNOWN_VENDOR_NAME,
    UNTAGGED_LABEL,
    Contract,
    ContractDeletionResult,
    ContractInput,
    ContractTotals,
    ContractUpdateInput,
    ContractView,
    CreatedContract,
    Document,
    ExistingVendorRef,
    FileDeletionResult,
    FileRecord,
    FileRecordInput,
    NewVendorSpec,
    Payment,
    PaymentInput,
    SpendSummary,
    Tag,
    TagInput,
    TagSpendReport,
    TagSpendRow,
    ValidationIssue,
    Vendor,
    VendorInput,
    VendorReference,
    VendorSpendReport,
    VendorSpendRow,
    new_id,
    utc_timestamp,
)
from vendor_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Constants
    "DEFAULT_TAG_COLOR",
    "PAYMENT_METHODS",
    "UNKNOWN_VENDOR_NAME",
    "UNTAGGED_LABEL",
    # Stored entities
    "Contract",
    "Document",
    "FileRecord",
    "Payment",
    "Tag",
    "Vendor",
    # Views and results
    "ContractDeletionResult",
    "ContractTotals",
    "ContractView",
    "CreatedContract",
    "FileDeletionResult",
    # Requests
    "ContractInput",
    "ContractUpdateInput",
    "ExistingVendorRef",
    "FileRecordInput",
    "NewVendorSpec",
    "PaymentInput",
    "TagInput",
    "VendorInput",
    "VendorReference",
    "ValidationIssue",
    # Reports
    "SpendSummary",
    "TagSpendReport",
    "TagSpendRow",
    "VendorSpendReport",
    "VendorSpendRow",
    # Helpers
    "new_id",
    "utc_timestamp",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
