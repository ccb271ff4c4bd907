"""Services package."""

from vendor_ledger.services.storage import (
    AuditStorageInterface,
    BinaryStorageInterface,
    CorruptDataError,
    DocumentStorageInterface,
    InMemoryAuditStorage,
    InMemoryBinaryStorage,
    InMemoryDocumentStorage,
    JsonFileDocumentStorage,
    LocalUploadStorage,
    StorageFailure,
)

__all__ = [
    "AuditStorageInterface",
    "BinaryStorageInterface",
    "CorruptDataError",
    "DocumentStorageInterface",
    "InMemoryAuditStorage",
    "InMemoryBinaryStorage",
    "InMemoryDocumentStorage",
    "JsonFileDocumentStorage",
    "LocalUploadStorage",
    "StorageFailure",
]
