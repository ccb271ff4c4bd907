"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Currently implements a JSON file as the document backend, but designed to be swappable.
"""

from vendor_ledger.services.storage.interface import (
    AuditStorageInterface,
    BinaryStorageInterface,
    CorruptDataError,
    DocumentStorageInterface,
    StorageFailure,
)
from vendor_ledger.services.storage.json_file import (
    JsonFileDocumentStorage,
    parse_document,
)
from vendor_ledger.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryBinaryStorage,
    InMemoryDocumentStorage,
)
from vendor_ledger.services.storage.uploads import LocalUploadStorage

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "BinaryStorageInterface",
    "DocumentStorageInterface",
    # Exceptions
    "CorruptDataError",
    "StorageFailure",
    # JSON file implementation
    "JsonFileDocumentStorage",
    "parse_document",
    # Local uploads
    "LocalUploadStorage",
    # In-memory implementations
    "InMemoryAuditStorage",
    "InMemoryBinaryStorage",
    "InMemoryDocumentStorage",
]
