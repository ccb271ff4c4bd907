"""
Abstract Storage Interface

DESIGN DECISION: We define abstract interfaces for storage operations.
This allows us to:
1. Swap the JSON file for a real database later
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

There are two independent resources: the ledger document and the uploaded
binaries. There is no two-phase commit between them; callers treat binary
cleanup as best-effort.
"""

from abc import ABC, abstractmethod
from pathlib import Path

from vendor_ledger.errors import CorruptDataError, StorageFailure
from vendor_ledger.models.audit import AuditEvent
from vendor_ledger.models.ledger import Document


class DocumentStorageInterface(ABC):
    """
    Abstract interface for the ledger document.

    The whole document is read and written at once; there is no
    partial update.
    """

    @abstractmethod
    async def load(self) -> Document:
        """
        Load the current document.

        Returns:
            The stored document, or an empty one if nothing has been
            saved yet.

        Raises:
            CorruptDataError: A document exists but cannot be parsed.
            StorageFailure: The document could not be read.
        """
        pass

    @abstractmethod
    async def save(self, document: Document) -> None:
        """
        Persist the document, stamping ``last_updated``.

        A failed save must leave the previously saved document intact.

        Raises:
            StorageFailure: The document could not be written.
        """
        pass


class BinaryStorageInterface(ABC):
    """
    Abstract interface for uploaded contract files.

    The ledger never reads file bytes; it only records and removes
    the generated storage names.
    """

    @abstractmethod
    async def store(self, content: bytes, original_filename: str) -> str:
        """
        Store a binary.

        Returns:
            The generated storage-unique filename
        """
        pass

    @abstractmethod
    async def delete(self, filename: str) -> bool:
        """
        Delete a stored binary.

        Returns:
            True if removed, False if it was already gone

        Raises:
            StorageFailure: The binary exists but could not be removed.
        """
        pass

    @abstractmethod
    def path_for(self, filename: str) -> Path:
        """Location of a stored binary, for serving it."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity, in chronological order.
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


__all__ = [
    "AuditStorageInterface",
    "BinaryStorageInterface",
    "CorruptDataError",
    "DocumentStorageInterface",
    "StorageFailure",
]
