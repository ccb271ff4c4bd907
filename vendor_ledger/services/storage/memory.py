"""
In-Memory Storage Implementations

Used by tests and by ``create_ledger_components(use_storage=False)``.
The document is kept as serialized JSON text, so every ``load`` hands out
a fresh copy just like the file backend does.
"""

import json
from pathlib import Path
from typing import Optional

from vendor_ledger.errors import StorageFailure
from vendor_ledger.models.audit import AuditEvent
from vendor_ledger.models.ledger import Document, new_id, utc_timestamp
from vendor_ledger.services.storage.interface import (
    AuditStorageInterface,
    BinaryStorageInterface,
    DocumentStorageInterface,
)
from vendor_ledger.services.storage.json_file import parse_document


class InMemoryDocumentStorage(DocumentStorageInterface):
    """Document storage backed by a string."""

    def __init__(self, raw: Optional[str] = None):
        self.raw = raw
        self.save_count = 0

    async def load(self) -> Document:
        if self.raw is None:
            return Document()
        return parse_document(self.raw, "<memory>")

    async def save(self, document: Document) -> None:
        document.last_updated = utc_timestamp()
        self.raw = json.dumps(document.to_storage_dict())
        self.save_count += 1


class InMemoryBinaryStorage(BinaryStorageInterface):
    """Binary storage backed by a dict; names follow the upload convention."""

    def __init__(self):
        self.blobs: dict[str, bytes] = {}
        self.failing: set[str] = set()

    async def store(self, content: bytes, original_filename: str) -> str:
        filename = f"{new_id()}_{Path(original_filename).name}"
        self.blobs[filename] = content
        return filename

    async def delete(self, filename: str) -> bool:
        if filename in self.failing:
            raise StorageFailure(f"Could not delete {filename}")
        return self.blobs.pop(filename, None) is not None

    def path_for(self, filename: str) -> Path:
        return Path(filename)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        return [
            e for e in self.events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self.events))[:limit]
