"""
Main Orchestrator for Vendor Ledger

This module ties together all the components and defines the flows that
span more than one resource:
1. Component wiring (storage, uploads, audit, service, reports)
2. File upload (store binary → attach record → clean up on failure)

DESIGN DECISION: The ledger document and uploaded binaries are separate
resources with no two-phase commit. The upload flow owns the cleanup:
if the binary is stored but the record cannot be attached, the binary is
removed again so it does not become an orphan.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from uuid import UUID

import structlog

from vendor_ledger.audit import AuditLogger, create_correlation_id
from vendor_ledger.errors import StorageFailure
from vendor_ledger.models.ledger import FileRecord
from vendor_ledger.operations import LedgerService
from vendor_ledger.reports import ReportAggregator
from vendor_ledger.services.storage import (
    BinaryStorageInterface,
    DocumentStorageInterface,
    InMemoryAuditStorage,
    InMemoryBinaryStorage,
    InMemoryDocumentStorage,
    JsonFileDocumentStorage,
    LocalUploadStorage,
)


logger = structlog.get_logger(__name__)


class ContractFileUploadFlow:
    """
    Orchestrates attaching an uploaded file to a contract.

    Flow:
    1. Store → binary storage generates a unique name
    2. Attach → ledger records {filename, originalFilename} on the contract
    3. Cleanup → if attaching failed, delete the stored binary and re-raise
    """

    def __init__(
        self,
        ledger: LedgerService,
        binary_storage: BinaryStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._ledger = ledger
        self._binaries = binary_storage
        self._audit_logger = audit_logger

    async def upload(
        self,
        contract_id: str,
        content: bytes,
        original_filename: str,
        correlation_id: Optional[UUID] = None,
    ) -> FileRecord:
        """
        Store a file and attach it to a contract.

        Returns:
            The new FileRecord

        Raises whatever the store or attach step raised (ValidationError,
        NotFoundError, StorageFailure); no binary is left behind.
        """
        correlation_id = correlation_id or create_correlation_id()

        filename = await self._binaries.store(content, original_filename)

        try:
            return await self._ledger.add_file_record(
                contract_id,
                {"filename": filename, "originalFilename": Path(original_filename).name},
            )
        except Exception:
            await self._remove_orphan(filename, contract_id, correlation_id)
            raise

    async def _remove_orphan(
        self,
        filename: str,
        contract_id: str,
        correlation_id: UUID,
    ) -> None:
        try:
            await self._binaries.delete(filename)
            logger.info("orphan_upload_removed", filename=filename, contract_id=contract_id)
        except StorageFailure as e:
            logger.error("orphan_upload_cleanup_failed", filename=filename, error=str(e))
            if self._audit_logger:
                await self._audit_logger.log_binary_cleanup_failed(
                    filename=filename,
                    contract_id=contract_id,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )


@dataclass
class LedgerComponents:
    """Everything a transport layer needs, wired together."""

    ledger: LedgerService
    reports: ReportAggregator
    uploads: ContractFileUploadFlow
    document_storage: DocumentStorageInterface
    binary_storage: BinaryStorageInterface
    audit_logger: AuditLogger


def create_ledger_components(
    use_storage: bool = True,
) -> LedgerComponents:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to use the configured JSON file and upload
                    folder. Set to False for an in-memory ledger
                    (tests, demos).
    """
    if use_storage:
        document_storage: DocumentStorageInterface = JsonFileDocumentStorage()
        binary_storage: BinaryStorageInterface = LocalUploadStorage()
        audit_logger = AuditLogger()  # Local-only logging
    else:
        document_storage = InMemoryDocumentStorage()
        binary_storage = InMemoryBinaryStorage()
        audit_logger = AuditLogger(InMemoryAuditStorage())

    ledger = LedgerService(
        storage=document_storage,
        binary_storage=binary_storage,
        audit_logger=audit_logger,
    )

    return LedgerComponents(
        ledger=ledger,
        reports=ReportAggregator(document_storage),
        uploads=ContractFileUploadFlow(ledger, binary_storage, audit_logger),
        document_storage=document_storage,
        binary_storage=binary_storage,
        audit_logger=audit_logger,
    )
