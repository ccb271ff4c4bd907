"""
Ledger Operations

Every create/update/delete on vendors, tags, contracts, payments and file
records goes through LedgerService. Each mutation is one transaction:

1. Validate the request payload (before the document is loaded)
2. Load the whole document
3. Check references against the loaded document
4. Apply the change
5. Save the whole document
6. Return the result (contracts come back populated)

Any error raised in steps 1-3 leaves the stored document exactly as it
was, because nothing is saved until step 5.

DESIGN DECISION: Mutations are serialized through one asyncio.Lock per
service. Two concurrent requests in the same process would otherwise both
load, both mutate, and the later save would silently discard the earlier
change. The document is still reloaded for every operation; there is no
long-lived cache. Several processes writing the same file remain unsafe.
"""

import asyncio
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager, nullcontext
from typing import Any, Optional

import structlog

from vendor_ledger.audit import AuditLogger
from vendor_ledger.config import get_settings
from vendor_ledger.errors import ConflictError, NotFoundError, StorageFailure
from vendor_ledger.integrity import (
    build_vendor,
    contracts_for_vendor,
    filter_valid_tag_ids,
    parse_vendor_reference,
    populate_contract,
    require_vendor,
    resolve_vendor_reference,
    strip_tag_from_contracts,
)
from vendor_ledger.models.audit import AuditEventType
from vendor_ledger.models.ledger import (
    Contract,
    ContractDeletionResult,
    ContractInput,
    ContractUpdateInput,
    ContractView,
    CreatedContract,
    Document,
    FileDeletionResult,
    FileRecord,
    FileRecordInput,
    NewVendorSpec,
    Payment,
    PaymentInput,
    Tag,
    TagInput,
    Vendor,
    VendorInput,
    new_id,
)
from vendor_ledger.services.storage import BinaryStorageInterface, DocumentStorageInterface
from vendor_ledger.validation import parse_payload


logger = structlog.get_logger(__name__)


class LedgerService:
    """
    Mutation operations and reads over the ledger document.

    Reads do not take the write lock; they always see the last saved
    document.
    """

    def __init__(
        self,
        storage: DocumentStorageInterface,
        binary_storage: Optional[BinaryStorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        default_tag_color: Optional[str] = None,
        serialize_writes: Optional[bool] = None,
    ):
        settings = get_settings().app
        self._storage = storage
        self._binaries = binary_storage
        self._audit_logger = audit_logger
        self._default_tag_color = default_tag_color or settings.default_tag_color

        if serialize_writes is None:
            serialize_writes = settings.serialize_writes
        self._write_lock = asyncio.Lock() if serialize_writes else nullcontext()

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[Document]:
        """Hold the write lock and hand out a freshly loaded document."""
        async with self._write_lock:
            yield await self._storage.load()

    async def _audit(
        self,
        event_type: AuditEventType,
        entity_type: str,
        entity_id: str,
        description: str,
        details: Optional[dict] = None,
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_change(
                event_type=event_type,
                entity_type=entity_type,
                entity_id=entity_id,
                description=description,
                details=details,
            )

    # =========================================================================
    # VENDORS
    # =========================================================================

    async def list_vendors(self, search: Optional[str] = None) -> list[Vendor]:
        """
        List vendors, optionally filtered by a case-insensitive search
        over company name, contact name and email.
        """
        doc = await self._storage.load()
        term = (search or "").strip().lower()
        if not term:
            return doc.vendors

        return [
            vendor for vendor in doc.vendors
            if any(
                term in (value or "").lower()
                for value in (vendor.company_name, vendor.contact_name, vendor.email)
            )
        ]

    async def get_vendor(self, vendor_id: str) -> Vendor:
        doc = await self._storage.load()
        vendor = doc.find_vendor(vendor_id)
        if vendor is None:
            raise NotFoundError("Vendor not found.")
        return vendor

    async def create_vendor(self, payload: Mapping[str, Any]) -> Vendor:
        data = parse_payload(VendorInput, payload)

        async with self._transaction() as doc:
            vendor = build_vendor(data)
            doc.vendors.append(vendor)
            await self._storage.save(doc)

        await self._audit(
            AuditEventType.VENDOR_CREATED, "vendor", vendor.id,
            f"Vendor created: {vendor.company_name}",
        )
        return vendor

    async def update_vendor(self, vendor_id: str, payload: Mapping[str, Any]) -> Vendor:
        """Update a vendor. Optional fields left out keep their current value."""
        data = parse_payload(VendorInput, payload)

        async with self._transaction() as doc:
            vendor = doc.find_vendor(vendor_id)
            if vendor is None:
                raise NotFoundError("Vendor not found.")

            vendor.company_name = data.company_name
            for field in ("contact_name", "phone", "email", "address"):
                value = getattr(data, field)
                if value is not None:
                    setattr(vendor, field, value)
            await self._storage.save(doc)

        await self._audit(
            AuditEventType.VENDOR_UPDATED, "vendor", vendor.id,
            f"Vendor updated: {vendor.company_name}",
        )
        return vendor

    async def delete_vendor(self, vendor_id: str) -> None:
        """Delete a vendor that no contract references."""
        async with self._transaction() as doc:
            in_use = contracts_for_vendor(vendor_id, doc)
            if in_use:
                raise ConflictError(
                    "Cannot delete vendor: It is associated with one or more contracts. "
                    "Please reassign or delete those contracts first."
                )
            vendor = doc.find_vendor(vendor_id)
            if vendor is None:
                raise NotFoundError("Vendor not found.")

            doc.vendors = [v for v in doc.vendors if v.id != vendor_id]
            await self._storage.save(doc)

        await self._audit(
            AuditEventType.VENDOR_DELETED, "vendor", vendor_id,
            f"Vendor deleted: {vendor.company_name}",
        )

    # =========================================================================
    # TAGS
    # =========================================================================

    async def list_tags(self) -> list[Tag]:
        doc = await self._storage.load()
        return doc.tags

    async def create_tag(self, payload: Mapping[str, Any]) -> Tag:
        """Create a tag. Names are unique regardless of case."""
        data = parse_payload(TagInput, payload)
        wanted = data.name.lower()

        async with self._transaction() as doc:
            if any((tag.name or "").strip().lower() == wanted for tag in doc.tags):
                raise ConflictError(f'A tag named "{data.name}" already exists.')

            tag = Tag(
                id=new_id(),
                name=data.name,
                color=data.color or self._default_tag_color,
            )
            doc.tags.append(tag)
            await self._storage.save(doc)

        await self._audit(
            AuditEventType.TAG_CREATED, "tag", tag.id,
            f"Tag created: {tag.name}",
        )
        return tag

    async def delete_tag(self, tag_id: str) -> None:
        """Delete a tag and remove it from every contract."""
        async with self._transaction() as doc:
            tag = doc.find_tag(tag_id)
            if tag is None:
                raise NotFoundError("Tag not found.")

            doc.tags = [t for t in doc.tags if t.id != tag_id]
            changed = strip_tag_from_contracts(tag_id, doc)
            await self._storage.save(doc)

        await self._audit(
            AuditEventType.TAG_DELETED, "tag", tag_id,
            f"Tag deleted: {tag.name}",
            details={"contracts_updated": changed},
        )

    # =========================================================================
    # CONTRACTS
    # =========================================================================

    async def list_contracts(self) -> list[ContractView]:
        doc = await self._storage.load()
        return [populate_contract(contract, doc) for contract in doc.contracts]

    async def get_contract(self, contract_id: str) -> ContractView:
        doc = await self._storage.load()
        return populate_contract(self._require_contract(contract_id, doc), doc)

    async def create_contract(self, payload: Mapping[str, Any]) -> CreatedContract:
        """
        Create a contract for an existing vendor (``vendorId``) or a vendor
        created inline (``newVendor``).

        Unknown tag ids are dropped; a ``tagIds`` value that is not a list
        is treated as no tags.
        """
        data = parse_payload(ContractInput, payload)
        vendor_ref = parse_vendor_reference(payload)

        async with self._transaction() as doc:
            vendor_id = resolve_vendor_reference(vendor_ref, doc)
            created_vendor = doc.find_vendor(vendor_id) if isinstance(vendor_ref, NewVendorSpec) else None

            candidate_tags = data.tag_ids if isinstance(data.tag_ids, list) else []
            contract = Contract(
                id=new_id(),
                vendor_id=vendor_id,
                description=data.description,
                contract_amount=data.contract_amount,
                estimated_completion=data.estimated_completion or None,
                tag_ids=filter_valid_tag_ids(candidate_tags, doc),
                payments=[],
                files=[],
            )
            doc.contracts.append(contract)
            await self._storage.save(doc)

        if created_vendor is not None:
            logger.info("vendor_created_inline", vendor_id=created_vendor.id)
            await self._audit(
                AuditEventType.VENDOR_CREATED, "vendor", created_vendor.id,
                f"Vendor created inline: {created_vendor.company_name}",
                details={"contract_id": contract.id},
            )
        await self._audit(
            AuditEventType.CONTRACT_CREATED, "contract", contract.id,
            f"Contract created: {contract.description}",
            details={"vendor_id": vendor_id, "contract_amount": data.contract_amount},
        )

        view = populate_contract(contract, doc)
        return CreatedContract.model_validate({
            **view.model_dump(),
            "created_vendor": created_vendor,
        })

    async def update_contract(self, contract_id: str, payload: Mapping[str, Any]) -> ContractView:
        """
        Update a contract in place.

        The vendor must already exist. ``tagIds``, when sent, replaces the
        stored list (after dropping unknown ids); when left out, the
        current tags stay.
        """
        data = parse_payload(ContractUpdateInput, payload)

        async with self._transaction() as doc:
            require_vendor(data.vendor_id, doc)
            contract = self._require_contract(contract_id, doc)

            contract.description = data.description
            contract.contract_amount = data.contract_amount
            contract.estimated_completion = data.estimated_completion or None
            contract.vendor_id = data.vendor_id
            if "tag_ids" in data.model_fields_set:
                contract.tag_ids = filter_valid_tag_ids(data.tag_ids, doc)
            await self._storage.save(doc)

        await self._audit(
            AuditEventType.CONTRACT_UPDATED, "contract", contract.id,
            f"Contract updated: {contract.description}",
        )
        return populate_contract(contract, doc)

    async def delete_contract(self, contract_id: str) -> ContractDeletionResult:
        """
        Delete a contract and, best-effort, its stored files.

        Files are removed first. A file that is already gone is fine; one
        that cannot be removed is reported in the result and the contract
        is deleted anyway.
        """
        async with self._transaction() as doc:
            contract = self._require_contract(contract_id, doc)
            result = ContractDeletionResult(contract_id=contract_id)

            for record in contract.files:
                if not record.filename:
                    continue
                try:
                    removed = await self._delete_binary(record.filename, contract_id)
                except StorageFailure as e:
                    result.failed_files.append(record.filename)
                    result.warnings.append(str(e))
                    continue
                if removed:
                    result.files_deleted += 1

            doc.contracts = [c for c in doc.contracts if c.id != contract_id]
            await self._storage.save(doc)

        await self._audit(
            AuditEventType.CONTRACT_DELETED, "contract", contract_id,
            f"Contract deleted: {contract.description}",
            details={
                "files_deleted": result.files_deleted,
                "failed_files": result.failed_files,
            },
        )
        return result

    # =========================================================================
    # PAYMENTS
    # =========================================================================

    async def add_payment(self, contract_id: str, payload: Mapping[str, Any]) -> Payment:
        data = parse_payload(PaymentInput, payload)

        async with self._transaction() as doc:
            contract = self._require_contract(contract_id, doc)
            payment = Payment(
                id=new_id(),
                date=data.date,
                amount=data.amount,
                method=data.method or "",
                notes=data.notes or "",
            )
            contract.payments = [*contract.payments, payment]
            await self._storage.save(doc)

        await self._audit(
            AuditEventType.PAYMENT_ADDED, "payment", payment.id,
            f"Payment of {data.amount:.2f} added",
            details={"contract_id": contract_id},
        )
        return payment

    async def update_payment(
        self,
        contract_id: str,
        payment_id: str,
        payload: Mapping[str, Any],
    ) -> Payment:
        """Update a payment. Method and notes keep their value when left out."""
        data = parse_payload(PaymentInput, payload)

        async with self._transaction() as doc:
            contract = self._require_contract(contract_id, doc)
            payment = contract.find_payment(payment_id)
            if payment is None:
                raise NotFoundError("Payment not found within this contract.")

            payment.date = data.date
            payment.amount = data.amount
            if data.method is not None:
                payment.method = data.method
            if data.notes is not None:
                payment.notes = data.notes
            await self._storage.save(doc)

        await self._audit(
            AuditEventType.PAYMENT_UPDATED, "payment", payment_id,
            f"Payment updated to {data.amount:.2f}",
            details={"contract_id": contract_id},
        )
        return payment

    async def delete_payment(self, contract_id: str, payment_id: str) -> None:
        async with self._transaction() as doc:
            contract = self._require_contract(contract_id, doc)
            if contract.find_payment(payment_id) is None:
                raise NotFoundError("Payment not found within this contract.")

            contract.payments = [p for p in contract.payments if p.id != payment_id]
            await self._storage.save(doc)

        await self._audit(
            AuditEventType.PAYMENT_DELETED, "payment", payment_id,
            "Payment deleted",
            details={"contract_id": contract_id},
        )

    # =========================================================================
    # FILE RECORDS
    # =========================================================================

    async def add_file_record(self, contract_id: str, payload: Mapping[str, Any]) -> FileRecord:
        """
        Attach an already stored binary to a contract.

        If this raises, the binary is not recorded anywhere; removing it
        is the caller's job (see ContractFileUploadFlow).
        """
        data = parse_payload(FileRecordInput, payload)

        async with self._transaction() as doc:
            contract = self._require_contract(contract_id, doc)
            record = FileRecord(
                id=new_id(),
                filename=data.filename,
                original_filename=data.original_filename,
            )
            contract.files = [*contract.files, record]
            await self._storage.save(doc)

        await self._audit(
            AuditEventType.FILE_ATTACHED, "file", record.id,
            f"File attached: {record.original_filename}",
            details={"contract_id": contract_id, "filename": record.filename},
        )
        return record

    async def delete_file_record(self, contract_id: str, file_id: str) -> FileDeletionResult:
        """
        Delete a file record, then (best-effort) the stored binary.

        The record is the authoritative state and is saved first. If the
        binary cannot be removed the record stays deleted and the result
        carries a warning.
        """
        async with self._transaction() as doc:
            contract = self._require_contract(contract_id, doc)
            record = contract.find_file(file_id)
            if record is None:
                raise NotFoundError("File record not found for this contract.")

            contract.files = [f for f in contract.files if f.id != file_id]
            await self._storage.save(doc)

        await self._audit(
            AuditEventType.FILE_DELETED, "file", file_id,
            f"File deleted: {record.original_filename}",
            details={"contract_id": contract_id, "filename": record.filename},
        )

        if not record.filename:
            logger.warning("file_record_without_filename", file_id=file_id)
            return FileDeletionResult(file_id=file_id, binary_deleted=False)

        try:
            removed = await self._delete_binary(record.filename, contract_id)
        except StorageFailure:
            return FileDeletionResult(
                file_id=file_id,
                binary_deleted=False,
                warning="File record deleted, but failed to delete file from disk.",
            )

        if not removed:
            return FileDeletionResult(
                file_id=file_id,
                binary_deleted=False,
                warning="File record deleted, but the file was not found on disk (may already be gone).",
            )
        return FileDeletionResult(file_id=file_id, binary_deleted=True)

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _require_contract(self, contract_id: str, doc: Document) -> Contract:
        contract = doc.find_contract(contract_id)
        if contract is None:
            raise NotFoundError("Contract not found.")
        return contract

    async def _delete_binary(self, filename: str, contract_id: str) -> bool:
        """
        Remove a stored binary.

        Returns False when there is nothing to remove. Failures are logged
        and audited, then re-raised as StorageFailure for the caller to
        degrade into a warning.
        """
        if self._binaries is None:
            logger.warning("binary_storage_not_configured", filename=filename)
            return False

        try:
            removed = await self._binaries.delete(filename)
        except StorageFailure as e:
            logger.warning(
                "binary_delete_failed",
                filename=filename,
                contract_id=contract_id,
                error=str(e),
            )
            if self._audit_logger:
                await self._audit_logger.log_binary_cleanup_failed(
                    filename=filename,
                    contract_id=contract_id,
                    error_message=str(e),
                )
            raise

        if not removed:
            logger.info("binary_already_missing", filename=filename, contract_id=contract_id)
        return removed
