"""
Tests for LedgerService mutations and reads.

All tests run against in-memory storage. ``storage.raw`` and
``storage.save_count`` are used to prove that failed operations leave
the stored document untouched.
"""

import asyncio

import pytest

from vendor_ledger.audit import AuditLogger
from vendor_ledger.errors import (
    ConflictError,
    InvalidReferenceError,
    NotFoundError,
    ValidationError,
)
from vendor_ledger.models.audit import AuditEventType
from vendor_ledger.models.ledger import DEFAULT_TAG_COLOR
from vendor_ledger.operations import LedgerService
from vendor_ledger.services.storage import InMemoryDocumentStorage


CONTRACT = {"description": "Roof", "contractAmount": 1000}


@pytest.fixture
def acme(ledger, run_async):
    return run_async(ledger.create_vendor({"companyName": "Acme", "email": "office@acme.test"}))


@pytest.fixture
def contract(ledger, acme, run_async):
    return run_async(ledger.create_contract({**CONTRACT, "vendorId": acme.id}))


class TestVendors:
    """Tests for vendor operations."""

    def test_create_and_get(self, ledger, acme, run_async):
        """Test a created vendor is stored with every field."""
        vendor = run_async(ledger.get_vendor(acme.id))
        assert vendor.company_name == "Acme"
        assert vendor.phone == ""

    def test_create_requires_company_name(self, ledger, storage, run_async):
        """Test validation happens before anything is saved."""
        with pytest.raises(ValidationError):
            run_async(ledger.create_vendor({"companyName": "  "}))
        assert storage.save_count == 0

    def test_update_keeps_omitted_fields(self, ledger, acme, run_async):
        """Test omitted optional fields keep their stored value."""
        updated = run_async(ledger.update_vendor(acme.id, {"companyName": "Acme Roofing", "phone": "555"}))
        assert updated.company_name == "Acme Roofing"
        assert updated.phone == "555"
        assert updated.email == "office@acme.test"

    def test_update_missing_vendor(self, ledger, run_async):
        with pytest.raises(NotFoundError):
            run_async(ledger.update_vendor("nope", {"companyName": "X"}))

    def test_delete_vendor_in_use_is_conflict(self, ledger, storage, acme, contract, run_async):
        """Test a referenced vendor cannot be deleted and nothing changes."""
        before = storage.raw
        with pytest.raises(ConflictError):
            run_async(ledger.delete_vendor(acme.id))
        assert storage.raw == before

    def test_delete_vendor(self, ledger, acme, run_async):
        run_async(ledger.delete_vendor(acme.id))
        assert run_async(ledger.list_vendors()) == []

    def test_delete_missing_vendor(self, ledger, run_async):
        with pytest.raises(NotFoundError):
            run_async(ledger.delete_vendor("nope"))

    def test_search(self, ledger, acme, run_async):
        """Test search is case-insensitive over name, contact and email."""
        run_async(ledger.create_vendor({"companyName": "Bolt Co", "contactName": "Sam"}))
        assert [v.company_name for v in run_async(ledger.list_vendors("ACME"))] == ["Acme"]
        assert [v.company_name for v in run_async(ledger.list_vendors("sam"))] == ["Bolt Co"]
        assert [v.company_name for v in run_async(ledger.list_vendors("office@"))] == ["Acme"]
        assert len(run_async(ledger.list_vendors("  "))) == 2


class TestTags:
    """Tests for tag operations."""

    def test_default_color(self, ledger, run_async):
        tag = run_async(ledger.create_tag({"name": "Roofing"}))
        assert tag.color == DEFAULT_TAG_COLOR

    def test_duplicate_name_is_conflict(self, ledger, storage, run_async):
        """Test tag names are unique regardless of case."""
        run_async(ledger.create_tag({"name": "Roofing"}))
        with pytest.raises(ConflictError):
            run_async(ledger.create_tag({"name": " roofing "}))
        assert len(run_async(ledger.list_tags())) == 1

    def test_delete_cascades_to_contracts(self, ledger, acme, run_async):
        """Test deleting a tag removes it from every contract."""
        roofing = run_async(ledger.create_tag({"name": "Roofing"}))
        urgent = run_async(ledger.create_tag({"name": "Urgent"}))
        created = run_async(ledger.create_contract({
            **CONTRACT,
            "vendorId": acme.id,
            "tagIds": [roofing.id, urgent.id],
        }))

        run_async(ledger.delete_tag(roofing.id))

        view = run_async(ledger.get_contract(created.id))
        assert view.tag_ids == [urgent.id]
        assert [t.name for t in run_async(ledger.list_tags())] == ["Urgent"]

    def test_delete_missing_tag(self, ledger, run_async):
        with pytest.raises(NotFoundError):
            run_async(ledger.delete_tag("nope"))


class TestContracts:
    """Tests for contract operations."""

    def test_acme_scenario(self, ledger, acme, contract, run_async):
        """Test two payments produce the expected paid total and balance."""
        run_async(ledger.add_payment(contract.id, {"date": "2024-01-01", "amount": 250}))
        run_async(ledger.add_payment(contract.id, {"date": "2024-02-01", "amount": 150}))

        view = run_async(ledger.get_contract(contract.id))
        assert view.vendor_name == "Acme"
        assert view.paid_total == 400
        assert view.balance_owed == 600

    def test_inline_vendor_created_once(self, ledger, run_async):
        """Test newVendor creates exactly one vendor and links it."""
        created = run_async(ledger.create_contract({
            **CONTRACT,
            "newVendor": {"companyName": "Bolt Co", "phone": "555"},
        }))
        vendors = run_async(ledger.list_vendors())
        assert len(vendors) == 1
        assert created.vendor_id == vendors[0].id
        assert created.created_vendor.company_name == "Bolt Co"
        assert created.vendor_name == "Bolt Co"

    def test_vendor_id_suppresses_inline_vendor(self, ledger, acme, run_async):
        """Test vendorId wins and no vendor is created."""
        created = run_async(ledger.create_contract({
            **CONTRACT,
            "vendorId": acme.id,
            "newVendor": {"companyName": "Bolt Co"},
        }))
        assert created.vendor_id == acme.id
        assert created.created_vendor is None
        assert len(run_async(ledger.list_vendors())) == 1

    def test_missing_vendor_is_validation_error(self, ledger, storage, run_async):
        """Test a contract without any vendor is rejected before saving."""
        with pytest.raises(ValidationError):
            run_async(ledger.create_contract(CONTRACT))
        assert storage.save_count == 0

    def test_unknown_vendor_is_invalid_reference(self, ledger, storage, run_async):
        with pytest.raises(InvalidReferenceError):
            run_async(ledger.create_contract({**CONTRACT, "vendorId": "nope"}))
        assert storage.save_count == 0

    def test_negative_amount_rejected(self, ledger, acme, storage, run_async):
        before = storage.raw
        with pytest.raises(ValidationError):
            run_async(ledger.create_contract({**CONTRACT, "vendorId": acme.id, "contractAmount": -5}))
        assert storage.raw == before

    def test_missing_description_rejected(self, ledger, acme, run_async):
        with pytest.raises(ValidationError):
            run_async(ledger.create_contract({"contractAmount": 10, "vendorId": acme.id}))

    def test_unknown_tags_dropped(self, ledger, acme, run_async):
        """Test unknown tag ids are silently dropped."""
        tag = run_async(ledger.create_tag({"name": "Roofing"}))
        created = run_async(ledger.create_contract({
            **CONTRACT,
            "vendorId": acme.id,
            "tagIds": ["bogus", tag.id],
        }))
        assert created.tag_ids == [tag.id]
        assert [t.name for t in created.tags] == ["Roofing"]

    def test_non_list_tags_ignored_on_create(self, ledger, acme, run_async):
        created = run_async(ledger.create_contract({**CONTRACT, "vendorId": acme.id, "tagIds": "t1"}))
        assert created.tag_ids == []

    def test_new_contract_starts_empty(self, contract):
        """Test a new contract has no payments or files and owes its amount."""
        assert contract.payments == []
        assert contract.files == []
        assert contract.paid_total == 0
        assert contract.balance_owed == 1000

    def test_update_keeps_tags_when_absent(self, ledger, acme, run_async):
        """Test tags are preserved when tagIds is left out."""
        tag = run_async(ledger.create_tag({"name": "Roofing"}))
        created = run_async(ledger.create_contract({**CONTRACT, "vendorId": acme.id, "tagIds": [tag.id]}))

        updated = run_async(ledger.update_contract(created.id, {
            "description": "New roof",
            "contractAmount": 1200,
            "vendorId": acme.id,
        }))
        assert updated.tag_ids == [tag.id]
        assert updated.description == "New roof"
        assert updated.balance_owed == 1200

    def test_update_replaces_tags_when_present(self, ledger, acme, run_async):
        tag = run_async(ledger.create_tag({"name": "Roofing"}))
        created = run_async(ledger.create_contract({**CONTRACT, "vendorId": acme.id, "tagIds": [tag.id]}))

        updated = run_async(ledger.update_contract(created.id, {**CONTRACT, "vendorId": acme.id, "tagIds": []}))
        assert updated.tag_ids == []

    def test_update_rejects_non_list_tags(self, ledger, acme, contract, run_async):
        with pytest.raises(ValidationError):
            run_async(ledger.update_contract(contract.id, {**CONTRACT, "vendorId": acme.id, "tagIds": "x"}))

    def test_update_rejects_unknown_vendor(self, ledger, contract, storage, run_async):
        """Test reassigning to a missing vendor is rejected."""
        before = storage.raw
        with pytest.raises(InvalidReferenceError):
            run_async(ledger.update_contract(contract.id, {**CONTRACT, "vendorId": "nope"}))
        assert storage.raw == before

    def test_update_missing_contract(self, ledger, acme, run_async):
        with pytest.raises(NotFoundError):
            run_async(ledger.update_contract("nope", {**CONTRACT, "vendorId": acme.id}))

    def test_delete_contract_removes_files(self, ledger, binaries, contract, run_async):
        """Test a deleted contract takes its stored binaries with it."""
        filename = run_async(binaries.store(b"pdf", "plan.pdf"))
        run_async(ledger.add_file_record(contract.id, {"filename": filename, "originalFilename": "plan.pdf"}))

        result = run_async(ledger.delete_contract(contract.id))

        assert result.files_deleted == 1
        assert result.failed_files == []
        assert binaries.blobs == {}
        with pytest.raises(NotFoundError):
            run_async(ledger.get_contract(contract.id))

    def test_delete_contract_with_failing_file(self, ledger, binaries, audit_storage, contract, run_async):
        """Test an undeletable binary is reported and the contract still goes."""
        filename = run_async(binaries.store(b"pdf", "plan.pdf"))
        binaries.failing.add(filename)
        run_async(ledger.add_file_record(contract.id, {"filename": filename, "originalFilename": "plan.pdf"}))

        result = run_async(ledger.delete_contract(contract.id))

        assert result.files_deleted == 0
        assert result.failed_files == [filename]
        assert len(result.warnings) == 1
        assert run_async(ledger.list_contracts()) == []
        assert AuditEventType.BINARY_CLEANUP_FAILED in [e.event_type for e in audit_storage.events]

    def test_delete_missing_contract(self, ledger, run_async):
        with pytest.raises(NotFoundError):
            run_async(ledger.delete_contract("nope"))


class TestPayments:
    """Tests for payment operations."""

    def test_boolean_amount_rejected(self, ledger, contract, storage, run_async):
        """Test amount true is a validation error and nothing is saved."""
        before = storage.raw
        with pytest.raises(ValidationError):
            run_async(ledger.add_payment(contract.id, {"date": "2024-01-01", "amount": True}))
        assert storage.raw == before

    def test_zero_amount_rejected(self, ledger, contract, run_async):
        with pytest.raises(ValidationError):
            run_async(ledger.add_payment(contract.id, {"date": "2024-01-01", "amount": 0}))

    def test_missing_date_rejected(self, ledger, contract, run_async):
        with pytest.raises(ValidationError):
            run_async(ledger.add_payment(contract.id, {"amount": 10}))

    def test_payment_on_missing_contract(self, ledger, run_async):
        with pytest.raises(NotFoundError):
            run_async(ledger.add_payment("nope", {"date": "2024-01-01", "amount": 10}))

    def test_update_keeps_method_and_notes(self, ledger, contract, run_async):
        """Test omitted method and notes keep their stored value."""
        payment = run_async(ledger.add_payment(contract.id, {
            "date": "2024-01-01",
            "amount": 100,
            "method": "Check",
            "notes": "deposit",
        }))

        updated = run_async(ledger.update_payment(contract.id, payment.id, {"date": "2024-01-05", "amount": 120}))

        assert updated.amount == 120
        assert updated.method == "Check"
        assert updated.notes == "deposit"
        assert run_async(ledger.get_contract(contract.id)).paid_total == 120

    def test_update_missing_payment(self, ledger, contract, run_async):
        with pytest.raises(NotFoundError):
            run_async(ledger.update_payment(contract.id, "nope", {"date": "2024-01-01", "amount": 1}))

    def test_delete_payment(self, ledger, contract, run_async):
        payment = run_async(ledger.add_payment(contract.id, {"date": "2024-01-01", "amount": 100}))
        run_async(ledger.delete_payment(contract.id, payment.id))
        view = run_async(ledger.get_contract(contract.id))
        assert view.payments == []
        assert view.balance_owed == 1000

    def test_delete_missing_payment(self, ledger, contract, run_async):
        with pytest.raises(NotFoundError):
            run_async(ledger.delete_payment(contract.id, "nope"))


class TestFileRecords:
    """Tests for file record operations."""

    def attach(self, ledger, binaries, contract_id, run_async):
        filename = run_async(binaries.store(b"pdf", "plan.pdf"))
        record = run_async(ledger.add_file_record(contract_id, {
            "filename": filename,
            "originalFilename": "plan.pdf",
        }))
        return filename, record

    def test_add_file_record(self, ledger, binaries, contract, run_async):
        _, record = self.attach(ledger, binaries, contract.id, run_async)
        view = run_async(ledger.get_contract(contract.id))
        assert [f.id for f in view.files] == [record.id]
        assert view.files[0].original_filename == "plan.pdf"

    def test_delete_file_record(self, ledger, binaries, contract, run_async):
        """Test the record and the binary are both removed."""
        filename, record = self.attach(ledger, binaries, contract.id, run_async)

        result = run_async(ledger.delete_file_record(contract.id, record.id))

        assert result.binary_deleted is True
        assert result.warning is None
        assert filename not in binaries.blobs
        assert run_async(ledger.get_contract(contract.id)).files == []

    def test_delete_file_record_binary_already_gone(self, ledger, binaries, contract, run_async):
        filename, record = self.attach(ledger, binaries, contract.id, run_async)
        binaries.blobs.pop(filename)

        result = run_async(ledger.delete_file_record(contract.id, record.id))

        assert result.binary_deleted is False
        assert "not found on disk" in result.warning

    def test_delete_file_record_binary_failure(self, ledger, binaries, contract, run_async):
        """Test a failed binary delete still removes the record."""
        filename, record = self.attach(ledger, binaries, contract.id, run_async)
        binaries.failing.add(filename)

        result = run_async(ledger.delete_file_record(contract.id, record.id))

        assert result.binary_deleted is False
        assert result.warning == "File record deleted, but failed to delete file from disk."
        assert run_async(ledger.get_contract(contract.id)).files == []
        assert filename in binaries.blobs

    def test_delete_missing_file_record(self, ledger, contract, run_async):
        with pytest.raises(NotFoundError):
            run_async(ledger.delete_file_record(contract.id, "nope"))


class SlowDocumentStorage(InMemoryDocumentStorage):
    """Yields to the event loop mid-load so interleaving is possible."""

    async def load(self):
        doc = await super().load()
        await asyncio.sleep(0)
        return doc


class TestConcurrency:
    """Tests for write serialization."""

    def test_concurrent_payments_are_not_lost(self, run_async):
        """Test concurrent mutations each see the previous save."""
        storage = SlowDocumentStorage()
        ledger = LedgerService(storage=storage, serialize_writes=True)

        async def scenario():
            vendor = await ledger.create_vendor({"companyName": "Acme"})
            created = await ledger.create_contract({**CONTRACT, "vendorId": vendor.id})
            await asyncio.gather(*[
                ledger.add_payment(created.id, {"date": "2024-01-01", "amount": 10})
                for _ in range(5)
            ])
            return await ledger.get_contract(created.id)

        view = run_async(scenario())
        assert len(view.payments) == 5
        assert view.paid_total == 50


class TestAuditTrail:
    """Tests for audit events emitted by mutations."""

    def test_mutations_are_audited(self, ledger, audit_storage, run_async):
        """Test inline vendor creation and the contract are both recorded."""
        created = run_async(ledger.create_contract({**CONTRACT, "newVendor": {"companyName": "Bolt Co"}}))

        events = [(e.event_type, e.entity_id) for e in audit_storage.events]
        assert (AuditEventType.VENDOR_CREATED, created.vendor_id) in events
        assert (AuditEventType.CONTRACT_CREATED, created.id) in events

    def test_failed_mutation_is_not_audited(self, ledger, audit_storage, run_async):
        with pytest.raises(ValidationError):
            run_async(ledger.create_vendor({}))
        assert audit_storage.events == []

    def test_service_with_local_only_audit(self, run_async):
        """Test the service works with local-only audit and no binary store."""
        ledger = LedgerService(storage=InMemoryDocumentStorage(), audit_logger=AuditLogger())
        vendor = run_async(ledger.create_vendor({"companyName": "Acme"}))
        assert vendor.company_name == "Acme"

    def test_history_for_one_entity(self, ledger, run_async, audit_storage):
        """Test the audit history of a vendor lists its changes in order."""
        audit = AuditLogger(audit_storage)
        vendor = run_async(ledger.create_vendor({"companyName": "Acme"}))
        run_async(ledger.update_vendor(vendor.id, {"companyName": "Acme Roofing"}))

        history = run_async(audit.history("vendor", vendor.id))

        assert [e.event_type for e in history] == [
            AuditEventType.VENDOR_CREATED,
            AuditEventType.VENDOR_UPDATED,
        ]
        assert run_async(audit.recent(1))[0].event_type == AuditEventType.VENDOR_UPDATED

    def test_history_without_store(self, run_async):
        assert run_async(AuditLogger().history("vendor", "v1")) == []
