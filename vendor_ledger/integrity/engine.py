"""
Integrity & Derivation Engine

Pure functions over a loaded Document. Nothing here touches storage.

Two jobs:
1. Keep cross-references valid (vendor ids, tag ids)
2. Derive the figures callers see (paid total, balance, vendor name, tags)

DESIGN DECISION: Derived figures are recomputed on every read. Storing
paid_total/balance_owed on the contract would be a second source of
truth that drifts from the payments list.
"""

import math
from collections.abc import Mapping
from typing import Any, Iterable, Optional

from vendor_ledger.errors import InvalidReferenceError, ValidationError
from vendor_ledger.models.ledger import (
    UNKNOWN_VENDOR_NAME,
    Contract,
    ContractTotals,
    ContractView,
    Document,
    ExistingVendorRef,
    NewVendorSpec,
    Vendor,
    VendorInput,
    VendorReference,
    new_id,
)
from vendor_ledger.validation import parse_payload


def to_number(value: Any) -> float:
    """
    Read a stored amount as a float.

    Numbers and numeric strings parse; anything else (missing, junk,
    NaN, infinity) counts as 0.
    """
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return 0.0
    else:
        return 0.0
    return number if math.isfinite(number) else 0.0


# =============================================================================
# VENDOR REFERENCES
# =============================================================================

def parse_vendor_reference(payload: Mapping) -> VendorReference:
    """
    Build the vendor reference variant from a contract-create payload.

    ``vendorId`` wins when present: a request carrying an id never
    creates a vendor. Otherwise ``newVendor`` must carry a company name.
    """
    vendor_id = payload.get("vendorId", payload.get("vendor_id"))
    if vendor_id:
        return ExistingVendorRef(vendor_id=str(vendor_id))

    new_vendor = payload.get("newVendor", payload.get("new_vendor"))
    if isinstance(new_vendor, Mapping):
        company_name = new_vendor.get("companyName", new_vendor.get("company_name"))
        if isinstance(company_name, str) and company_name.strip():
            return parse_payload(NewVendorSpec, {**new_vendor, "kind": "new"})

    raise ValidationError.for_field(
        "vendorId",
        "Either an existing Vendor selection (vendorId) or a New Vendor Company Name is required.",
        issue_type="missing",
    )


def build_vendor(spec: VendorInput) -> Vendor:
    """Create a Vendor record from validated input, with every field set."""
    return Vendor(
        id=new_id(),
        company_name=spec.company_name,
        contact_name=spec.contact_name or "",
        phone=spec.phone or "",
        email=spec.email or "",
        address=spec.address or "",
    )


def resolve_vendor_reference(ref: VendorReference, doc: Document) -> str:
    """
    Turn a vendor reference into a vendor id.

    An existing reference must resolve. A new-vendor spec is appended
    to ``doc.vendors`` (the caller decides whether the document is saved).
    """
    if isinstance(ref, ExistingVendorRef):
        require_vendor(ref.vendor_id, doc)
        return ref.vendor_id

    vendor = build_vendor(ref)
    doc.vendors.append(vendor)
    return vendor.id


def require_vendor(vendor_id: str, doc: Document) -> Vendor:
    vendor = doc.find_vendor(vendor_id)
    if vendor is None:
        raise InvalidReferenceError.for_field(
            "vendorId",
            "Selected vendorId does not exist.",
            issue_type="invalid_reference",
        )
    return vendor


def contracts_for_vendor(vendor_id: str, doc: Document) -> list[Contract]:
    return [c for c in doc.contracts if c.vendor_id == vendor_id]


# =============================================================================
# TAG REFERENCES
# =============================================================================

def filter_valid_tag_ids(candidate_ids: Optional[Iterable[Any]], doc: Document) -> list[str]:
    """
    Keep only ids of existing tags, in first-seen order, without duplicates.

    Unknown ids are dropped silently.
    """
    known = {tag.id for tag in doc.tags}
    valid: list[str] = []
    for tag_id in candidate_ids or []:
        if isinstance(tag_id, str) and tag_id in known and tag_id not in valid:
            valid.append(tag_id)
    return valid


def strip_tag_from_contracts(tag_id: str, doc: Document) -> int:
    """Remove a tag id from every contract. Returns how many contracts changed."""
    changed = 0
    for contract in doc.contracts:
        if tag_id in contract.tag_ids:
            contract.tag_ids = [t for t in contract.tag_ids if t != tag_id]
            changed += 1
    return changed


# =============================================================================
# DERIVATION
# =============================================================================

def compute_contract_totals(contract: Contract) -> ContractTotals:
    """paid_total = sum of payment amounts; balance_owed = amount - paid_total."""
    paid_total = sum(to_number(payment.amount) for payment in contract.payments)
    contract_amount = to_number(contract.contract_amount)
    return ContractTotals(
        paid_total=paid_total,
        balance_owed=contract_amount - paid_total,
    )


def populate_contract(contract: Contract, doc: Document) -> ContractView:
    """
    Project a stored contract into its read view.

    The stored contract is left untouched; the view is a copy.
    """
    totals = compute_contract_totals(contract)
    vendor = doc.find_vendor(contract.vendor_id)
    tags_by_id = {tag.id: tag for tag in doc.tags}

    return ContractView.model_validate({
        **contract.model_dump(),
        "paid_total": totals.paid_total,
        "balance_owed": totals.balance_owed,
        "vendor_name": (vendor.company_name or "") if vendor else UNKNOWN_VENDOR_NAME,
        "tags": [
            tags_by_id[tag_id].model_copy()
            for tag_id in contract.tag_ids
            if tag_id in tags_by_id
        ],
    })
