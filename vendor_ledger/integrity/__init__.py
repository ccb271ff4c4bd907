"""Integrity and derivation package."""

from vendor_ledger.integrity.engine import (
    build_vendor,
    compute_contract_totals,
    contracts_for_vendor,
    filter_valid_tag_ids,
    parse_vendor_reference,
    populate_contract,
    require_vendor,
    resolve_vendor_reference,
    strip_tag_from_contracts,
    to_number,
)

__all__ = [
    "build_vendor",
    "compute_contract_totals",
    "contracts_for_vendor",
    "filter_valid_tag_ids",
    "parse_vendor_reference",
    "populate_contract",
    "require_vendor",
    "resolve_vendor_reference",
    "strip_tag_from_contracts",
    "to_number",
]
