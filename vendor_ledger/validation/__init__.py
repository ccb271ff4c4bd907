"""Validation package."""

from vendor_ledger.validation.payloads import issues_from_pydantic, parse_payload

__all__ = ["issues_from_pydantic", "parse_payload"]
