"""Ledger operations package."""

from vendor_ledger.operations.ledger import LedgerService

__all__ = ["LedgerService"]
