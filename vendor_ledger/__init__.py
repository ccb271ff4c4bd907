"""
Vendor Ledger - Source Package

Tracks construction vendors, their contracts, payments and uploaded
documents, and reports on where the money went.

DESIGN PRINCIPLES:
1. One JSON document is the single source of truth
2. Validate everything before touching the document
3. Derived figures are computed on read, never stored
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Vendor Ledger Team"
