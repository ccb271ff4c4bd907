"""
Shared fixtures for Vendor Ledger tests.

Test strategy:
1. Unit tests for models, storage and the integrity engine
2. Operation tests against in-memory storage (no disk, no network)
3. File-backed tests use pytest's tmp_path
"""

import asyncio

import pytest

from vendor_ledger.audit import AuditLogger
from vendor_ledger.operations import LedgerService
from vendor_ledger.reports import ReportAggregator
from vendor_ledger.services.storage import (
    InMemoryAuditStorage,
    InMemoryBinaryStorage,
    InMemoryDocumentStorage,
)


@pytest.fixture
def run_async():
    """Run a coroutine to completion on a fresh event loop."""
    return asyncio.run


@pytest.fixture
def storage():
    return InMemoryDocumentStorage()


@pytest.fixture
def binaries():
    return InMemoryBinaryStorage()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def ledger(storage, binaries, audit_storage):
    return LedgerService(
        storage=storage,
        binary_storage=binaries,
        audit_logger=AuditLogger(audit_storage),
    )


@pytest.fixture
def reports(storage):
    return ReportAggregator(storage)
