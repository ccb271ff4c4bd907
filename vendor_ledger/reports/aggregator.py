"""
Reporting Aggregator

DESIGN DECISION: Reports are DETERMINISTIC and read-only.
They walk the stored contract/payment/tag graph and never mutate or
save the document.

Both reports come back as positionally aligned arrays (labels, data,
csv rows) ready for a chart and a CSV export.

IMPORTANT: Spend by tag attributes a contract's FULL paid amount to EACH
of its tags. A contract tagged [A, B] with 500 paid adds 500 to A and 500
to B. Tags are overlapping categories, so the buckets can add up to more
than total spend. Do not "fix" this by splitting amounts.
"""

from typing import Optional

import structlog

from vendor_ledger.config import get_settings
from vendor_ledger.integrity import compute_contract_totals, to_number
from vendor_ledger.models.ledger import (
    DEFAULT_TAG_COLOR,
    UNTAGGED_LABEL,
    Document,
    SpendSummary,
    TagSpendReport,
    TagSpendRow,
    VendorSpendReport,
    VendorSpendRow,
)
from vendor_ledger.services.storage import DocumentStorageInterface


logger = structlog.get_logger(__name__)


def unknown_vendor_label(vendor_id: str) -> str:
    return f"Unknown Vendor (ID: {vendor_id[:6]}...)"


class ReportAggregator:
    """
    Builds spend reports from the ledger document.

    GUARANTEES:
    - Only reports real stored payments
    - Buckets with no spend are left out
    - Bucket order follows the order contracts appear in the document
    """

    def __init__(
        self,
        storage: DocumentStorageInterface,
        untagged_color: Optional[str] = None,
    ):
        self._storage = storage
        self._untagged_color = untagged_color or get_settings().app.untagged_color

    async def spending_by_vendor(self) -> VendorSpendReport:
        """Total paid per vendor, plus contracted/spent grand totals."""
        doc = await self._storage.load()
        return self.build_vendor_report(doc)

    async def spending_by_tag(self) -> TagSpendReport:
        """Total paid per tag (full amount to every tag of a contract)."""
        doc = await self._storage.load()
        return self.build_tag_report(doc)

    def build_vendor_report(self, doc: Document) -> VendorSpendReport:
        vendor_names = {vendor.id: vendor.company_name for vendor in doc.vendors}
        spending: dict[str, float] = {}
        summary = SpendSummary()

        for contract in doc.contracts:
            paid = compute_contract_totals(contract).paid_total
            summary.total_contracted += to_number(contract.contract_amount)
            summary.total_spent += paid

            if not contract.vendor_id:
                continue
            spending[contract.vendor_id] = spending.get(contract.vendor_id, 0.0) + paid

        report = VendorSpendReport(summary=summary)
        for vendor_id, total_spent in spending.items():
            if total_spent <= 0:
                continue
            name = vendor_names.get(vendor_id) or unknown_vendor_label(vendor_id)
            report.labels.append(name)
            report.data.append(total_spent)
            report.csv_data.append(VendorSpendRow(vendor_name=name, total_spent=total_spent))

        logger.debug("vendor_report_built", vendors=len(report.labels))
        return report

    def build_tag_report(self, doc: Document) -> TagSpendReport:
        tags_by_id = {tag.id: tag for tag in doc.tags}
        # bucket key -> (label, color, total); None is the Untagged bucket
        buckets: dict[Optional[str], list] = {}

        for contract in doc.contracts:
            paid = compute_contract_totals(contract).paid_total
            if paid <= 0:
                continue

            tag_ids = [tag_id for tag_id in dict.fromkeys(contract.tag_ids) if tag_id in tags_by_id]
            if not tag_ids:
                bucket = buckets.setdefault(None, [UNTAGGED_LABEL, self._untagged_color, 0.0])
                bucket[2] += paid
                continue

            for tag_id in tag_ids:
                tag = tags_by_id[tag_id]
                bucket = buckets.setdefault(
                    tag_id,
                    [tag.name or "", tag.color or DEFAULT_TAG_COLOR, 0.0],
                )
                bucket[2] += paid

        report = TagSpendReport()
        for label, color, total_spent in buckets.values():
            report.labels.append(label)
            report.data.append(total_spent)
            report.colors.append(color)
            report.csv_data.append(TagSpendRow(tag_name=label, total_spent=total_spent))

        logger.debug("tag_report_built", buckets=len(report.labels))
        return report
