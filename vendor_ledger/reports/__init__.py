"""Reporting package."""

from vendor_ledger.reports.aggregator import ReportAggregator, unknown_vendor_label

__all__ = ["ReportAggregator", "unknown_vendor_label"]
