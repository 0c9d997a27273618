"""Read-only reports package."""

from envelope_ledger.reports.executor import ReportExecutor

__all__ = ["ReportExecutor"]
