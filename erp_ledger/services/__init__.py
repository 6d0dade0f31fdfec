"""Business logic services."""

from erp_ledger.services.chart_service import ChartService
from erp_ledger.services.sequence_service import SequenceService
from erp_ledger.services.ledger_service import LedgerService, JournalLine
from erp_ledger.services.auto_posting import AutoPostingService
from erp_ledger.services.report_service import ReportService

__all__ = [
    "ChartService",
    "SequenceService",
    "LedgerService",
    "JournalLine",
    "AutoPostingService",
    "ReportService",
]
