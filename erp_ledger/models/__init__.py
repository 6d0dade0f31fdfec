"""
Database models package.

All models must be imported here so that Alembic can discover
them through Base.metadata when generating migrations.
"""

from erp_ledger.models.base import Base
from erp_ledger.models.enums import (
    AccountType,
    AccountCode,
    ReferenceType,
)
from erp_ledger.models.audit_log import AuditLog
from erp_ledger.models.chart_of_account import ChartOfAccount
from erp_ledger.models.journal_entry import JournalEntry
from erp_ledger.models.journal_entry_line import JournalEntryLine
from erp_ledger.models.entry_sequence import EntrySequence

__all__ = [
    "Base",
    "AccountType",
    "AccountCode",
    "ReferenceType",
    "AuditLog",
    "ChartOfAccount",
    "JournalEntry",
    "JournalEntryLine",
    "EntrySequence",
]
