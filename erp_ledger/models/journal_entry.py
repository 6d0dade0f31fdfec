"""
Journal entry model.

A journal entry groups balanced debit and credit lines that
record one business event. Entries are created already posted
and are immutable afterwards, except for the reversal marker
which is set exactly once.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    String, Boolean, DateTime, Numeric, Text, ForeignKey,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from erp_ledger.models.base import Base


class JournalEntry(Base):
    """
    Header of a posted journal entry.

    total_debit and total_credit are always equal and always
    match the sums over the entry's lines. The LedgerService
    enforces this; the model only stores it.
    """

    __tablename__ = "journal_entries"
    __table_args__ = (
        UniqueConstraint(
            "company_id", "entry_number",
            name="uq_journal_entries_company_number",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    company_id: Mapped[int] = mapped_column(nullable=False, index=True)
    entry_number: Mapped[str] = mapped_column(String(50), nullable=False)
    entry_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    reference_type: Mapped[str | None] = mapped_column(
        String(50), nullable=True, index=True
    )
    reference_id: Mapped[int | None] = mapped_column(nullable=True)
    total_debit: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    total_credit: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    is_posted: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    is_reversed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    reversed_by_id: Mapped[int | None] = mapped_column(
        ForeignKey("journal_entries.id"), nullable=True
    )
    created_by: Mapped[int | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    lines: Mapped[list["JournalEntryLine"]] = relationship(
        back_populates="journal_entry",
        order_by="JournalEntryLine.id",
        cascade="all, delete-orphan",
    )
    reversed_by: Mapped["JournalEntry | None"] = relationship(
        remote_side=[id]
    )

    def __repr__(self) -> str:
        return (
            f"<JournalEntry {self.entry_number} "
            f"{self.total_debit} ({self.reference_type})>"
        )
