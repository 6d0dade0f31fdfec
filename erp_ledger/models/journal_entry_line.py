"""
Journal entry line model.

Each line moves an amount on one account, either as a debit or
as a credit. Lines with neither are dropped before posting.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Numeric, Text, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from erp_ledger.models.base import Base


class JournalEntryLine(Base):
    __tablename__ = "journal_entry_lines"

    id: Mapped[int] = mapped_column(primary_key=True)
    journal_entry_id: Mapped[int] = mapped_column(
        ForeignKey("journal_entries.id"), nullable=False, index=True
    )
    company_id: Mapped[int] = mapped_column(nullable=False, index=True)
    account_id: Mapped[int] = mapped_column(
        ForeignKey("chart_of_accounts.id"), nullable=False, index=True
    )
    debit: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    credit: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    journal_entry: Mapped["JournalEntry"] = relationship(
        back_populates="lines"
    )
    account: Mapped["ChartOfAccount"] = relationship(
        back_populates="lines"
    )

    def __repr__(self) -> str:
        return f"<JournalEntryLine Dr {self.debit} Cr {self.credit}>"
