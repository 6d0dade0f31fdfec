"""
Per-company sequence counters.

Journal entry numbers are allocated from these rows with an
atomic increment inside the posting transaction, so two
concurrent postings for the same company cannot receive the
same number.
"""

from datetime import datetime

from sqlalchemy import BigInteger, String, DateTime, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from erp_ledger.models.base import Base


class EntrySequence(Base):
    __tablename__ = "entry_sequences"
    __table_args__ = (
        UniqueConstraint("company_id", "name", name="uq_entry_sequences_company_name"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    company_id: Mapped[int] = mapped_column(nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    # The value handed out by the next allocation
    next_value: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=1
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    def __repr__(self) -> str:
        return f"<EntrySequence {self.company_id}:{self.name}={self.next_value}>"
