"""
Chart of accounts model.

Every account a company posts to (cash, receivables, sales
revenue, salaries, ...) is a row here. Journal lines reference
these accounts; the running balance is kept on the row.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    String, Boolean, DateTime, Numeric, Text, ForeignKey,
    UniqueConstraint, Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from erp_ledger.models.base import Base
from erp_ledger.models.enums import AccountType


class ChartOfAccount(Base):
    """
    A single account in a company's chart of accounts.

    balance is signed according to the account type: debit-normal
    accounts (asset, expense) grow with debits, the rest grow with
    credits. It is only ever changed by the posting engine.

    Once referenced by a journal line an account is never deleted,
    only deactivated via is_active=False.
    """

    __tablename__ = "chart_of_accounts"
    __table_args__ = (
        UniqueConstraint("company_id", "code", name="uq_chart_of_accounts_company_code"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    company_id: Mapped[int] = mapped_column(nullable=False, index=True)
    code: Mapped[str] = mapped_column(String(20), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    account_type: Mapped[AccountType] = mapped_column(
        SAEnum(
            AccountType,
            name="account_type_enum",
            values_callable=lambda e: [m.value for m in e],
            create_constraint=True,
        ),
        nullable=False,
    )
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    parent_id: Mapped[int | None] = mapped_column(
        ForeignKey("chart_of_accounts.id"), nullable=True, index=True
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_system: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    balance: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    parent: Mapped["ChartOfAccount | None"] = relationship(
        remote_side=[id], back_populates="children"
    )
    children: Mapped[list["ChartOfAccount"]] = relationship(
        back_populates="parent"
    )
    lines: Mapped[list["JournalEntryLine"]] = relationship(
        back_populates="account"
    )

    def signed_amount(self, debit: Decimal, credit: Decimal) -> Decimal:
        """Balance change caused by a line with the given debit and credit."""
        if self.account_type.is_debit_normal:
            return debit - credit
        return credit - debit

    def __repr__(self) -> str:
        return f"<ChartOfAccount {self.code} ({self.account_type.value})>"
