"""
Pydantic schemas for the accounting API.

These define the API contract. They are kept separate from the
database models because the API shape (account codes, nested
lines, running balances) differs from the storage shape.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from erp_ledger.models.enums import AccountType


# --- Chart of Accounts ---

class AccountCreate(BaseModel):
    """Request to add an account to the company's chart."""
    code: str = Field(min_length=1, max_length=20)
    name: str = Field(min_length=1, max_length=255)
    account_type: AccountType
    category: str | None = Field(default=None, max_length=100)
    parent_id: int | None = None
    description: str | None = None


class AccountUpdate(AccountCreate):
    """Full replacement of an account's editable fields."""
    is_active: bool = True


class AccountResponse(BaseModel):
    id: int
    code: str
    name: str
    account_type: AccountType
    category: str | None
    parent_id: int | None
    description: str | None
    is_system: bool
    is_active: bool
    balance: Decimal
    created_at: datetime

    model_config = {"from_attributes": True}


# --- Journal Entries ---

class JournalLineCreate(BaseModel):
    """One line of a manual journal entry, addressed by account code."""
    account_code: str = Field(min_length=1, max_length=20)
    debit: Decimal = Field(default=Decimal("0"), ge=0)
    credit: Decimal = Field(default=Decimal("0"), ge=0)
    description: str | None = Field(default=None, max_length=255)


class ManualEntryCreate(BaseModel):
    entry_date: datetime
    description: str | None = Field(default=None, max_length=500)
    lines: list[JournalLineCreate] = Field(min_length=2)


class JournalLineResponse(BaseModel):
    id: int
    account_id: int
    account_code: str
    account_name: str
    debit: Decimal
    credit: Decimal
    description: str | None


class JournalEntryResponse(BaseModel):
    id: int
    entry_number: str
    entry_date: datetime
    description: str | None
    reference_type: str | None
    reference_id: int | None
    total_debit: Decimal
    total_credit: Decimal
    is_posted: bool
    is_reversed: bool
    reversed_by_id: int | None
    created_at: datetime
    lines: list[JournalLineResponse]

    @classmethod
    def from_entry(cls, entry) -> "JournalEntryResponse":
        return cls(
            id=entry.id,
            entry_number=entry.entry_number,
            entry_date=entry.entry_date,
            description=entry.description,
            reference_type=entry.reference_type,
            reference_id=entry.reference_id,
            total_debit=entry.total_debit,
            total_credit=entry.total_credit,
            is_posted=entry.is_posted,
            is_reversed=entry.is_reversed,
            reversed_by_id=entry.reversed_by_id,
            created_at=entry.created_at,
            lines=[
                JournalLineResponse(
                    id=line.id,
                    account_id=line.account_id,
                    account_code=line.account.code,
                    account_name=line.account.name,
                    debit=line.debit,
                    credit=line.credit,
                    description=line.description,
                )
                for line in entry.lines
            ],
        )


class ReversalResponse(BaseModel):
    message: str
    reversal_id: int
    entry_number: str


# --- Ledger & Reports ---

class LedgerLineResponse(BaseModel):
    id: int
    entry_date: datetime
    entry_number: str
    description: str | None
    reference_type: str | None
    reference_id: int | None
    debit: Decimal
    credit: Decimal
    running_balance: Decimal


class AccountLedgerResponse(BaseModel):
    """Statement of one account: every posted line with a running balance."""
    account_id: int
    account_code: str
    account_name: str
    account_type: AccountType
    current_balance: Decimal
    lines: list[LedgerLineResponse]


class TrialBalanceLine(BaseModel):
    account_id: int
    account_code: str
    account_name: str
    account_type: AccountType
    category: str | None
    debit: Decimal
    credit: Decimal
    balance: Decimal
