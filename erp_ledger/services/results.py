"""
Outcomes of ledger operations.

Posting and reversal never signal an expected failure by raising.
They return one of these values and callers branch on the type:

    result = ledger.post_entry(...)
    if isinstance(result, Posted):
        ...
"""

from dataclasses import dataclass
from decimal import Decimal

from erp_ledger.models.journal_entry import JournalEntry


@dataclass(frozen=True)
class Posted:
    """The entry was validated and written."""
    entry: JournalEntry

    ok = True


@dataclass(frozen=True)
class Unbalanced:
    """Debits and credits of the composed entry differ."""
    total_debit: Decimal
    total_credit: Decimal

    ok = False

    @property
    def reason(self) -> str:
        return (
            f"Debits ({self.total_debit}) must equal "
            f"credits ({self.total_credit})"
        )


@dataclass(frozen=True)
class EmptyEntry:
    """No line carried a non-zero amount."""

    ok = False

    @property
    def reason(self) -> str:
        return "Journal entry has no non-zero lines"


@dataclass(frozen=True)
class AccountNotFound:
    """A line referenced an account code the company does not have."""
    code: str

    ok = False

    @property
    def reason(self) -> str:
        return f"Account code '{self.code}' not found"


@dataclass(frozen=True)
class NegativeAmount:
    """A line carried a negative debit or credit."""
    code: str

    ok = False

    @property
    def reason(self) -> str:
        return f"Negative amount on account code '{self.code}'"


@dataclass(frozen=True)
class EntryNotFound:
    entry_id: int

    ok = False

    @property
    def reason(self) -> str:
        return f"Journal entry {self.entry_id} not found"


@dataclass(frozen=True)
class AlreadyReversed:
    entry_id: int

    ok = False

    @property
    def reason(self) -> str:
        return f"Journal entry {self.entry_id} is already reversed"


@dataclass(frozen=True)
class PostingFailed:
    """An unexpected error was caught at the auto-posting boundary."""
    error: str

    ok = False

    @property
    def reason(self) -> str:
        return f"Posting failed: {self.error}"


Rejected = Unbalanced | EmptyEntry | AccountNotFound | NegativeAmount
LedgerResult = Posted | Rejected | EntryNotFound | AlreadyReversed | PostingFailed
