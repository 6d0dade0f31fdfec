"""
Ledger service: the core of the accounting system.

This service enforces the fundamental rules:
1. Every journal entry must balance (debits = credits)
2. Every line must point to an account of the same company
3. Entries are immutable once posted; the only later change
   is the reversal marker, set exactly once
4. Account balances move only together with the entry that
   explains the movement, in the same transaction

No other service writes journal entries or account balances.
Rejections (unbalanced, unknown account, already reversed...)
are returned as result values, not raised. Database errors do
propagate; the caller owns the transaction and rolls it back.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, NamedTuple

import structlog
from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from erp_ledger.config import get_settings
from erp_ledger.models.chart_of_account import ChartOfAccount
from erp_ledger.models.journal_entry import JournalEntry
from erp_ledger.models.journal_entry_line import JournalEntryLine
from erp_ledger.models.enums import AccountCode, ReferenceType
from erp_ledger.services.audit_service import AuditService
from erp_ledger.services.chart_service import ChartService, code_value
from erp_ledger.services.results import (
    AccountNotFound,
    AlreadyReversed,
    EmptyEntry,
    EntryNotFound,
    NegativeAmount,
    Posted,
    Rejected,
    Unbalanced,
)
from erp_ledger.services.sequence_service import SequenceService

logger = structlog.get_logger(__name__)

ZERO = Decimal("0")
# Scale of the Numeric(19, 4) amount columns
AMOUNT_QUANTUM = Decimal("0.0001")
MAX_LISTED_ENTRIES = 500


def to_decimal(value) -> Decimal:
    """Convert an amount to Decimal without float artefacts (0.1 -> 0.1)."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_amount(value) -> Decimal:
    """Convert to Decimal rounded to the stored scale of four places."""
    return to_decimal(value).quantize(AMOUNT_QUANTUM, rounding=ROUND_HALF_UP)


def as_datetime(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time())


class JournalLine(NamedTuple):
    """A requested line, addressed by account code."""
    account_code: AccountCode | str
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    description: str | None = None


@dataclass(frozen=True)
class ComposedLine:
    account: ChartOfAccount
    debit: Decimal
    credit: Decimal
    description: str | None


@dataclass(frozen=True)
class ComposedEntry:
    """A validated, balanced set of lines ready to be written."""
    lines: tuple[ComposedLine, ...]
    total_debit: Decimal
    total_credit: Decimal

    def balance_deltas(self) -> dict[int, Decimal]:
        """Net balance change per account id, following the sign convention."""
        deltas: dict[int, Decimal] = {}
        for line in self.lines:
            delta = line.account.signed_amount(line.debit, line.credit)
            deltas[line.account.id] = deltas.get(line.account.id, ZERO) + delta
        return deltas


class LedgerService:
    """
    All journal operations pass through this service.

    The service takes a database session as a constructor
    argument. The session is the unit of work: the caller
    decides when to commit or roll back. Nothing is cached
    between calls; balances are changed in SQL, never from
    a value read earlier.
    """

    def __init__(self, db: Session):
        self.db = db
        self.chart = ChartService(db)
        self.sequences = SequenceService(db)

    # --- Composition ---

    def compose(
        self,
        company_id: int,
        lines: Iterable[JournalLine | tuple],
    ) -> ComposedEntry | Rejected:
        """
        Resolve and validate requested lines.

        Amounts are rounded to the stored scale before validation, so
        the totals checked are the totals written. Lines with neither
        debit nor credit are skipped. A negative amount or an unknown
        account code rejects the whole entry. Nothing is written
        here except the default chart on a company's first use.
        """
        self.chart.ensure_default_accounts(company_id)

        composed = []
        for account_code, debit, credit, description in lines:
            debit, credit = to_amount(debit), to_amount(credit)
            if debit < ZERO or credit < ZERO:
                return NegativeAmount(code_value(account_code))
            if debit == ZERO and credit == ZERO:
                continue

            account = self.chart.resolve(company_id, account_code)
            if account is None:
                return AccountNotFound(code_value(account_code))

            composed.append(ComposedLine(account, debit, credit, description))

        return self._validate(composed)

    def _validate(
        self, lines: list[ComposedLine]
    ) -> ComposedEntry | Rejected:
        if not lines:
            return EmptyEntry()

        total_debit = sum((line.debit for line in lines), ZERO)
        total_credit = sum((line.credit for line in lines), ZERO)
        if total_debit != total_credit:
            return Unbalanced(total_debit, total_credit)

        return ComposedEntry(tuple(lines), total_debit, total_credit)

    # --- Posting ---

    def post_entry(
        self,
        company_id: int,
        entry_date: date | datetime,
        description: str | None,
        reference_type: ReferenceType | str,
        reference_id: int | None,
        lines: Iterable[JournalLine | tuple],
        created_by: int | None = None,
    ) -> Posted | Rejected:
        """
        Compose, validate and write a journal entry.

        On success the entry, its lines, the entry number and the
        account balance changes are flushed to the session; the
        caller commits. On rejection no entry, line or balance change
        is flushed.
        """
        reference_type = getattr(reference_type, "value", reference_type)

        composed = self.compose(company_id, lines)
        if not isinstance(composed, ComposedEntry):
            logger.warning(
                "journal_entry_rejected",
                company_id=company_id,
                reference_type=reference_type,
                reference_id=reference_id,
                reason=composed.reason,
            )
            return composed

        entry = self._write(
            company_id, composed,
            entry_date=as_datetime(entry_date),
            description=description,
            reference_type=reference_type,
            reference_id=reference_id,
            created_by=created_by,
        )
        return Posted(entry)

    def post_manual_entry(
        self,
        company_id: int,
        entry_date: date | datetime,
        description: str | None,
        lines: Iterable[JournalLine | tuple],
        created_by: int | None = None,
    ) -> Posted | Rejected:
        """Post a user-written entry with arbitrary balanced lines."""
        result = self.post_entry(
            company_id,
            entry_date,
            description or "Manual journal entry",
            ReferenceType.MANUAL,
            None,
            lines,
            created_by,
        )
        if isinstance(result, Posted):
            AuditService(self.db).record(
                company_id, "journal_entry.manual_posted", created_by,
                entry_id=result.entry.id,
                entry_number=result.entry.entry_number,
            )
        return result

    def _write(
        self,
        company_id: int,
        composed: ComposedEntry,
        *,
        entry_date: datetime,
        description: str | None,
        reference_type: str,
        reference_id: int | None,
        created_by: int | None,
    ) -> JournalEntry:
        entry = JournalEntry(
            company_id=company_id,
            entry_number=self._format_entry_number(
                self.sequences.next_value(company_id)
            ),
            entry_date=entry_date,
            description=description,
            reference_type=reference_type,
            reference_id=reference_id,
            total_debit=composed.total_debit,
            total_credit=composed.total_credit,
            is_posted=True,
            created_by=created_by,
        )
        entry.lines = [
            JournalEntryLine(
                company_id=company_id,
                account_id=line.account.id,
                debit=line.debit,
                credit=line.credit,
                description=line.description,
            )
            for line in composed.lines
        ]
        self.db.add(entry)

        # balance = balance + delta, evaluated by the database on the
        # current row, so concurrent postings cannot lose an update
        for account_id, delta in composed.balance_deltas().items():
            if delta == ZERO:
                continue
            self.db.execute(
                update(ChartOfAccount)
                .where(ChartOfAccount.id == account_id)
                .values(balance=ChartOfAccount.balance + delta)
                .execution_options(synchronize_session=False)
            )
        self.db.flush()

        for line in composed.lines:
            self.db.expire(line.account, ["balance"])

        logger.info(
            "journal_entry_posted",
            company_id=company_id,
            entry_number=entry.entry_number,
            reference_type=reference_type,
            reference_id=reference_id,
            total=str(composed.total_debit),
            lines=len(composed.lines),
        )
        return entry

    def _format_entry_number(self, value: int) -> str:
        settings = get_settings()
        return (
            f"{settings.ENTRY_NUMBER_PREFIX}"
            f"{str(value).zfill(settings.ENTRY_NUMBER_WIDTH)}"
        )

    # --- Reversal ---

    def reverse_entry(
        self,
        company_id: int,
        entry_id: int,
        created_by: int | None = None,
    ) -> Posted | Rejected | EntryNotFound | AlreadyReversed:
        """
        Undo a posted entry by posting its mirror image.

        Every line is copied onto the same account with debit and
        credit swapped. The original is marked reversed and linked
        to the mirror in the same unit of work, so either both
        changes are committed or neither is.

        A reversal entry is an ordinary entry and can itself be
        reversed.
        """
        # FOR UPDATE makes a concurrent reversal of the same entry wait
        # and then see is_reversed; SQLite ignores it and serializes writers
        original = self.db.execute(
            select(JournalEntry)
            .where(
                JournalEntry.id == entry_id,
                JournalEntry.company_id == company_id,
            )
            .options(
                selectinload(JournalEntry.lines)
                .selectinload(JournalEntryLine.account)
            )
            .with_for_update(of=JournalEntry)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

        if original is None:
            return EntryNotFound(entry_id)
        if original.is_reversed:
            return AlreadyReversed(entry_id)

        # Mirror by account id, not code: a renamed code must not
        # send the reversal to a different account
        mirror = self._validate([
            ComposedLine(
                account=line.account,
                debit=line.credit,
                credit=line.debit,
                description=(
                    f"Reverse: {line.description}"
                    if line.description else "Reverse"
                ),
            )
            for line in original.lines
        ])
        if not isinstance(mirror, ComposedEntry):
            return mirror

        reversal = self._write(
            company_id, mirror,
            entry_date=datetime.utcnow(),
            description=(
                f"Reversal of {original.entry_number}: {original.description}"
            ),
            reference_type=ReferenceType.REVERSAL.value,
            reference_id=original.id,
            created_by=created_by,
        )

        original.is_reversed = True
        original.reversed_by_id = reversal.id
        self.db.flush()

        AuditService(self.db).record(
            company_id, "journal_entry.reversed", created_by,
            entry_id=original.id,
            entry_number=original.entry_number,
            reversal_id=reversal.id,
            reversal_number=reversal.entry_number,
        )
        logger.info(
            "journal_entry_reversed",
            company_id=company_id,
            entry_number=original.entry_number,
            reversal_number=reversal.entry_number,
        )
        return Posted(reversal)

    # --- Queries ---

    def get_entry(self, company_id: int, entry_id: int) -> JournalEntry:
        """Get an entry with its lines. Raises ValueError if not found."""
        entry = self.db.execute(
            select(JournalEntry)
            .where(
                JournalEntry.id == entry_id,
                JournalEntry.company_id == company_id,
            )
            .options(
                selectinload(JournalEntry.lines)
                .selectinload(JournalEntryLine.account)
            )
        ).scalar_one_or_none()
        if not entry:
            raise ValueError(f"Journal entry {entry_id} not found")
        return entry

    def list_entries(
        self,
        company_id: int,
        start_date: date | None = None,
        end_date: date | None = None,
        reference_type: str | None = None,
        limit: int = MAX_LISTED_ENTRIES,
    ) -> list[JournalEntry]:
        """Return entries newest first, optionally filtered by date and type."""
        query = (
            select(JournalEntry)
            .where(JournalEntry.company_id == company_id)
            .options(
                selectinload(JournalEntry.lines)
                .selectinload(JournalEntryLine.account)
            )
        )
        if start_date is not None:
            query = query.where(JournalEntry.entry_date >= as_datetime(start_date))
        if end_date is not None:
            query = query.where(
                JournalEntry.entry_date < day_after(end_date)
            )
        if reference_type:
            query = query.where(JournalEntry.reference_type == reference_type)

        entries = self.db.execute(
            query
            .order_by(JournalEntry.entry_date.desc(), JournalEntry.id.desc())
            .limit(limit)
        ).scalars().all()
        return list(entries)


def day_after(value: date | datetime) -> datetime:
    """Exclusive upper bound that keeps the whole of the given day."""
    day = value.date() if isinstance(value, datetime) else value
    return datetime.combine(day + timedelta(days=1), time())
