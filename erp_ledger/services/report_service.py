"""
Read-side queries over the posted ledger.

Nothing here writes (apart from seeding the default chart the
first time a company looks at its trial balance). Balances are
always derived with the same sign convention the posting engine
uses, so a statement's closing balance equals the stored account
balance when no date filter is applied.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from erp_ledger.models.journal_entry import JournalEntry
from erp_ledger.models.journal_entry_line import JournalEntryLine
from erp_ledger.schemas.accounting import (
    AccountLedgerResponse,
    LedgerLineResponse,
    TrialBalanceLine,
)
from erp_ledger.services.chart_service import ChartService
from erp_ledger.services.ledger_service import ZERO, as_datetime, day_after


class ReportService:

    def __init__(self, db: Session):
        self.db = db
        self.chart = ChartService(db)

    def account_ledger(
        self,
        company_id: int,
        account_id: int,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> AccountLedgerResponse:
        """
        Statement of one account.

        Lists every line of a posted entry in date order with the
        balance after each line. With a start date the running
        balance opens at the balance accumulated before that date.
        Raises ValueError if the account is not the company's.
        """
        account = self.chart.get_account(company_id, account_id)

        base = (
            select(JournalEntryLine, JournalEntry)
            .join(JournalEntry, JournalEntryLine.journal_entry_id == JournalEntry.id)
            .where(
                JournalEntryLine.account_id == account.id,
                JournalEntry.company_id == company_id,
                JournalEntry.is_posted.is_(True),
            )
        )

        running = ZERO
        if start_date is not None:
            debit, credit = self.db.execute(
                select(
                    func.coalesce(func.sum(JournalEntryLine.debit), 0),
                    func.coalesce(func.sum(JournalEntryLine.credit), 0),
                )
                .join(JournalEntry, JournalEntryLine.journal_entry_id == JournalEntry.id)
                .where(
                    JournalEntryLine.account_id == account.id,
                    JournalEntry.company_id == company_id,
                    JournalEntry.is_posted.is_(True),
                    JournalEntry.entry_date < as_datetime(start_date),
                )
            ).one()
            running = account.signed_amount(_dec(debit), _dec(credit))
            base = base.where(JournalEntry.entry_date >= as_datetime(start_date))
        if end_date is not None:
            base = base.where(JournalEntry.entry_date < day_after(end_date))

        rows = self.db.execute(
            base.order_by(
                JournalEntry.entry_date, JournalEntry.id, JournalEntryLine.id
            )
        ).all()

        lines = []
        for line, entry in rows:
            running += account.signed_amount(line.debit, line.credit)
            lines.append(LedgerLineResponse(
                id=line.id,
                entry_date=entry.entry_date,
                entry_number=entry.entry_number,
                description=line.description or entry.description,
                reference_type=entry.reference_type,
                reference_id=entry.reference_id,
                debit=line.debit,
                credit=line.credit,
                running_balance=running,
            ))

        return AccountLedgerResponse(
            account_id=account.id,
            account_code=account.code,
            account_name=account.name,
            account_type=account.account_type,
            current_balance=account.balance,
            lines=lines,
        )

    def trial_balance(
        self, company_id: int, as_of: date | None = None
    ) -> list[TrialBalanceLine]:
        """
        Trial balance of the company's active accounts.

        Without a date the stored running balances are used; with
        one, balances are rebuilt from posted lines dated on or
        before it. Each non-zero balance lands in the debit or the
        credit column depending on its side, so the two column
        totals are always equal.
        """
        self.chart.ensure_default_accounts(company_id)
        accounts = self.chart.list_accounts(company_id, active_only=True)

        if as_of is None:
            balances = {a.id: a.balance for a in accounts}
        else:
            rows = self.db.execute(
                select(
                    JournalEntryLine.account_id,
                    func.sum(JournalEntryLine.debit),
                    func.sum(JournalEntryLine.credit),
                )
                .join(JournalEntry, JournalEntryLine.journal_entry_id == JournalEntry.id)
                .where(
                    JournalEntry.company_id == company_id,
                    JournalEntry.is_posted.is_(True),
                    JournalEntry.entry_date < day_after(as_of),
                )
                .group_by(JournalEntryLine.account_id)
            ).all()
            sums = {account_id: (debit, credit) for account_id, debit, credit in rows}
            balances = {
                a.id: a.signed_amount(*map(_dec, sums.get(a.id, (0, 0))))
                for a in accounts
            }

        report = []
        for account in accounts:
            balance = _dec(balances[account.id])
            if balance == ZERO:
                continue

            # A debit-normal account with a positive balance sits on the
            # debit side; a negative one flips to the credit side
            on_debit_side = (balance > ZERO) == account.account_type.is_debit_normal
            report.append(TrialBalanceLine(
                account_id=account.id,
                account_code=account.code,
                account_name=account.name,
                account_type=account.account_type,
                category=account.category,
                debit=abs(balance) if on_debit_side else ZERO,
                credit=ZERO if on_debit_side else abs(balance),
                balance=balance,
            ))
        return report


def _dec(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value or 0))
