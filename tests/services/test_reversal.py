"""
Tests for journal entry reversal.

A reversal posts the mirror image of an entry (debits and
credits swapped, same accounts) and marks the original as
reversed, both in the same unit of work.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import select

from erp_ledger.models import AuditLog, JournalEntry
from erp_ledger.models.enums import AccountCode
from erp_ledger.services.chart_service import ChartService
from erp_ledger.services.ledger_service import JournalLine, LedgerService
from erp_ledger.services.results import (
    AlreadyReversed,
    EntryNotFound,
    Posted,
)

COMPANY_ID = 1
OTHER_COMPANY_ID = 2


def post_sale(service, company_id=COMPANY_ID):
    """Van sale of 100: 60 paid, 40 on credit, goods costing 40."""
    result = service.post_entry(
        company_id, date(2024, 5, 2), "Sales Order #12", "order", 12,
        [
            JournalLine(AccountCode.VAN_CASH, Decimal("60"), Decimal("0"), "Cash received"),
            JournalLine(AccountCode.ACCOUNTS_RECEIVABLE, Decimal("40"), Decimal("0")),
            JournalLine(AccountCode.SALES_REVENUE, Decimal("0"), Decimal("100")),
            JournalLine(AccountCode.COST_OF_GOODS_SOLD, Decimal("40"), Decimal("0")),
            JournalLine(AccountCode.INVENTORY, Decimal("0"), Decimal("40")),
        ],
    )
    assert isinstance(result, Posted)
    return result.entry


def balances(db_session, company_id=COMPANY_ID):
    return {
        account.code: account.balance
        for account in ChartService(db_session).list_accounts(company_id)
    }


class TestReverseEntry:

    def test_reversal_mirrors_every_line(self, db_session):
        service = LedgerService(db_session)
        original = post_sale(service)

        result = service.reverse_entry(COMPANY_ID, original.id, created_by=4)
        db_session.commit()

        assert isinstance(result, Posted)
        reversal = result.entry
        assert len(reversal.lines) == len(original.lines)
        for source, mirror in zip(original.lines, reversal.lines):
            assert mirror.account_id == source.account_id
            assert mirror.debit == source.credit
            assert mirror.credit == source.debit

    def test_reversal_header(self, db_session):
        service = LedgerService(db_session)
        original = post_sale(service)

        reversal = service.reverse_entry(COMPANY_ID, original.id).entry

        assert reversal.reference_type == "reversal"
        assert reversal.reference_id == original.id
        assert reversal.description == f"Reversal of {original.entry_number}: Sales Order #12"
        assert reversal.entry_number == "JE-00002"
        assert reversal.total_debit == original.total_credit

    def test_reversal_line_memos(self, db_session):
        service = LedgerService(db_session)
        original = post_sale(service)

        reversal = service.reverse_entry(COMPANY_ID, original.id).entry

        memos = [line.description for line in reversal.lines]
        assert memos[0] == "Reverse: Cash received"
        assert memos[1] == "Reverse"

    def test_original_is_marked_and_linked(self, db_session):
        service = LedgerService(db_session)
        original = post_sale(service)

        reversal = service.reverse_entry(COMPANY_ID, original.id).entry
        db_session.commit()

        stored = db_session.get(JournalEntry, original.id)
        assert stored.is_reversed is True
        assert stored.reversed_by_id == reversal.id

    def test_balances_return_to_zero(self, db_session):
        service = LedgerService(db_session)
        original = post_sale(service)
        db_session.commit()

        service.reverse_entry(COMPANY_ID, original.id)
        db_session.commit()

        assert all(value == Decimal("0") for value in balances(db_session).values())

    def test_reversal_is_audited(self, db_session):
        service = LedgerService(db_session)
        original = post_sale(service)

        service.reverse_entry(COMPANY_ID, original.id, created_by=4)
        db_session.commit()

        audit = db_session.execute(select(AuditLog)).scalar_one()
        assert audit.event_type == "journal_entry.reversed"
        assert audit.actor_id == 4


class TestReversalRejections:

    def test_second_reversal_rejected(self, db_session):
        service = LedgerService(db_session)
        original = post_sale(service)
        service.reverse_entry(COMPANY_ID, original.id)
        db_session.commit()
        before = balances(db_session)

        result = service.reverse_entry(COMPANY_ID, original.id)

        assert isinstance(result, AlreadyReversed)
        assert "already reversed" in result.reason
        assert balances(db_session) == before

    def test_second_reversal_writes_no_entry(self, db_session):
        service = LedgerService(db_session)
        original = post_sale(service)
        service.reverse_entry(COMPANY_ID, original.id)
        db_session.commit()

        service.reverse_entry(COMPANY_ID, original.id)
        db_session.commit()

        assert len(service.list_entries(COMPANY_ID)) == 2

    def test_unknown_entry(self, db_session):
        service = LedgerService(db_session)

        result = service.reverse_entry(COMPANY_ID, 999)

        assert isinstance(result, EntryNotFound)
        assert result.entry_id == 999

    def test_entry_of_other_company_is_not_found(self, db_session):
        service = LedgerService(db_session)
        original = post_sale(service)
        db_session.commit()

        result = service.reverse_entry(OTHER_COMPANY_ID, original.id)

        assert isinstance(result, EntryNotFound)
        assert db_session.get(JournalEntry, original.id).is_reversed is False


class TestReversingAReversal:

    def test_reversal_can_itself_be_reversed(self, db_session):
        service = LedgerService(db_session)
        original = post_sale(service)
        reversal = service.reverse_entry(COMPANY_ID, original.id).entry
        db_session.commit()

        result = service.reverse_entry(COMPANY_ID, reversal.id)
        db_session.commit()

        assert isinstance(result, Posted)
        assert result.entry.reference_id == reversal.id
        # Net effect equals the original posting again
        current = balances(db_session)
        assert current[AccountCode.VAN_CASH.value] == Decimal("60")
        assert current[AccountCode.SALES_REVENUE.value] == Decimal("100")
        assert current[AccountCode.INVENTORY.value] == Decimal("-40")
