"""
Tests for the LedgerService posting path.

Tests cover:
- Balanced entry posting and balance updates per account type
- Unbalanced, empty and unknown-account rejection
- Zero lines being skipped
- Sequential, per-company entry numbers
- Balances reconciling with the sum of posted lines
- Manual entries and their audit trail
"""

from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from structlog.testing import capture_logs

from erp_ledger.models import AuditLog, JournalEntry, JournalEntryLine
from erp_ledger.models.enums import AccountCode, AccountType
from erp_ledger.schemas.accounting import AccountCreate
from erp_ledger.services.chart_service import ChartService
from erp_ledger.services.ledger_service import (
    JournalLine,
    LedgerService,
    day_after,
    to_decimal,
)
from erp_ledger.services.report_service import ReportService
from erp_ledger.services.results import (
    AccountNotFound,
    EmptyEntry,
    NegativeAmount,
    Posted,
    Unbalanced,
)

COMPANY_ID = 1
OTHER_COMPANY_ID = 2
ENTRY_DATE = date(2024, 3, 15)


def balance_of(db_session, code, company_id=COMPANY_ID):
    return ChartService(db_session).resolve(company_id, code).balance


def count_rows(db_session, model):
    return db_session.execute(select(func.count(model.id))).scalar_one()


def post(service, lines, company_id=COMPANY_ID, reference_type="manual"):
    return service.post_entry(
        company_id, ENTRY_DATE, "Test entry", reference_type, None, lines
    )


# --- Helpers ---

class TestHelpers:

    def test_to_decimal_avoids_float_artefacts(self):
        assert to_decimal(0.1) == Decimal("0.1")
        assert to_decimal("19.99") == Decimal("19.99")
        assert to_decimal(5) == Decimal("5")

    def test_day_after_covers_whole_day(self):
        assert day_after(date(2024, 2, 28)) == datetime(2024, 2, 29)
        assert day_after(datetime(2024, 12, 31, 23, 59)) == datetime(2025, 1, 1)


# --- Posting Tests ---

class TestPostEntry:

    def test_balanced_entry_succeeds(self, db_session):
        service = LedgerService(db_session)

        result = post(service, [
            JournalLine(AccountCode.CASH_ON_HAND, Decimal("250"), Decimal("0")),
            JournalLine(AccountCode.OWNERS_EQUITY, Decimal("0"), Decimal("250")),
        ])
        db_session.commit()

        assert isinstance(result, Posted)
        assert result.ok is True
        entry = result.entry
        assert entry.id is not None
        assert entry.is_posted is True
        assert entry.is_reversed is False
        assert entry.total_debit == entry.total_credit == Decimal("250")
        assert len(entry.lines) == 2

    def test_first_use_seeds_chart(self, db_session):
        service = LedgerService(db_session)

        post(service, [
            JournalLine(AccountCode.BANK, Decimal("10"), Decimal("0")),
            JournalLine(AccountCode.OTHER_INCOME, Decimal("0"), Decimal("10")),
        ])

        assert ChartService(db_session).resolve(COMPANY_ID, AccountCode.VAN_CASH)

    def test_debit_normal_accounts_grow_with_debits(self, db_session):
        service = LedgerService(db_session)

        post(service, [
            JournalLine(AccountCode.GENERAL_EXPENSES, Decimal("75.50"), Decimal("0")),
            JournalLine(AccountCode.CASH_ON_HAND, Decimal("0"), Decimal("75.50")),
        ])
        db_session.commit()

        assert balance_of(db_session, AccountCode.GENERAL_EXPENSES) == Decimal("75.50")
        assert balance_of(db_session, AccountCode.CASH_ON_HAND) == Decimal("-75.50")

    def test_credit_normal_accounts_grow_with_credits(self, db_session):
        service = LedgerService(db_session)

        post(service, [
            JournalLine(AccountCode.INVENTORY, Decimal("400"), Decimal("0")),
            JournalLine(AccountCode.ACCOUNTS_PAYABLE, Decimal("0"), Decimal("400")),
        ])
        post(service, [
            JournalLine(AccountCode.BANK, Decimal("900"), Decimal("0")),
            JournalLine(AccountCode.SALES_REVENUE, Decimal("0"), Decimal("600")),
            JournalLine(AccountCode.OWNERS_EQUITY, Decimal("0"), Decimal("300")),
        ])
        db_session.commit()

        assert balance_of(db_session, AccountCode.ACCOUNTS_PAYABLE) == Decimal("400")
        assert balance_of(db_session, AccountCode.SALES_REVENUE) == Decimal("600")
        assert balance_of(db_session, AccountCode.OWNERS_EQUITY) == Decimal("300")

    def test_same_account_twice_in_one_entry(self, db_session):
        service = LedgerService(db_session)

        post(service, [
            JournalLine(AccountCode.BANK, Decimal("100"), Decimal("0")),
            JournalLine(AccountCode.BANK, Decimal("0"), Decimal("30")),
            JournalLine(AccountCode.OTHER_INCOME, Decimal("0"), Decimal("70")),
        ])
        db_session.commit()

        assert balance_of(db_session, AccountCode.BANK) == Decimal("70")

    def test_zero_lines_are_skipped(self, db_session):
        service = LedgerService(db_session)

        result = post(service, [
            JournalLine(AccountCode.CASH_ON_HAND, Decimal("20"), Decimal("0")),
            JournalLine(AccountCode.ACCOUNTS_RECEIVABLE, Decimal("0"), Decimal("0")),
            JournalLine(AccountCode.SALES_REVENUE, Decimal("0"), Decimal("20")),
        ])

        assert isinstance(result, Posted)
        assert len(result.entry.lines) == 2

    def test_float_amounts_are_exact(self, db_session):
        service = LedgerService(db_session)

        result = post(service, [
            (AccountCode.CASH_ON_HAND, 0.1, 0, None),
            (AccountCode.CASH_ON_HAND, 0.2, 0, None),
            (AccountCode.OTHER_INCOME, 0, 0.3, None),
        ])

        assert isinstance(result, Posted)

    def test_posting_is_logged(self, db_session):
        service = LedgerService(db_session)

        with capture_logs() as logs:
            result = post(service, [
                JournalLine(AccountCode.BANK, Decimal("5"), Decimal("0")),
                JournalLine(AccountCode.OTHER_INCOME, Decimal("0"), Decimal("5")),
            ])

        posted = [e for e in logs if e["event"] == "journal_entry_posted"]
        assert len(posted) == 1
        assert posted[0]["entry_number"] == result.entry.entry_number
        assert posted[0]["log_level"] == "info"


# --- Rejection Tests ---

class TestRejections:

    def test_unbalanced_entry_rejected(self, db_session):
        service = LedgerService(db_session)

        result = post(service, [
            JournalLine(AccountCode.CASH_ON_HAND, Decimal("50"), Decimal("0")),
            JournalLine(AccountCode.SALES_REVENUE, Decimal("0"), Decimal("40")),
        ])

        assert isinstance(result, Unbalanced)
        assert result.ok is False
        assert result.total_debit == Decimal("50")
        assert result.total_credit == Decimal("40")
        assert "must equal" in result.reason

    def test_unbalanced_entry_writes_nothing(self, db_session):
        service = LedgerService(db_session)

        post(service, [
            JournalLine(AccountCode.CASH_ON_HAND, Decimal("50"), Decimal("0")),
            JournalLine(AccountCode.SALES_REVENUE, Decimal("0"), Decimal("40")),
        ])
        db_session.commit()

        assert count_rows(db_session, JournalEntry) == 0
        assert count_rows(db_session, JournalEntryLine) == 0
        assert balance_of(db_session, AccountCode.CASH_ON_HAND) == Decimal("0")
        assert balance_of(db_session, AccountCode.SALES_REVENUE) == Decimal("0")

    def test_rejection_is_logged_as_warning(self, db_session):
        service = LedgerService(db_session)

        with capture_logs() as logs:
            post(service, [
                JournalLine(AccountCode.CASH_ON_HAND, Decimal("50"), Decimal("0")),
                JournalLine(AccountCode.SALES_REVENUE, Decimal("0"), Decimal("40")),
            ])

        rejected = [e for e in logs if e["event"] == "journal_entry_rejected"]
        assert len(rejected) == 1
        assert rejected[0]["log_level"] == "warning"

    def test_all_zero_lines_rejected_as_empty(self, db_session):
        service = LedgerService(db_session)

        result = post(service, [
            JournalLine(AccountCode.CASH_ON_HAND, Decimal("0"), Decimal("0")),
            JournalLine(AccountCode.SALES_REVENUE, Decimal("0"), Decimal("0")),
        ])

        assert isinstance(result, EmptyEntry)

    def test_no_lines_rejected_as_empty(self, db_session):
        assert isinstance(post(LedgerService(db_session), []), EmptyEntry)

    def test_unknown_account_code_rejected(self, db_session):
        service = LedgerService(db_session)

        result = post(service, [
            JournalLine("7777", Decimal("10"), Decimal("0")),
            JournalLine(AccountCode.CASH_ON_HAND, Decimal("0"), Decimal("10")),
        ])
        db_session.commit()

        assert isinstance(result, AccountNotFound)
        assert result.code == "7777"
        assert count_rows(db_session, JournalEntry) == 0
        assert balance_of(db_session, AccountCode.CASH_ON_HAND) == Decimal("0")

    def test_user_account_of_other_company_is_unknown(self, db_session):
        chart = ChartService(db_session)
        chart.ensure_default_accounts(OTHER_COMPANY_ID)
        chart.create_account(OTHER_COMPANY_ID, AccountCreate(
            code="6500", name="Rent", account_type=AccountType.EXPENSE,
        ))

        result = post(LedgerService(db_session), [
            JournalLine("6500", Decimal("10"), Decimal("0")),
            JournalLine(AccountCode.CASH_ON_HAND, Decimal("0"), Decimal("10")),
        ])

        assert isinstance(result, AccountNotFound)

    def test_negative_amounts_rejected(self, db_session):
        service = LedgerService(db_session)

        # Balanced on paper, but every leg runs the wrong way
        result = post(service, [
            JournalLine(AccountCode.CASH_ON_HAND, Decimal("-10"), Decimal("0")),
            JournalLine(AccountCode.GENERAL_EXPENSES, Decimal("-10"), Decimal("0")),
            JournalLine(AccountCode.SALES_REVENUE, Decimal("0"), Decimal("-20")),
        ])
        db_session.commit()

        assert isinstance(result, NegativeAmount)
        assert result.code == AccountCode.CASH_ON_HAND.value
        assert "Negative amount" in result.reason
        assert count_rows(db_session, JournalEntry) == 0
        assert balance_of(db_session, AccountCode.CASH_ON_HAND) == Decimal("0")
        assert balance_of(db_session, AccountCode.SALES_REVENUE) == Decimal("0")

    def test_negative_credit_on_later_line_rejected(self, db_session):
        result = post(LedgerService(db_session), [
            JournalLine(AccountCode.BANK, Decimal("5"), Decimal("0")),
            JournalLine(AccountCode.OTHER_INCOME, Decimal("0"), Decimal("-5")),
        ])

        assert isinstance(result, NegativeAmount)
        assert result.code == AccountCode.OTHER_INCOME.value

    def test_sub_scale_amounts_are_checked_after_rounding(self, db_session):
        service = LedgerService(db_session)

        # Each debit rounds up to 0.0001 when stored
        result = post(service, [
            JournalLine(AccountCode.CASH_ON_HAND, Decimal("0.00005"), Decimal("0")),
            JournalLine(AccountCode.CASH_ON_HAND, Decimal("0.00005"), Decimal("0")),
            JournalLine(AccountCode.SALES_REVENUE, Decimal("0"), Decimal("0.0001")),
        ])

        assert isinstance(result, Unbalanced)
        assert result.total_debit == Decimal("0.0002")
        assert result.total_credit == Decimal("0.0001")
        assert count_rows(db_session, JournalEntry) == 0


# --- Entry Numbering Tests ---

class TestEntryNumbers:

    def _post_cash_sale(self, service, company_id=COMPANY_ID):
        return post(service, [
            JournalLine(AccountCode.CASH_ON_HAND, Decimal("1"), Decimal("0")),
            JournalLine(AccountCode.SALES_REVENUE, Decimal("0"), Decimal("1")),
        ], company_id=company_id)

    def test_numbers_are_sequential(self, db_session):
        service = LedgerService(db_session)

        numbers = [self._post_cash_sale(service).entry.entry_number for _ in range(3)]

        assert numbers == ["JE-00001", "JE-00002", "JE-00003"]

    def test_numbers_are_per_company(self, db_session):
        service = LedgerService(db_session)

        first = self._post_cash_sale(service, COMPANY_ID)
        other = self._post_cash_sale(service, OTHER_COMPANY_ID)

        assert first.entry.entry_number == "JE-00001"
        assert other.entry.entry_number == "JE-00001"

    def test_rejection_does_not_consume_a_number(self, db_session):
        service = LedgerService(db_session)

        self._post_cash_sale(service)
        post(service, [
            JournalLine(AccountCode.CASH_ON_HAND, Decimal("2"), Decimal("0")),
        ])
        second = self._post_cash_sale(service)

        assert second.entry.entry_number == "JE-00002"

    def test_numbers_continue_after_rollback(self, db_session):
        service = LedgerService(db_session)
        self._post_cash_sale(service)
        db_session.commit()

        self._post_cash_sale(service)
        db_session.rollback()
        third = self._post_cash_sale(service)

        assert third.entry.entry_number == "JE-00002"


# --- Reconciliation Tests ---

class TestReconciliation:

    def test_balances_equal_sum_of_lines(self, db_session):
        service = LedgerService(db_session)
        post(service, [
            JournalLine(AccountCode.VAN_CASH, Decimal("60"), Decimal("0")),
            JournalLine(AccountCode.ACCOUNTS_RECEIVABLE, Decimal("40"), Decimal("0")),
            JournalLine(AccountCode.SALES_REVENUE, Decimal("0"), Decimal("100")),
        ])
        post(service, [
            JournalLine(AccountCode.VAN_CASH, Decimal("25"), Decimal("0")),
            JournalLine(AccountCode.ACCOUNTS_RECEIVABLE, Decimal("0"), Decimal("25")),
        ])
        post(service, [
            JournalLine(AccountCode.BANK, Decimal("85"), Decimal("0")),
            JournalLine(AccountCode.VAN_CASH, Decimal("0"), Decimal("85")),
        ])
        db_session.commit()

        reports = ReportService(db_session)
        for account in ChartService(db_session).list_accounts(COMPANY_ID):
            statement = reports.account_ledger(COMPANY_ID, account.id)
            closing = statement.lines[-1].running_balance if statement.lines else Decimal("0")
            assert closing == account.balance, account.code

    def test_entry_totals_match_lines(self, db_session):
        service = LedgerService(db_session)
        result = post(service, [
            JournalLine(AccountCode.INVENTORY, Decimal("12.34"), Decimal("0")),
            JournalLine(AccountCode.CASH_ON_HAND, Decimal("0"), Decimal("2.34")),
            JournalLine(AccountCode.ACCOUNTS_PAYABLE, Decimal("0"), Decimal("10")),
        ])
        db_session.commit()

        entry = result.entry
        assert sum(line.debit for line in entry.lines) == entry.total_debit
        assert sum(line.credit for line in entry.lines) == entry.total_credit

    def test_totals_match_stored_lines_after_rounding(self, db_session):
        service = LedgerService(db_session)
        result = post(service, [
            JournalLine(AccountCode.BANK, Decimal("10.00004"), Decimal("0")),
            JournalLine(AccountCode.OTHER_INCOME, Decimal("0"), Decimal("10.00004")),
        ])
        db_session.commit()

        entry = db_session.get(JournalEntry, result.entry.id)
        assert entry.total_debit == Decimal("10.0000")
        assert [line.debit for line in entry.lines] == [Decimal("10.0000"), Decimal("0")]
        assert sum(line.debit for line in entry.lines) == entry.total_debit
        assert balance_of(db_session, AccountCode.BANK) == Decimal("10.0000")


# --- Manual Entry Tests ---

class TestManualEntry:

    def test_manual_entry_uses_manual_reference(self, db_session):
        service = LedgerService(db_session)

        result = service.post_manual_entry(
            COMPANY_ID, ENTRY_DATE, "Opening capital",
            [
                JournalLine(AccountCode.BANK, Decimal("1000"), Decimal("0")),
                JournalLine(AccountCode.OWNERS_EQUITY, Decimal("0"), Decimal("1000")),
            ],
            created_by=3,
        )
        db_session.commit()

        assert result.entry.reference_type == "manual"
        assert result.entry.reference_id is None
        assert result.entry.created_by == 3

    def test_manual_entry_default_description(self, db_session):
        result = LedgerService(db_session).post_manual_entry(
            COMPANY_ID, ENTRY_DATE, None,
            [
                JournalLine(AccountCode.BANK, Decimal("1"), Decimal("0")),
                JournalLine(AccountCode.OWNERS_EQUITY, Decimal("0"), Decimal("1")),
            ],
        )

        assert result.entry.description == "Manual journal entry"

    def test_manual_entry_is_audited(self, db_session):
        LedgerService(db_session).post_manual_entry(
            COMPANY_ID, ENTRY_DATE, "Capital",
            [
                JournalLine(AccountCode.BANK, Decimal("1"), Decimal("0")),
                JournalLine(AccountCode.OWNERS_EQUITY, Decimal("0"), Decimal("1")),
            ],
            created_by=3,
        )
        db_session.commit()

        audit = db_session.execute(select(AuditLog)).scalar_one()
        assert audit.event_type == "journal_entry.manual_posted"
        assert "JE-00001" in audit.details

    def test_rejected_manual_entry_is_not_audited(self, db_session):
        result = LedgerService(db_session).post_manual_entry(
            COMPANY_ID, ENTRY_DATE, "Typo",
            [
                JournalLine(AccountCode.CASH_ON_HAND, Decimal("50"), Decimal("0")),
                JournalLine(AccountCode.SALES_REVENUE, Decimal("0"), Decimal("40")),
            ],
        )
        db_session.commit()

        assert isinstance(result, Unbalanced)
        assert count_rows(db_session, AuditLog) == 0


# --- Query Tests ---

class TestQueries:

    def _seed(self, service):
        for day, reference_type in ((1, "order"), (5, "expense"), (9, "order")):
            service.post_entry(
                COMPANY_ID, date(2024, 3, day), f"Day {day}", reference_type, day,
                [
                    JournalLine(AccountCode.CASH_ON_HAND, Decimal("1"), Decimal("0")),
                    JournalLine(AccountCode.OTHER_INCOME, Decimal("0"), Decimal("1")),
                ],
            )

    def test_list_newest_first(self, db_session):
        service = LedgerService(db_session)
        self._seed(service)

        entries = service.list_entries(COMPANY_ID)

        assert [e.reference_id for e in entries] == [9, 5, 1]

    def test_list_filters(self, db_session):
        service = LedgerService(db_session)
        self._seed(service)

        orders = service.list_entries(COMPANY_ID, reference_type="order")
        window = service.list_entries(
            COMPANY_ID, start_date=date(2024, 3, 2), end_date=date(2024, 3, 9)
        )

        assert [e.reference_id for e in orders] == [9, 1]
        assert [e.reference_id for e in window] == [9, 5]

    def test_list_is_scoped_to_company(self, db_session):
        service = LedgerService(db_session)
        self._seed(service)

        assert service.list_entries(OTHER_COMPANY_ID) == []

    def test_get_entry_of_other_company_raises(self, db_session):
        service = LedgerService(db_session)
        self._seed(service)
        entry = service.list_entries(COMPANY_ID)[0]

        with pytest.raises(ValueError, match="not found"):
            service.get_entry(OTHER_COMPANY_ID, entry.id)
