"""
Chart of accounts service.

Seeds the default chart for a company, resolves account codes
for the posting engine, and manages user-defined accounts.
Every query is scoped to a company; an account of one company
is invisible to every other.
"""

import structlog
from sqlalchemy import select, exists
from sqlalchemy.orm import Session

from erp_ledger.models.base import insert_missing
from erp_ledger.models.chart_of_account import ChartOfAccount
from erp_ledger.models.journal_entry_line import JournalEntryLine
from erp_ledger.models.enums import AccountCode, AccountType
from erp_ledger.schemas.accounting import AccountCreate, AccountUpdate
from erp_ledger.services.audit_service import AuditService
from erp_ledger.services.sequence_service import SequenceService

logger = structlog.get_logger(__name__)


# The chart every company starts with. Posting recipes only
# reference codes from this table.
DEFAULT_CHART: list[tuple[AccountCode, str, AccountType, str]] = [
    (AccountCode.CASH_ON_HAND, "Cash on Hand", AccountType.ASSET, "Current Asset"),
    (AccountCode.BANK, "Bank Account", AccountType.ASSET, "Current Asset"),
    (AccountCode.ACCOUNTS_RECEIVABLE, "Accounts Receivable", AccountType.ASSET, "Current Asset"),
    (AccountCode.INVENTORY, "Inventory", AccountType.ASSET, "Current Asset"),
    (AccountCode.RAW_MATERIAL_INVENTORY, "Raw Material Inventory", AccountType.ASSET, "Current Asset"),
    (AccountCode.VAN_CASH, "Van Cash", AccountType.ASSET, "Current Asset"),

    (AccountCode.ACCOUNTS_PAYABLE, "Accounts Payable", AccountType.LIABILITY, "Current Liability"),
    (AccountCode.CUSTOMER_CREDITS, "Customer Credits", AccountType.LIABILITY, "Current Liability"),
    (AccountCode.TAX_PAYABLE, "Tax Payable", AccountType.LIABILITY, "Current Liability"),

    (AccountCode.OWNERS_EQUITY, "Owner's Equity", AccountType.EQUITY, "Equity"),
    (AccountCode.RETAINED_EARNINGS, "Retained Earnings", AccountType.EQUITY, "Equity"),

    (AccountCode.SALES_REVENUE, "Sales Revenue", AccountType.REVENUE, "Income"),
    (AccountCode.DIRECT_SALES_REVENUE, "Direct Sales Revenue", AccountType.REVENUE, "Income"),
    (AccountCode.ONLINE_SALES_REVENUE, "Online Sales Revenue", AccountType.REVENUE, "Income"),
    (AccountCode.OTHER_INCOME, "Other Income", AccountType.REVENUE, "Income"),

    (AccountCode.COST_OF_GOODS_SOLD, "Cost of Goods Sold", AccountType.EXPENSE, "COGS"),
    (AccountCode.RAW_MATERIAL_COST, "Raw Material Cost", AccountType.EXPENSE, "COGS"),
    (AccountCode.PRODUCTION_COST, "Production Cost", AccountType.EXPENSE, "COGS"),
    (AccountCode.SALARIES, "Salaries & Wages", AccountType.EXPENSE, "Operating Expense"),
    (AccountCode.GENERAL_EXPENSES, "General Expenses", AccountType.EXPENSE, "Operating Expense"),
    (AccountCode.DELIVERY_EXPENSES, "Delivery Expenses", AccountType.EXPENSE, "Operating Expense"),
    (AccountCode.RETURNS_AND_REFUNDS, "Returns & Refunds", AccountType.EXPENSE, "Operating Expense"),
]


def code_value(code: AccountCode | str) -> str:
    """Plain string form of an account code."""
    return code.value if isinstance(code, AccountCode) else code


class ChartService:

    def __init__(self, db: Session):
        self.db = db

    def ensure_default_accounts(self, company_id: int) -> int:
        """
        Seed the default chart of accounts for a company.

        Does nothing if the company already owns at least one
        account. Concurrent first postings for the same company may
        both get past that check; their inserts skip codes that are
        already taken, so all of them proceed with the one chart.
        Returns the number of accounts this call created.
        """
        has_accounts = self.db.execute(
            select(exists().where(ChartOfAccount.company_id == company_id))
        ).scalar()
        if has_accounts:
            return 0

        created = insert_missing(
            self.db,
            ChartOfAccount,
            [
                {
                    "company_id": company_id,
                    "code": code.value,
                    "name": name,
                    "account_type": account_type,
                    "category": category,
                    "is_system": True,
                    "is_active": True,
                }
                for code, name, account_type, category in DEFAULT_CHART
            ],
            ["company_id", "code"],
        )
        SequenceService(self.db).ensure(company_id)

        if created:
            logger.info(
                "default_chart_seeded",
                company_id=company_id,
                accounts=created,
            )
        return created

    def resolve(
        self, company_id: int, code: AccountCode | str
    ) -> ChartOfAccount | None:
        """Look up an account by code within one company's chart."""
        return self.db.execute(
            select(ChartOfAccount).where(
                ChartOfAccount.company_id == company_id,
                ChartOfAccount.code == code_value(code),
            )
        ).scalar_one_or_none()

    def list_accounts(
        self,
        company_id: int,
        account_type: AccountType | None = None,
        active_only: bool = False,
    ) -> list[ChartOfAccount]:
        """Return the company's accounts ordered by code."""
        query = select(ChartOfAccount).where(
            ChartOfAccount.company_id == company_id
        )
        if account_type is not None:
            query = query.where(ChartOfAccount.account_type == account_type)
        if active_only:
            query = query.where(ChartOfAccount.is_active.is_(True))

        accounts = self.db.execute(
            query.order_by(ChartOfAccount.code)
        ).scalars().all()
        return list(accounts)

    def get_account(self, company_id: int, account_id: int) -> ChartOfAccount:
        """Get an account by ID. Raises ValueError if it is not the company's."""
        account = self.db.execute(
            select(ChartOfAccount).where(
                ChartOfAccount.id == account_id,
                ChartOfAccount.company_id == company_id,
            )
        ).scalar_one_or_none()
        if not account:
            raise ValueError(f"Account {account_id} not found")
        return account

    def create_account(
        self,
        company_id: int,
        request: AccountCreate,
        actor_id: int | None = None,
    ) -> ChartOfAccount:
        """
        Add a user-defined account to the chart.

        Raises ValueError if the code is taken or the parent
        account does not belong to the company.
        """
        if self.resolve(company_id, request.code):
            raise ValueError(f"Account with code '{request.code}' already exists")
        if request.parent_id is not None:
            self.get_account(company_id, request.parent_id)

        account = ChartOfAccount(
            company_id=company_id,
            code=request.code,
            name=request.name,
            account_type=request.account_type,
            category=request.category,
            parent_id=request.parent_id,
            description=request.description,
            is_system=False,
            is_active=True,
        )
        self.db.add(account)
        self.db.flush()

        AuditService(self.db).record(
            company_id, "account.created", actor_id,
            account_id=account.id, code=account.code,
        )
        return account

    def update_account(
        self,
        company_id: int,
        account_id: int,
        request: AccountUpdate,
        actor_id: int | None = None,
    ) -> ChartOfAccount:
        """
        Replace an account's editable fields.

        System accounts keep their code, and an account that
        already carries journal lines keeps its type, because
        the sign of its balance depends on it.
        """
        account = self.get_account(company_id, account_id)

        if request.code != account.code:
            if account.is_system:
                raise ValueError("Cannot change code of system account")
            if self.resolve(company_id, request.code):
                raise ValueError(
                    f"Account with code '{request.code}' already exists"
                )

        if request.account_type != account.account_type and self._has_lines(account.id):
            raise ValueError("Cannot change type of account with journal entries")

        if request.parent_id is not None:
            ancestor = self.get_account(company_id, request.parent_id)
            while ancestor is not None:
                if ancestor.id == account.id:
                    raise ValueError("Account cannot be its own parent or ancestor")
                ancestor = ancestor.parent

        account.code = request.code
        account.name = request.name
        account.account_type = request.account_type
        account.category = request.category
        account.parent_id = request.parent_id
        account.description = request.description
        account.is_active = request.is_active
        self.db.flush()

        AuditService(self.db).record(
            company_id, "account.updated", actor_id,
            account_id=account.id, code=account.code,
        )
        return account

    def delete_account(
        self,
        company_id: int,
        account_id: int,
        actor_id: int | None = None,
    ) -> None:
        """
        Delete an account that was never used.

        System accounts, accounts referenced by journal lines and
        accounts with sub-accounts cannot be deleted.
        """
        account = self.get_account(company_id, account_id)

        if account.is_system:
            raise ValueError("Cannot delete system account")
        if self._has_lines(account.id):
            raise ValueError("Cannot delete account with journal entries")

        has_children = self.db.execute(
            select(exists().where(ChartOfAccount.parent_id == account.id))
        ).scalar()
        if has_children:
            raise ValueError("Cannot delete account with sub-accounts")

        code = account.code
        self.db.delete(account)
        self.db.flush()

        AuditService(self.db).record(
            company_id, "account.deleted", actor_id,
            account_id=account_id, code=code,
        )

    def _has_lines(self, account_id: int) -> bool:
        return bool(self.db.execute(
            select(exists().where(JournalEntryLine.account_id == account_id))
        ).scalar())
