"""
Auto-posting: journal entries for business events.

Business services (order checkout, collections, expenses,
supplier invoices, payroll, production, returns, deposits,
raw-material purchases) call one method here AFTER their own
transaction has committed, passing plain values: company id,
amounts, dates and the id of their own record.

Bookkeeping is best effort. A rejected or failed posting is
logged and returned as a result value; it never raises into
the caller, so it can never roll back or block the sale,
payment or expense that triggered it.

Accounting recipes (Dr = debit, Cr = credit):

    order              Dr Van Cash (paid), Dr A/R (unpaid), Cr Sales Revenue
                       Dr COGS, Cr Inventory (cost)
    direct sale        Dr Cash on Hand (paid), Dr A/R (unpaid), Cr Direct Sales
                       Dr COGS, Cr Inventory (cost)
    collection         Dr Van Cash (cash) or Bank (other), Cr A/R
    expense            Dr General Expenses, Cr Cash on Hand
    supplier invoice   Dr Inventory, Cr A/P
    supplier payment   Dr A/P, Cr Cash on Hand
    salary             Dr Salaries & Wages, Cr Cash on Hand
    production         Dr Inventory, Cr Raw Material Inventory
    return             Dr Returns & Refunds, Cr Customer Credits
    deposit            Dr Bank (bank) or Cash on Hand (other), Cr Van Cash
    raw-mat. purchase  Dr Raw Material Inventory, Cr Cash (paid), Cr A/P (unpaid)
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Callable, NamedTuple

import structlog
from sqlalchemy.orm import sessionmaker

from erp_ledger.models.base import SessionLocal
from erp_ledger.models.enums import AccountCode, ReferenceType
from erp_ledger.services.ledger_service import (
    ZERO,
    JournalLine,
    LedgerService,
    to_decimal,
)
from erp_ledger.services.results import LedgerResult, Posted, PostingFailed

logger = structlog.get_logger(__name__)

Amount = Decimal | int | float | str


class TwoLegRecipe(NamedTuple):
    """A fixed one-debit, one-credit recipe for the same amount."""
    reference_type: ReferenceType
    description: str
    debit_code: AccountCode
    debit_memo: str
    credit_code: AccountCode
    credit_memo: str

    def lines(self, amount: Decimal) -> list[JournalLine]:
        return [
            JournalLine(self.debit_code, amount, ZERO, self.debit_memo),
            JournalLine(self.credit_code, ZERO, amount, self.credit_memo),
        ]


EXPENSE = TwoLegRecipe(
    ReferenceType.EXPENSE, "Expense #{id}",
    AccountCode.GENERAL_EXPENSES, "Expense recorded",
    AccountCode.CASH_ON_HAND, "Cash paid",
)
SUPPLIER_INVOICE = TwoLegRecipe(
    ReferenceType.SUPPLIER_INVOICE, "Supplier Invoice #{id}",
    AccountCode.INVENTORY, "Inventory purchased",
    AccountCode.ACCOUNTS_PAYABLE, "Supplier payable",
)
SUPPLIER_PAYMENT = TwoLegRecipe(
    ReferenceType.SUPPLIER_PAYMENT, "Supplier Payment #{id}",
    AccountCode.ACCOUNTS_PAYABLE, "Reduce accounts payable",
    AccountCode.CASH_ON_HAND, "Cash paid to supplier",
)
SALARY = TwoLegRecipe(
    ReferenceType.SALARY, "Salary Payment #{id}",
    AccountCode.SALARIES, "Salary payment",
    AccountCode.CASH_ON_HAND, "Cash paid",
)
PRODUCTION = TwoLegRecipe(
    ReferenceType.PRODUCTION, "Production #{id}",
    AccountCode.INVENTORY, "Finished goods added",
    AccountCode.RAW_MATERIAL_INVENTORY, "Raw materials consumed",
)
RETURN = TwoLegRecipe(
    ReferenceType.RETURN, "Return #{id}",
    AccountCode.RETURNS_AND_REFUNDS, "Return processed",
    AccountCode.CUSTOMER_CREDITS, "Customer credit issued",
)


def sale_lines(
    cash_code: AccountCode,
    revenue_code: AccountCode,
    revenue_memo: str,
    total: Decimal,
    paid: Decimal,
    cost: Decimal,
) -> list[JournalLine]:
    """Revenue recognition plus cost of goods sold for one sale."""
    lines = []
    debt = total - paid

    if paid > ZERO:
        lines.append(JournalLine(cash_code, paid, ZERO, "Cash received"))
    if debt > ZERO:
        lines.append(JournalLine(
            AccountCode.ACCOUNTS_RECEIVABLE, debt, ZERO, "Customer credit"
        ))
    lines.append(JournalLine(revenue_code, ZERO, total, revenue_memo))

    if cost > ZERO:
        lines.append(JournalLine(
            AccountCode.COST_OF_GOODS_SOLD, cost, ZERO, "Cost of goods sold"
        ))
        lines.append(JournalLine(
            AccountCode.INVENTORY, ZERO, cost, "Inventory reduction"
        ))
    return lines


class AutoPostingService:
    """
    Entry point for every producer of journal entries.

    Each call is its own unit of work: a fresh session is opened,
    the entry is posted, and the session is committed on success
    or rolled back otherwise. No session or balance outlives the
    call.
    """

    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self.session_factory = session_factory

    # --- Sales ---

    def post_order(
        self,
        company_id: int,
        order_id: int,
        total_amount: Amount,
        paid_amount: Amount,
        cost_amount: Amount,
        order_date: date | datetime,
        created_by: int | None = None,
    ) -> LedgerResult:
        return self._post(
            company_id, order_date, f"Sales Order #{order_id}",
            ReferenceType.ORDER, order_id,
            lambda: sale_lines(
                AccountCode.VAN_CASH,
                AccountCode.SALES_REVENUE,
                "Sales revenue",
                to_decimal(total_amount),
                to_decimal(paid_amount),
                to_decimal(cost_amount),
            ),
            created_by,
        )

    def post_direct_sale(
        self,
        company_id: int,
        order_id: int,
        total_amount: Amount,
        paid_amount: Amount,
        cost_amount: Amount,
        sale_date: date | datetime,
        created_by: int | None = None,
    ) -> LedgerResult:
        return self._post(
            company_id, sale_date, f"Direct Sale #{order_id}",
            ReferenceType.DIRECT_SALE, order_id,
            lambda: sale_lines(
                AccountCode.CASH_ON_HAND,
                AccountCode.DIRECT_SALES_REVENUE,
                "Direct sales revenue",
                to_decimal(total_amount),
                to_decimal(paid_amount),
                to_decimal(cost_amount),
            ),
            created_by,
        )

    def post_collection(
        self,
        company_id: int,
        collection_id: int,
        amount: Amount,
        payment_type: str,
        collection_date: date | datetime,
        created_by: int | None = None,
    ) -> LedgerResult:
        """Customer pays down debt: cash goes to the van, anything else to the bank."""
        cash_code = (
            AccountCode.VAN_CASH if payment_type == "cash" else AccountCode.BANK
        )

        def lines():
            value = to_decimal(amount)
            return [
                JournalLine(
                    cash_code, value, ZERO,
                    f"Collection received ({payment_type})",
                ),
                JournalLine(
                    AccountCode.ACCOUNTS_RECEIVABLE, ZERO, value,
                    "Reduce accounts receivable",
                ),
            ]

        return self._post(
            company_id, collection_date, f"Collection #{collection_id}",
            ReferenceType.COLLECTION, collection_id, lines, created_by,
        )

    def post_return(
        self,
        company_id: int,
        return_id: int,
        amount: Amount,
        return_date: date | datetime,
        created_by: int | None = None,
    ) -> LedgerResult:
        return self._post_two_leg(
            RETURN, company_id, return_id, amount, return_date, created_by
        )

    def post_deposit(
        self,
        company_id: int,
        deposit_id: int,
        amount: Amount,
        deposit_type: str,
        deposit_date: date | datetime,
        created_by: int | None = None,
    ) -> LedgerResult:
        """A driver hands van cash over to the bank or the office safe."""
        cash_code = (
            AccountCode.BANK if deposit_type == "bank" else AccountCode.CASH_ON_HAND
        )

        def lines():
            value = to_decimal(amount)
            return [
                JournalLine(
                    cash_code, value, ZERO,
                    f"Deposit received ({deposit_type})",
                ),
                JournalLine(
                    AccountCode.VAN_CASH, ZERO, value, "Van cash deposited",
                ),
            ]

        return self._post(
            company_id, deposit_date, f"Deposit #{deposit_id}",
            ReferenceType.DEPOSIT, deposit_id, lines, created_by,
        )

    # --- Spending ---

    def post_expense(
        self,
        company_id: int,
        expense_id: int,
        amount: Amount,
        expense_date: date | datetime,
        created_by: int | None = None,
    ) -> LedgerResult:
        return self._post_two_leg(
            EXPENSE, company_id, expense_id, amount, expense_date, created_by
        )

    def post_supplier_invoice(
        self,
        company_id: int,
        invoice_id: int,
        total_amount: Amount,
        invoice_date: date | datetime,
        created_by: int | None = None,
    ) -> LedgerResult:
        return self._post_two_leg(
            SUPPLIER_INVOICE, company_id, invoice_id,
            total_amount, invoice_date, created_by,
        )

    def post_supplier_payment(
        self,
        company_id: int,
        payment_id: int,
        amount: Amount,
        payment_date: date | datetime,
        created_by: int | None = None,
    ) -> LedgerResult:
        return self._post_two_leg(
            SUPPLIER_PAYMENT, company_id, payment_id,
            amount, payment_date, created_by,
        )

    def post_salary(
        self,
        company_id: int,
        payment_id: int,
        amount: Amount,
        payment_date: date | datetime,
        created_by: int | None = None,
    ) -> LedgerResult:
        return self._post_two_leg(
            SALARY, company_id, payment_id, amount, payment_date, created_by
        )

    def post_raw_material_purchase(
        self,
        company_id: int,
        purchase_id: int,
        total_amount: Amount,
        paid_amount: Amount,
        purchase_date: date | datetime,
        created_by: int | None = None,
    ) -> LedgerResult:
        def lines():
            total = to_decimal(total_amount)
            paid = to_decimal(paid_amount)
            unpaid = total - paid

            result = [JournalLine(
                AccountCode.RAW_MATERIAL_INVENTORY, total, ZERO,
                "Raw materials purchased",
            )]
            if paid > ZERO:
                result.append(JournalLine(
                    AccountCode.CASH_ON_HAND, ZERO, paid, "Cash paid"
                ))
            if unpaid > ZERO:
                result.append(JournalLine(
                    AccountCode.ACCOUNTS_PAYABLE, ZERO, unpaid, "Supplier payable"
                ))
            return result

        return self._post(
            company_id, purchase_date, f"RM Purchase #{purchase_id}",
            ReferenceType.RM_PURCHASE, purchase_id, lines, created_by,
        )

    # --- Production ---

    def post_production(
        self,
        company_id: int,
        production_id: int,
        total_cost: Amount,
        completion_date: date | datetime,
        created_by: int | None = None,
    ) -> LedgerResult:
        return self._post_two_leg(
            PRODUCTION, company_id, production_id,
            total_cost, completion_date, created_by,
        )

    # --- Manual entries & reversals ---

    def post_manual_entry(
        self,
        company_id: int,
        entry_date: date | datetime,
        description: str | None,
        lines: list[JournalLine | tuple],
        created_by: int | None = None,
    ) -> LedgerResult:
        return self._run(
            "manual", company_id,
            lambda ledger: ledger.post_manual_entry(
                company_id, entry_date, description, lines, created_by
            ),
        )

    def reverse_entry(
        self,
        company_id: int,
        entry_id: int,
        created_by: int | None = None,
    ) -> LedgerResult:
        return self._run(
            "reversal", company_id,
            lambda ledger: ledger.reverse_entry(company_id, entry_id, created_by),
        )

    # --- Plumbing ---

    def _post_two_leg(
        self,
        recipe: TwoLegRecipe,
        company_id: int,
        reference_id: int,
        amount: Amount,
        entry_date: date | datetime,
        created_by: int | None,
    ) -> LedgerResult:
        return self._post(
            company_id,
            entry_date,
            recipe.description.format(id=reference_id),
            recipe.reference_type,
            reference_id,
            lambda: recipe.lines(to_decimal(amount)),
            created_by,
        )

    def _post(
        self,
        company_id: int,
        entry_date: date | datetime,
        description: str,
        reference_type: ReferenceType,
        reference_id: int,
        build_lines: Callable[[], list[JournalLine]],
        created_by: int | None,
    ) -> LedgerResult:
        # Lines are built inside _run so a bad amount is caught like
        # any other posting failure
        return self._run(
            reference_type.value, company_id,
            lambda ledger: ledger.post_entry(
                company_id, entry_date, description,
                reference_type, reference_id, build_lines(), created_by,
            ),
        )

    def _run(
        self,
        posting: str,
        company_id: int,
        operation: Callable[[LedgerService], LedgerResult],
    ) -> LedgerResult:
        try:
            with self.session_factory(expire_on_commit=False) as session:
                result = operation(LedgerService(session))
                if isinstance(result, Posted):
                    session.commit()
                else:
                    session.rollback()
                return result
        except Exception as e:
            logger.exception(
                "auto_posting_failed",
                posting=posting,
                company_id=company_id,
                error=str(e),
            )
            return PostingFailed(str(e))
