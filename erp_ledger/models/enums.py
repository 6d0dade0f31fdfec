"""
Shared enumerations for database models.

Python enums mapped to database enums mean only valid values
can be stored. AccountCode is the closed registry of system
account codes that every posting recipe refers to.
"""

import enum


class AccountType(str, enum.Enum):
    """The five fundamental accounting categories."""
    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"

    @property
    def is_debit_normal(self) -> bool:
        """Assets and expenses grow with debits; everything else with credits."""
        return self in (AccountType.ASSET, AccountType.EXPENSE)


class AccountCode(str, enum.Enum):
    """Codes of the system accounts seeded for every company."""

    # Assets (1xxx)
    CASH_ON_HAND = "1000"
    BANK = "1010"
    ACCOUNTS_RECEIVABLE = "1020"
    INVENTORY = "1030"
    RAW_MATERIAL_INVENTORY = "1035"
    VAN_CASH = "1040"

    # Liabilities (2xxx)
    ACCOUNTS_PAYABLE = "2000"
    CUSTOMER_CREDITS = "2010"
    TAX_PAYABLE = "2020"

    # Equity (3xxx)
    OWNERS_EQUITY = "3000"
    RETAINED_EARNINGS = "3010"

    # Revenue (4xxx)
    SALES_REVENUE = "4000"
    DIRECT_SALES_REVENUE = "4010"
    ONLINE_SALES_REVENUE = "4020"
    OTHER_INCOME = "4090"

    # Expenses (5xxx = COGS, 6xxx = operating)
    COST_OF_GOODS_SOLD = "5000"
    RAW_MATERIAL_COST = "5010"
    PRODUCTION_COST = "5020"
    SALARIES = "6000"
    GENERAL_EXPENSES = "6010"
    DELIVERY_EXPENSES = "6020"
    RETURNS_AND_REFUNDS = "6090"


class ReferenceType(str, enum.Enum):
    """The business event that produced a journal entry."""
    ORDER = "order"
    DIRECT_SALE = "direct_sale"
    COLLECTION = "collection"
    EXPENSE = "expense"
    SUPPLIER_INVOICE = "supplier_invoice"
    SUPPLIER_PAYMENT = "supplier_payment"
    SALARY = "salary"
    PRODUCTION = "production"
    RETURN = "return"
    DEPOSIT = "deposit"
    RM_PURCHASE = "rm_purchase"
    MANUAL = "manual"
    REVERSAL = "reversal"
