"""
Accounting API endpoints.

The API layer is thin: it resolves the tenant and the acting
user from request headers, delegates to the services, commits
on success and maps failures to HTTP status codes.

Authentication happens upstream; by the time a request gets
here X-Company-Id is trusted.
"""

from datetime import date

from fastapi import APIRouter, Depends, Header, HTTPException, Response
from sqlalchemy.orm import Session

from erp_ledger.models.base import get_db
from erp_ledger.models.enums import AccountType
from erp_ledger.schemas.accounting import (
    AccountCreate,
    AccountUpdate,
    AccountResponse,
    ManualEntryCreate,
    JournalEntryResponse,
    ReversalResponse,
    AccountLedgerResponse,
    TrialBalanceLine,
)
from erp_ledger.services.chart_service import ChartService
from erp_ledger.services.ledger_service import LedgerService, JournalLine
from erp_ledger.services.report_service import ReportService
from erp_ledger.services.results import Posted

router = APIRouter(prefix="/accounting", tags=["Accounting"])


def get_company_id(x_company_id: int = Header(...)) -> int:
    return x_company_id


def get_actor_id(x_user_id: int | None = Header(default=None)) -> int | None:
    return x_user_id


# --- Chart of Accounts ---

@router.get("/accounts", response_model=list[AccountResponse])
def list_accounts(
    account_type: AccountType | None = None,
    active_only: bool = False,
    company_id: int = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    """List the chart of accounts, seeding the defaults on first use."""
    service = ChartService(db)
    if service.ensure_default_accounts(company_id):
        db.commit()
    return service.list_accounts(company_id, account_type, active_only)


@router.get("/accounts/{account_id}", response_model=AccountResponse)
def get_account(
    account_id: int,
    company_id: int = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    service = ChartService(db)
    try:
        return service.get_account(company_id, account_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/accounts", response_model=AccountResponse, status_code=201)
def create_account(
    request: AccountCreate,
    company_id: int = Depends(get_company_id),
    actor_id: int | None = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    service = ChartService(db)
    try:
        service.ensure_default_accounts(company_id)
        account = service.create_account(company_id, request, actor_id)
        db.commit()
        return account
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))


@router.put("/accounts/{account_id}", response_model=AccountResponse)
def update_account(
    account_id: int,
    request: AccountUpdate,
    company_id: int = Depends(get_company_id),
    actor_id: int | None = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    service = ChartService(db)
    try:
        service.get_account(company_id, account_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))

    try:
        account = service.update_account(company_id, account_id, request, actor_id)
        db.commit()
        return account
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/accounts/{account_id}", status_code=204)
def delete_account(
    account_id: int,
    company_id: int = Depends(get_company_id),
    actor_id: int | None = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    service = ChartService(db)
    try:
        service.get_account(company_id, account_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))

    try:
        service.delete_account(company_id, account_id, actor_id)
        db.commit()
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))
    return Response(status_code=204)


# --- Journal Entries ---

@router.get("/journal-entries", response_model=list[JournalEntryResponse])
def list_journal_entries(
    start_date: date | None = None,
    end_date: date | None = None,
    reference_type: str | None = None,
    company_id: int = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    """Newest entries first, at most 500."""
    service = LedgerService(db)
    entries = service.list_entries(
        company_id, start_date, end_date, reference_type
    )
    return [JournalEntryResponse.from_entry(e) for e in entries]


@router.get("/journal-entries/{entry_id}", response_model=JournalEntryResponse)
def get_journal_entry(
    entry_id: int,
    company_id: int = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    service = LedgerService(db)
    try:
        return JournalEntryResponse.from_entry(
            service.get_entry(company_id, entry_id)
        )
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post(
    "/journal-entries",
    response_model=JournalEntryResponse,
    status_code=201,
)
def create_manual_entry(
    request: ManualEntryCreate,
    company_id: int = Depends(get_company_id),
    actor_id: int | None = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """
    Post a manual journal entry.

    Lines are addressed by account code. An unbalanced entry or
    an unknown code is rejected with 400 and nothing is written.
    """
    service = LedgerService(db)
    result = service.post_manual_entry(
        company_id,
        request.entry_date,
        request.description,
        [
            JournalLine(line.account_code, line.debit, line.credit, line.description)
            for line in request.lines
        ],
        actor_id,
    )
    if not isinstance(result, Posted):
        db.rollback()
        raise HTTPException(status_code=400, detail=result.reason)

    db.commit()
    return JournalEntryResponse.from_entry(
        service.get_entry(company_id, result.entry.id)
    )


@router.post(
    "/journal-entries/{entry_id}/reverse",
    response_model=ReversalResponse,
)
def reverse_journal_entry(
    entry_id: int,
    company_id: int = Depends(get_company_id),
    actor_id: int | None = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """Post the mirror entry of a journal entry and mark it reversed."""
    service = LedgerService(db)
    result = service.reverse_entry(company_id, entry_id, actor_id)
    if not isinstance(result, Posted):
        db.rollback()
        raise HTTPException(status_code=400, detail=result.reason)

    db.commit()
    return ReversalResponse(
        message="Entry reversed successfully",
        reversal_id=result.entry.id,
        entry_number=result.entry.entry_number,
    )


# --- Ledger & Reports ---

@router.get("/ledger/{account_id}", response_model=AccountLedgerResponse)
def get_account_ledger(
    account_id: int,
    start_date: date | None = None,
    end_date: date | None = None,
    company_id: int = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    service = ReportService(db)
    try:
        return service.account_ledger(company_id, account_id, start_date, end_date)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get(
    "/reports/trial-balance",
    response_model=list[TrialBalanceLine],
)
def get_trial_balance(
    as_of: date | None = None,
    company_id: int = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    service = ReportService(db)
    report = service.trial_balance(company_id, as_of)
    db.commit()
    return report
