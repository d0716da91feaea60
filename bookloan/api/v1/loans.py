"""Loan endpoints: checkout, return, listing and staff corrections."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from bookloan.api.v1.auth import get_current_account, require_level
from bookloan.core.config import get_settings
from bookloan.core.database import get_db
from bookloan.models.account import LEVEL_STAFF_ADMIN, LEVEL_SUPERADMIN
from bookloan.schemas.account import MessageResponse
from bookloan.schemas.loan import (
    LoanCreate,
    LoanOut,
    LoanPatch,
    LoanReplace,
    LoanReturnResponse,
    LoansListResponse,
    Pagination,
)
from bookloan.services import loans as loan_service

router = APIRouter(dependencies=[Depends(get_current_account)])

DbSession = Annotated[Session, Depends(get_db)]


@router.get("", response_model=LoansListResponse)
def list_loans(
    db: DbSession,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=loan_service.MAX_PAGE_SIZE)] = 10,
    account_id: int | None = None,
    item_id: int | None = None,
    overdue: bool = False,
    include_returned: bool = False,
) -> LoansListResponse:
    """
    Open loans, newest first. Filter by account, item or overdue status;
    set include_returned=true to list closed loans too.
    """
    result = loan_service.list_loans(
        db,
        page=page,
        page_size=page_size,
        account_id=account_id,
        item_id=item_id,
        overdue=overdue,
        include_returned=include_returned,
    )
    return LoansListResponse(
        loans=[LoanOut.model_validate(loan) for loan in result.loans],
        pagination=Pagination(
            page=result.page,
            page_size=result.page_size,
            total_items=result.total_items,
            total_pages=result.total_pages,
        ),
    )


@router.get("/{loan_id}", response_model=LoanOut)
def get_loan(loan_id: int, db: DbSession) -> LoanOut:
    return LoanOut.model_validate(loan_service.get_loan(db, loan_id))


@router.post("", response_model=LoanOut, status_code=status.HTTP_201_CREATED)
def create_loan(body: LoanCreate, db: DbSession) -> LoanOut:
    """
    Lend one copy of an item. 409 when no copy is available, 400 when the
    account already holds the maximum number of open loans.
    """
    loan = loan_service.create_loan(db, get_settings(), body)
    return LoanOut.model_validate(loan)


@router.post("/{loan_id}/return", response_model=LoanReturnResponse)
def return_loan(loan_id: int, db: DbSession) -> LoanReturnResponse:
    """Close the loan and put the copy back. 409 if it was already returned."""
    loan, available = loan_service.return_loan(db, loan_id)
    return LoanReturnResponse(loan=LoanOut.model_validate(loan), item_available=available)


@router.put(
    "/{loan_id}",
    response_model=LoanOut,
    dependencies=[Depends(require_level(LEVEL_STAFF_ADMIN))],
)
def replace_loan(loan_id: int, body: LoanReplace, db: DbSession) -> LoanOut:
    return LoanOut.model_validate(loan_service.update_loan(db, loan_id, body))


@router.patch(
    "/{loan_id}",
    response_model=LoanOut,
    dependencies=[Depends(require_level(LEVEL_STAFF_ADMIN))],
)
def patch_loan(loan_id: int, body: LoanPatch, db: DbSession) -> LoanOut:
    return LoanOut.model_validate(loan_service.update_loan(db, loan_id, body))


@router.delete(
    "/{loan_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_level(LEVEL_SUPERADMIN))],
)
def delete_loan(loan_id: int, db: DbSession) -> MessageResponse:
    loan_service.soft_delete_loan(db, loan_id)
    return MessageResponse(message="Loan marked as deleted")


@router.post(
    "/accounts/{account_id}/email",
    response_model=MessageResponse,
    dependencies=[Depends(require_level(LEVEL_STAFF_ADMIN))],
)
def email_active_loans(account_id: int, db: DbSession) -> MessageResponse:
    """Email an account the list of its open loans."""
    count = loan_service.email_active_loans(db, get_settings(), account_id)
    return MessageResponse(message=f"Active loans email sent ({count} loans)")
