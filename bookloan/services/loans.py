"""Loans: creation and return keep inventory counts consistent.

Both paired writes run in one session transaction, and the inventory change
is a conditional UPDATE (``available > 0`` on checkout, ``returned = false``
on return), so the database serializes concurrent requests: with one copy
left, two checkouts yield exactly one success and one "not available".
"""

import logging
import math
from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from bookloan.core.errors import Conflict, NotFound, ValidationFailed
from bookloan.models import Account, InventoryItem, Loan
from bookloan.models.account import STATUS_ACTIVE
from bookloan.schemas.loan import LoanCreate, LoanPatch, LoanReplace
from bookloan.services import audit
from bookloan.services.mailer import active_loans_message, send_mail

if TYPE_CHECKING:
    from bookloan.core.config import Settings

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


@dataclass
class LoanPage:
    loans: list[Loan]
    page: int
    page_size: int
    total_items: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_items / self.page_size) if self.page_size else 0


def _today() -> date:
    return date.today()


def _take_copy(session: Session, item_id: int) -> None:
    """Decrement available if a copy is on the shelf; raises Conflict otherwise."""
    result = session.execute(
        update(InventoryItem)
        .where(
            InventoryItem.id == item_id,
            InventoryItem.deleted.is_(False),
            InventoryItem.available > 0,
        )
        .values(available=InventoryItem.available - 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        session.rollback()
        raise Conflict("Item not available")


def _put_back_copy(session: Session, item_id: int) -> None:
    session.execute(
        update(InventoryItem)
        .where(InventoryItem.id == item_id)
        .values(available=InventoryItem.available + 1)
        .execution_options(synchronize_session=False)
    )


def _active_account(session: Session, account_id: int) -> Account:
    account = (
        session.query(Account)
        .filter(Account.id == account_id, Account.deleted.is_(False))
        .first()
    )
    if account is None or account.status != STATUS_ACTIVE or account.locked:
        raise NotFound("Account not found or inactive")
    return account


def _existing_item(session: Session, item_id: int) -> InventoryItem:
    item = (
        session.query(InventoryItem)
        .filter(InventoryItem.id == item_id, InventoryItem.deleted.is_(False))
        .first()
    )
    if item is None:
        raise NotFound("Item not found")
    return item


def count_open_loans(session: Session, account_id: int) -> int:
    return (
        session.query(func.count(Loan.id))
        .filter(
            Loan.account_id == account_id,
            Loan.returned.is_(False),
            Loan.deleted.is_(False),
        )
        .scalar()
        or 0
    )


def get_loan(session: Session, loan_id: int) -> Loan:
    loan = (
        session.query(Loan)
        .filter(Loan.id == loan_id, Loan.deleted.is_(False))
        .first()
    )
    if loan is None:
        raise NotFound("Loan not found")
    return loan


def list_loans(
    session: Session,
    page: int = 1,
    page_size: int = 10,
    account_id: int | None = None,
    item_id: int | None = None,
    overdue: bool = False,
    include_returned: bool = False,
) -> LoanPage:
    """Open loans (or all, with include_returned), newest first, paginated."""
    page = max(page, 1)
    page_size = min(max(page_size, 1), MAX_PAGE_SIZE)

    query = session.query(Loan).filter(Loan.deleted.is_(False))
    if not include_returned:
        query = query.filter(Loan.returned.is_(False))
    if account_id is not None:
        query = query.filter(Loan.account_id == account_id)
    if item_id is not None:
        query = query.filter(Loan.item_id == item_id)
    if overdue:
        query = query.filter(Loan.returned.is_(False), Loan.due_date < _today())

    total = query.count()
    loans = (
        query.order_by(Loan.loaned_at.desc(), Loan.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return LoanPage(loans=loans, page=page, page_size=page_size, total_items=total)


def create_loan(session: Session, settings: "Settings", body: LoanCreate) -> Loan:
    """
    Lend one copy of an item to an account.

    Checks, in order: due date in the future (400), account ACTIVE and not
    locked (404), open-loan cap (400), item exists (404), a copy is on the
    shelf (409). The decrement and the insert commit together.
    """
    if body.due_date <= _today():
        raise ValidationFailed("Due date must be in the future")
    _active_account(session, body.account_id)
    if count_open_loans(session, body.account_id) >= settings.MAX_ACTIVE_LOANS:
        raise ValidationFailed(
            f"Account reached the maximum of {settings.MAX_ACTIVE_LOANS} active loans"
        )
    item = _existing_item(session, body.item_id)
    if item.available <= 0:
        raise Conflict("Item not available")

    _take_copy(session, body.item_id)
    loan = Loan(
        account_id=body.account_id,
        item_id=body.item_id,
        due_date=body.due_date,
        returned=False,
    )
    session.add(loan)
    session.flush()
    audit.record(
        session,
        audit.LOAN_CREATED,
        f"Loan {loan.id} created for account {body.account_id} (item {body.item_id})",
        body.account_id,
    )
    session.commit()
    session.refresh(loan)
    return loan


def return_loan(session: Session, loan_id: int) -> tuple[Loan, int]:
    """
    Close a loan and put the copy back; returns the loan and the item's new count.

    A second return raises Conflict and leaves the inventory untouched.
    """
    loan = get_loan(session, loan_id)
    if loan.returned:
        raise Conflict("Loan already returned")

    result = session.execute(
        update(Loan)
        .where(Loan.id == loan_id, Loan.returned.is_(False))
        .values(returned=True, returned_at=datetime.now(UTC))
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        session.rollback()
        raise Conflict("Loan already returned")
    _put_back_copy(session, loan.item_id)
    audit.record(
        session,
        audit.LOAN_RETURNED,
        f"Item {loan.item_id} returned by account {loan.account_id} (loan {loan.id})",
        loan.account_id,
    )
    session.commit()
    session.refresh(loan)
    available = (
        session.query(InventoryItem.available)
        .filter(InventoryItem.id == loan.item_id)
        .scalar()
    )
    return loan, available


def update_loan(session: Session, loan_id: int, body: LoanReplace | LoanPatch) -> Loan:
    """
    Change the account, item or due date of an open loan.

    Returned loans are closed history (409). Moving to another item takes a
    copy of the new item and puts the old one back in the same transaction.
    """
    loan = get_loan(session, loan_id)
    if loan.returned:
        raise Conflict("Loan already returned")
    changes = body.model_dump(exclude_none=True)
    if not changes:
        raise ValidationFailed("No fields to update")
    if "due_date" in changes and changes["due_date"] <= _today():
        raise ValidationFailed("Due date must be in the future")

    new_account_id = changes.get("account_id")
    if new_account_id is not None and new_account_id != loan.account_id:
        exists = (
            session.query(Account.id)
            .filter(Account.id == new_account_id, Account.deleted.is_(False))
            .first()
        )
        if exists is None:
            raise NotFound("Account not found")
        loan.account_id = new_account_id

    new_item_id = changes.get("item_id")
    if new_item_id is not None and new_item_id != loan.item_id:
        _existing_item(session, new_item_id)
        old_item_id = loan.item_id
        _take_copy(session, new_item_id)
        _put_back_copy(session, old_item_id)
        loan.item_id = new_item_id

    if "due_date" in changes:
        loan.due_date = changes["due_date"]

    session.commit()
    return get_loan(session, loan_id)


def soft_delete_loan(session: Session, loan_id: int) -> None:
    """Hide a closed loan; open loans must be returned first."""
    loan = get_loan(session, loan_id)
    if not loan.returned:
        raise Conflict("Return the loan before deleting it")
    loan.deleted = True
    loan.deleted_at = datetime.now(UTC)
    session.commit()


def email_active_loans(session: Session, settings: "Settings", account_id: int) -> int:
    """Email an account the list of its open loans; returns how many were listed."""
    account = (
        session.query(Account)
        .filter(Account.id == account_id, Account.deleted.is_(False))
        .first()
    )
    if account is None:
        raise NotFound("Account not found")
    loans = (
        session.query(Loan)
        .filter(
            Loan.account_id == account_id,
            Loan.returned.is_(False),
            Loan.deleted.is_(False),
        )
        .order_by(Loan.due_date)
        .all()
    )
    subject, text = active_loans_message(account, loans)
    send_mail(settings, account.email, subject, text)
    return len(loans)
