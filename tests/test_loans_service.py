"""Unit tests for bookloan.services.loans: inventory stays in step with checkouts and returns."""

import tempfile
import threading
import unittest
from datetime import date, timedelta
from pathlib import Path
from unittest.mock import patch

from sqlalchemy import Engine, create_engine

from bookloan.core.errors import Conflict, NotFound, ValidationFailed
from bookloan.models import InventoryItem, Loan
from bookloan.models.account import STATUS_INACTIVE
from bookloan.schemas.loan import LoanCreate, LoanPatch
from bookloan.services import audit, loans
from tests.support import DatabaseTestCase


def _due(days: int = 14) -> date:
    return date.today() + timedelta(days=days)


class LoanTestCase(DatabaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.account = self.make_account()

    def available(self, item: InventoryItem) -> int:
        self.db.expire_all()
        return self.db.get(InventoryItem, item.id).available

    def checkout(self, item: InventoryItem, account_id: int | None = None) -> Loan:
        body = LoanCreate(
            account_id=account_id or self.account.id,
            item_id=item.id,
            due_date=_due(),
        )
        return loans.create_loan(self.db, self.settings, body)


class TestCreateLoan(LoanTestCase):
    def test_checkout_decrements_available(self) -> None:
        item = self.make_item(available=2)
        loan = self.checkout(item)
        self.assertFalse(loan.returned)
        self.assertEqual(self.available(item), 1)

    def test_checkout_is_audited(self) -> None:
        item = self.make_item()
        self.checkout(item)
        actions = [e.action for e in audit.latest_for_account(self.db, self.account.id)]
        self.assertIn(audit.LOAN_CREATED, actions)

    def test_second_checkout_of_last_copy_conflicts(self) -> None:
        item = self.make_item(available=1)
        other = self.make_account(email="other@example.com")
        self.checkout(item)
        with self.assertRaises(Conflict) as ctx:
            self.checkout(item, account_id=other.id)
        self.assertIn("not available", ctx.exception.message)
        self.assertEqual(self.db.get(InventoryItem, item.id).available, 0)
        self.assertEqual(self.db.query(Loan).count(), 1)

    def test_conditional_decrement_rejects_stale_read(self) -> None:
        """A request that saw a copy on the shelf still fails if it is gone by the UPDATE."""
        item = self.make_item(available=1)
        self.db.query(InventoryItem).filter_by(id=item.id).update({"available": 0})
        self.db.commit()
        with self.assertRaises(Conflict):
            loans._take_copy(self.db, item.id)
        self.assertEqual(self.available(item), 0)

    def test_due_date_must_be_future(self) -> None:
        item = self.make_item()
        body = LoanCreate(account_id=self.account.id, item_id=item.id, due_date=date.today())
        with self.assertRaises(ValidationFailed):
            loans.create_loan(self.db, self.settings, body)
        self.assertEqual(self.available(item), 1)

    def test_inactive_account_rejected(self) -> None:
        item = self.make_item()
        inactive = self.make_account(email="new@example.com", status=STATUS_INACTIVE)
        with self.assertRaises(NotFound):
            self.checkout(item, account_id=inactive.id)

    def test_locked_account_rejected(self) -> None:
        item = self.make_item()
        locked = self.make_account(email="locked@example.com", locked=True)
        with self.assertRaises(NotFound):
            self.checkout(item, account_id=locked.id)

    def test_unknown_item(self) -> None:
        with self.assertRaises(NotFound):
            loans.create_loan(
                self.db,
                self.settings,
                LoanCreate(account_id=self.account.id, item_id=999, due_date=_due()),
            )

    def test_open_loan_cap(self) -> None:
        item = self.make_item(available=10)
        for _ in range(self.settings.MAX_ACTIVE_LOANS):
            self.checkout(item)
        with self.assertRaises(ValidationFailed):
            self.checkout(item)
        self.assertEqual(self.available(item), 10 - self.settings.MAX_ACTIVE_LOANS)

    def test_returned_loans_do_not_count_toward_cap(self) -> None:
        item = self.make_item(available=10)
        first = self.checkout(item)
        for _ in range(self.settings.MAX_ACTIVE_LOANS - 1):
            self.checkout(item)
        loans.return_loan(self.db, first.id)
        self.checkout(item)
        self.assertEqual(loans.count_open_loans(self.db, self.account.id), self.settings.MAX_ACTIVE_LOANS)


class TestReturnLoan(LoanTestCase):
    def test_return_increments_and_closes(self) -> None:
        item = self.make_item(available=1)
        loan = self.checkout(item)
        returned, available = loans.return_loan(self.db, loan.id)
        self.assertTrue(returned.returned)
        self.assertIsNotNone(returned.returned_at)
        self.assertEqual(available, 1)
        self.assertEqual(self.available(item), 1)

    def test_second_return_fails_without_double_increment(self) -> None:
        item = self.make_item(available=1)
        loan = self.checkout(item)
        loans.return_loan(self.db, loan.id)
        with self.assertRaises(Conflict) as ctx:
            loans.return_loan(self.db, loan.id)
        self.assertIn("already returned", ctx.exception.message)
        self.assertEqual(self.available(item), 1)

    def test_unknown_loan(self) -> None:
        with self.assertRaises(NotFound):
            loans.return_loan(self.db, 12345)


class TestListAndUpdate(LoanTestCase):
    def test_list_defaults_to_open_loans(self) -> None:
        item = self.make_item(available=3)
        closed = self.checkout(item)
        self.checkout(item)
        loans.return_loan(self.db, closed.id)
        self.assertEqual(loans.list_loans(self.db).total_items, 1)
        self.assertEqual(loans.list_loans(self.db, include_returned=True).total_items, 2)

    def test_overdue_filter_and_flag(self) -> None:
        item = self.make_item(available=2)
        late = self.checkout(item)
        self.checkout(item)
        late.due_date = date.today() - timedelta(days=1)
        self.db.commit()
        page = loans.list_loans(self.db, overdue=True)
        self.assertEqual([loan.id for loan in page.loans], [late.id])
        self.assertTrue(page.loans[0].overdue)

    def test_pagination(self) -> None:
        item = self.make_item(available=3)
        for i in range(3):
            self.checkout(item, account_id=self.make_account(email=f"p{i}@example.com").id)
        page = loans.list_loans(self.db, page=2, page_size=2)
        self.assertEqual(len(page.loans), 1)
        self.assertEqual(page.total_pages, 2)

    def test_moving_open_loan_moves_the_copy(self) -> None:
        first = self.make_item(title="First", available=1)
        second = self.make_item(title="Second", available=1)
        loan = self.checkout(first)
        updated = loans.update_loan(self.db, loan.id, LoanPatch(item_id=second.id))
        self.assertEqual(updated.item_id, second.id)
        self.assertEqual(self.available(first), 1)
        self.assertEqual(self.available(second), 0)

    def test_moving_to_unavailable_item_conflicts(self) -> None:
        first = self.make_item(title="First", available=1)
        empty = self.make_item(title="Empty", available=0)
        loan = self.checkout(first)
        with self.assertRaises(Conflict):
            loans.update_loan(self.db, loan.id, LoanPatch(item_id=empty.id))
        self.assertEqual(self.available(first), 0)

    def test_patch_due_date(self) -> None:
        loan = self.checkout(self.make_item())
        updated = loans.update_loan(self.db, loan.id, LoanPatch(due_date=_due(30)))
        self.assertEqual(updated.due_date, _due(30))

    def test_returned_loan_cannot_be_edited(self) -> None:
        first = self.make_item(title="First", available=1)
        second = self.make_item(title="Second", available=1)
        loan = self.checkout(first)
        loans.return_loan(self.db, loan.id)
        with self.assertRaises(Conflict):
            loans.update_loan(self.db, loan.id, LoanPatch(item_id=second.id))
        self.reload(loan)
        self.assertEqual(loan.item_id, first.id)
        self.assertEqual(self.available(first), 1)
        self.assertEqual(self.available(second), 1)

    def test_patch_past_due_date_rejected(self) -> None:
        loan = self.checkout(self.make_item())
        for due in (date.today(), date(2000, 1, 1)):
            with self.subTest(due=due):
                with self.assertRaises(ValidationFailed):
                    loans.update_loan(self.db, loan.id, LoanPatch(due_date=due))
        self.reload(loan)
        self.assertEqual(loan.due_date, _due())

    def test_delete_requires_return(self) -> None:
        loan = self.checkout(self.make_item())
        with self.assertRaises(Conflict):
            loans.soft_delete_loan(self.db, loan.id)
        loans.return_loan(self.db, loan.id)
        loans.soft_delete_loan(self.db, loan.id)
        with self.assertRaises(NotFound):
            loans.get_loan(self.db, loan.id)


class TestConcurrentCheckout(LoanTestCase):
    """Separate sessions on a file-backed database, racing for the last copy."""

    def make_engine(self) -> Engine:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        return create_engine(
            f"sqlite:///{Path(tmp.name) / 'library.db'}",
            connect_args={"check_same_thread": False, "timeout": 30},
        )

    def test_last_copy_checked_out_once_under_contention(self) -> None:
        borrowers = [self.account.id, self.make_account(email="other@example.com").id]
        item_id = self.make_item(available=1).id
        self.db.close()

        barrier = threading.Barrier(len(borrowers))
        outcomes: list[str] = []

        def attempt(account_id: int) -> None:
            session = self.Session()
            try:
                body = LoanCreate(account_id=account_id, item_id=item_id, due_date=_due())
                barrier.wait()
                loans.create_loan(session, self.settings, body)
                outcomes.append("ok")
            except Conflict:
                outcomes.append("conflict")
            except Exception as e:
                outcomes.append(repr(e))
            finally:
                session.close()

        threads = [threading.Thread(target=attempt, args=(account_id,)) for account_id in borrowers]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=60)

        self.assertEqual(sorted(outcomes), ["conflict", "ok"])
        self.assertEqual(self.db.get(InventoryItem, item_id).available, 0)
        self.assertEqual(self.db.query(Loan).count(), 1)


class TestEmailActiveLoans(LoanTestCase):
    @patch("bookloan.services.loans.send_mail")
    def test_lists_open_loans(self, send_mail) -> None:
        self.checkout(self.make_item(title="Iracema"))
        count = loans.email_active_loans(self.db, self.settings, self.account.id)
        self.assertEqual(count, 1)
        _, to, _, body = send_mail.call_args.args
        self.assertEqual(to, self.account.email)
        self.assertIn("Iracema", body)

    def test_unknown_account(self) -> None:
        with self.assertRaises(NotFound):
            loans.email_active_loans(self.db, self.settings, 999)


if __name__ == "__main__":
    unittest.main()
