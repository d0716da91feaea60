"""Tests for the create_account bootstrap script."""

import unittest
from unittest.mock import patch

from bookloan.models import Account
from bookloan.models.account import STATUS_ACTIVE
from bookloan.schemas.auth import LoginRequest
from bookloan.scripts import create_account
from bookloan.services import accounts
from tests.support import DEFAULT_PASSWORD, DatabaseTestCase


class TestCreateAccountScript(DatabaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        patcher = patch("bookloan.scripts.create_account.SessionLocal", self.Session)
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_creates_active_superadmin(self) -> None:
        code = create_account.main(["Head Librarian", "admin@example.com", DEFAULT_PASSWORD])
        self.assertEqual(code, 0)
        account = self.db.query(Account).filter_by(email="admin@example.com").one()
        self.assertEqual(account.status, STATUS_ACTIVE)
        self.assertEqual(account.access_level, 3)

    def test_mixed_case_email_can_log_in(self) -> None:
        self.assertEqual(create_account.main(["Head Librarian", "Admin@Example.COM", DEFAULT_PASSWORD]), 0)
        login = LoginRequest(email="Admin@Example.COM", password=DEFAULT_PASSWORD)
        result = accounts.authenticate(self.db, self.settings, login.email, login.password)
        self.assertEqual(result.account.email, "Admin@example.com")

    def test_invalid_email_rejected(self) -> None:
        self.assertEqual(create_account.main(["Head Librarian", "not-an-email", DEFAULT_PASSWORD]), 1)
        self.assertEqual(self.db.query(Account).count(), 0)

    def test_duplicate_rejected(self) -> None:
        self.make_account(email="admin@example.com")
        self.assertEqual(create_account.main(["Head Librarian", "admin@example.com", DEFAULT_PASSWORD]), 1)


if __name__ == "__main__":
    unittest.main()
