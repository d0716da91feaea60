"""Shared test scaffolding: in-memory SQLite schema, factories, and an API client."""

import unittest
from collections.abc import Generator
from datetime import timedelta

from fastapi.testclient import TestClient
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from bookloan.core.config import get_settings
from bookloan.core.database import get_db
from bookloan.core.security import create_access_token, hash_password
from bookloan.main import app
from bookloan.models import Account, Base, InventoryItem
from bookloan.models.account import STATUS_ACTIVE

DEFAULT_PASSWORD = "Str0ng!Pass"


class DatabaseTestCase(unittest.TestCase):
    """Fresh schema per test on a single shared in-memory connection."""

    def make_engine(self) -> Engine:
        return create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    def setUp(self) -> None:
        self.engine = self.make_engine()
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)
        self.db: Session = self.Session()
        self.settings = get_settings()
        # Registered as a cleanup so it runs after any cleanups the test itself adds.
        self.addCleanup(self._teardown_database)

    def _teardown_database(self) -> None:
        self.db.close()
        Base.metadata.drop_all(self.engine)
        self.engine.dispose()

    def make_account(
        self,
        email: str = "reader@example.com",
        password: str = DEFAULT_PASSWORD,
        access_level: int = 0,
        status: str = STATUS_ACTIVE,
        locked: bool = False,
        **kwargs: object,
    ) -> Account:
        kwargs.setdefault("name", "Test Reader")
        kwargs.setdefault("failed_attempts", 0)
        account = Account(
            email=email,
            password_hash=hash_password(password),
            access_level=access_level,
            status=status,
            locked=locked,
            **kwargs,
        )
        self.db.add(account)
        self.db.commit()
        self.db.refresh(account)
        return account

    def make_item(self, title: str = "Dom Casmurro", author: str = "Machado de Assis", available: int = 1) -> InventoryItem:
        item = InventoryItem(title=title, author=author, available=available)
        self.db.add(item)
        self.db.commit()
        self.db.refresh(item)
        return item

    def reload(self, obj: object) -> None:
        self.db.expire_all()
        self.db.refresh(obj)


class ApiTestCase(DatabaseTestCase):
    """DatabaseTestCase plus a TestClient whose get_db yields sessions on the test engine."""

    prefix = "/api/v1"

    def setUp(self) -> None:
        super().setUp()

        def override_get_db() -> Generator[Session, None, None]:
            db = self.Session()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        self.client = TestClient(app)

    def tearDown(self) -> None:
        self.client.close()
        app.dependency_overrides.clear()
        super().tearDown()

    def url(self, path: str) -> str:
        return f"{self.prefix}{path}"

    def auth_headers(self, account: Account, ttl: timedelta | None = None) -> dict[str, str]:
        token = create_access_token(account.id, account.access_level, ttl=ttl)
        return {"Authorization": f"Bearer {token}"}
