"""
Pytest configuration and fixtures.

Tests run against a throwaway SQLite file; the settings are pointed at it
before anything from the billing package is imported.
"""
import os
import tempfile
from datetime import datetime
from decimal import Decimal
from typing import Optional

import pytest

_TMP_DIR = tempfile.mkdtemp(prefix="billing-tests-")
os.environ["DB_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'billing.db')}"
os.environ["NOTIFIER_ENABLED"] = "false"
os.environ["DEBUG"] = "false"
os.environ["PASSWORD_HASH_ROUNDS"] = "4"  # cheap hashes keep the suite fast

from fastapi.testclient import TestClient  # noqa: E402

import billing.models  # noqa: E402,F401
from billing.core.database import Base, SessionLocal, engine, init_db  # noqa: E402
from billing.models.course import Course, CourseType  # noqa: E402
from billing.models.transaction import Transaction, TransactionType  # noqa: E402
from billing.services.account import AccountService  # noqa: E402


@pytest.fixture(autouse=True)
def clean_database():
    """Fresh schema for every test."""
    Base.metadata.drop_all(bind=engine)
    init_db()
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def client():
    from main import app

    with TestClient(app) as test_client:
        yield test_client


def _in_session(db, work):
    session = db or SessionLocal()
    try:
        return work(session)
    finally:
        if db is None:
            session.close()


@pytest.fixture
def make_account():
    def _make(
        email: str = "user@example.com",
        balance="0",
        password: str = "password",
        roles=None,
        db=None,
    ):
        def work(session):
            account = AccountService(session).register(email, password, roles=roles)
            if Decimal(str(balance)):
                account.balance = Decimal(str(balance))
                session.commit()
            return account

        return _in_session(db, work)

    return _make


@pytest.fixture
def make_course():
    def _make(
        code: str,
        type: CourseType = CourseType.BUY,
        price=None,
        name: Optional[str] = None,
        db=None,
    ):
        def work(session):
            course = Course(
                code=code,
                name=name or code.title(),
                type=type,
                price=Decimal(str(price)) if price is not None else None,
            )
            session.add(course)
            session.commit()
            return course

        return _in_session(db, work)

    return _make


@pytest.fixture
def add_payment():
    """Insert a payment row directly, for backdated rentals."""

    def _add(
        account_id: int,
        course_id: int,
        amount="0",
        created_at: Optional[datetime] = None,
        expires_at: Optional[datetime] = None,
        db=None,
    ):
        def work(session):
            transaction = Transaction(
                account_id=account_id,
                course_id=course_id,
                type=TransactionType.PAYMENT,
                amount=Decimal(str(amount)),
                expires_at=expires_at,
            )
            if created_at is not None:
                transaction.created_at = created_at
            session.add(transaction)
            session.commit()
            return transaction

        return _in_session(db, work)

    return _add


@pytest.fixture
def auth_headers(client):
    def _headers(email: str, password: str = "password") -> dict:
        response = client.post(
            "/api/v1/auth/login", json={"username": email, "password": password}
        )
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['token']}"}

    return _headers
