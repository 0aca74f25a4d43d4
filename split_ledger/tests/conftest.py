"""
Pytest configuration and fixtures for split_ledger tests.
"""
import os

# Must be set before split_ledger.config builds its cached settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret")

import jwt
import pytest
from decimal import Decimal
from typing import Dict, List
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from split_ledger.schemas.ledger_schema import Expense, ExpenseShare, Transaction
from split_ledger.schemas.settlement_schema import MemberSummary


def make_expense(expense_id: str, payer: str, amount: str, shares: Dict[str, str], group_id: str = "g1") -> Expense:
    """Build a ledger expense from plain strings."""
    return Expense(
        id=expense_id,
        group_id=group_id,
        payer_id=payer,
        amount=Decimal(amount),
        shares=[ExpenseShare(debtor_id=user, amount_owed=Decimal(owed)) for user, owed in shares.items()]
    )


@pytest.fixture
def sample_expenses():
    """Four people, three expenses with uneven exact splits."""
    return [
        make_expense("e1", "A", "120.00", {"A": "40.00", "B": "40.00", "C": "40.00"}),
        make_expense("e2", "B", "60.00", {"B": "30.00", "C": "30.00"}),
        make_expense("e3", "C", "40.00", {"A": "13.34", "C": "13.33", "D": "13.33"}),
    ]


@pytest.fixture
def sample_balances():
    """Balances produced by sample_expenses."""
    return {
        "A": Decimal("66.66"),
        "B": Decimal("-10.00"),
        "C": Decimal("-43.33"),
        "D": Decimal("-13.33"),
    }


@pytest.fixture
def members():
    """Member directory for users A-D."""
    return {
        user_id: MemberSummary(user_id=user_id, display_name=f"User {user_id}")
        for user_id in ("A", "B", "C", "D")
    }


def verify_settlements_settle_debts(balances: Dict[str, Decimal], transactions: List[Transaction]) -> None:
    """
    Helper to verify transactions settle all debts exactly.

    A payment reduces what the creditor is owed and what the debtor owes:
    - creditor balance -= amount
    - debtor balance += amount
    Every balance must end at exactly zero.
    """
    remaining = dict(balances)

    for transaction in transactions:
        assert transaction.amount > 0, f"Non-positive transaction: {transaction}"
        assert transaction.debtor_id != transaction.creditor_id
        remaining[transaction.creditor_id] -= transaction.amount
        remaining[transaction.debtor_id] += transaction.amount

    for user, final_balance in remaining.items():
        assert final_balance == 0, \
            f"User {user} not settled: initial={balances[user]}, final={final_balance}"


# --- Database / API fixtures -------------------------------------------------

@pytest.fixture
def db_session():
    """Fresh in-memory database per test."""
    from split_ledger.db.database import Base
    from split_ledger.models import expenses, groups  # noqa: F401

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def client(db_session):
    """TestClient bound to the per-test database."""
    from fastapi.testclient import TestClient
    from split_ledger.db.database import get_db
    from split_ledger.main import app

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Factory for access-token headers of a given user."""
    def _headers(user_id: str) -> Dict[str, str]:
        token = jwt.encode({"user_id": user_id}, os.environ["SECRET_KEY"], algorithm="HS256")
        return {"access-token": token}
    return _headers
