"""Pytest fixtures for testing"""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker, Session
from linkd_gateway.api.dependencies import get_business_tz, get_now
from linkd_gateway.api.main import create_app
from linkd_gateway.domain.fees import FeeTable
from linkd_gateway.domain.models import Transaction
from linkd_gateway.infrastructure.database.models import Base
from linkd_gateway.infrastructure.database.session import build_engine, get_db
from tests.factories import FIXED_NOW, KUWAIT, make_transaction


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = build_engine(TEST_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database and a frozen clock"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_now] = lambda: FIXED_NOW
    app.dependency_overrides[get_business_tz] = lambda: KUWAIT
    return TestClient(app)


@pytest.fixture
def fee_table() -> FeeTable:
    """Built-in M-PESA tariff"""
    return FeeTable.default()


@pytest.fixture
def sample_transactions() -> list[Transaction]:
    """Six months of transactions ending in June 2024"""
    base = datetime(2024, 1, 5, 12, 0, tzinfo=timezone.utc)
    transactions = []

    # Two transactions a month, except an empty March
    for month in range(6):
        if month == 2:
            continue
        for i, amount in enumerate(("10", "25")):
            created = base.replace(month=month + 1) + timedelta(days=i)
            transactions.append(
                make_transaction(
                    amount,
                    created,
                    payout_kes=str(Decimal(amount) * 250),
                    txn_id=f"tx_{month}_{i}",
                )
            )

    return transactions
