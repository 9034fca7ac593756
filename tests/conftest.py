"""Pytest fixtures for testing"""

import pytest
from datetime import date
from decimal import Decimal
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from paytrack.api.dependencies import get_today
from paytrack.api.main import create_app
from paytrack.domain.models import BudgetItem, Obligation
from paytrack.infrastructure.database.models import Base
from paytrack.infrastructure.database.session import get_db


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Fixed business date so status derivation and projections are deterministic
TODAY = date(2024, 3, 15)


@pytest.fixture
def today() -> date:
    return TODAY


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
    """Create FastAPI test client with test database and a pinned business date"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_today] = lambda: TODAY
    return TestClient(app)


@pytest.fixture
def make_obligation():
    """Factory for unsaved domain obligations used by the pure projector tests"""

    def _make(
        id: int,
        total: str,
        paid: str = "0",
        due: date = None,
        status: str = "pending",
        payment_type: str = "single",
        **kwargs,
    ) -> Obligation:
        return Obligation(
            id=id,
            name=kwargs.pop("name", f"Obligation {id}"),
            total_amount=Decimal(total),
            paid_amount=Decimal(paid),
            status=status,
            payment_type=payment_type,
            start_date=kwargs.pop("start_date", due or TODAY),
            due_date=due,
            **kwargs,
        )

    return _make


@pytest.fixture
def monthly_budget_item() -> BudgetItem:
    """Rent budgeted at 10000/month for three months starting March 2024"""
    return BudgetItem(
        id=1,
        budget_plan_id=1,
        name="Rent",
        planned_amount=Decimal("30000"),
        payment_type="monthly",
        monthly_amount=Decimal("10000"),
        month_count=3,
        start_date=date(2024, 3, 1),
    )
