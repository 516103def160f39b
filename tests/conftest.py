"""Pytest fixtures for testing"""

import os

# Point the app at SQLite before billing_engine.config is imported
TEST_DATABASE_URL = "sqlite:///./test.db"
os.environ["DATABASE_URL"] = TEST_DATABASE_URL

import uuid
import pytest
from datetime import date
from decimal import Decimal
from typing import Callable, Generator
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session
from billing_engine.api.main import create_app
from billing_engine.infrastructure.database.models import Base, ClientPlan, FinancialRecordRow
from billing_engine.infrastructure.database.repositories import FinancialRecordRepository
from billing_engine.infrastructure.database.session import build_engine, build_session_factory, get_db


# Test database
engine = build_engine(TEST_DATABASE_URL)
TestingSessionLocal = build_session_factory(engine)


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
def store(db: Session) -> FinancialRecordRepository:
    return FinancialRecordRepository(db)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def make_link(db: Session) -> Callable[..., ClientPlan]:
    """Factory for active subscriptions"""

    def _make_link(
        anchor: date = date(2025, 1, 10),
        value: str = "150.00",
        is_active: bool = True,
        payment_method: str = "pix",
    ) -> ClientPlan:
        link = ClientPlan(
            id=uuid.uuid4(),
            client_id=uuid.uuid4(),
            plan_id=uuid.uuid4(),
            value=Decimal(value),
            payment_date=anchor,
            payment_method=payment_method,
            is_active=is_active,
        )
        db.add(link)
        db.commit()
        return link

    return _make_link


@pytest.fixture
def make_record(db: Session) -> Callable[..., FinancialRecordRow]:
    """Factory for financial records attached to a subscription"""

    def _make_record(
        link: ClientPlan,
        due_date: date,
        status: str = "pending",
        value: str = "150.00",
        payment_date: date | None = None,
    ) -> FinancialRecordRow:
        row = FinancialRecordRow(
            id=uuid.uuid4(),
            client_id=link.client_id,
            plan_id=link.plan_id,
            client_plan_id=link.id,
            original_value=Decimal(value),
            value=Decimal(value),
            due_date=due_date,
            status=status,
            payment_date=payment_date,
            payment_method=link.payment_method,
        )
        db.add(row)
        db.commit()
        return row

    return _make_record
