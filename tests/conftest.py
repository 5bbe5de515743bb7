"""Pytest fixtures for testing"""

import pytest
from datetime import date
from decimal import Decimal
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from horizon_cards.api.main import create_app
from horizon_cards.domain.models import CardSettings
from horizon_cards.infrastructure.database.models import Base, CreditCard
from horizon_cards.infrastructure.database.session import get_db


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


# pysqlite manages transactions itself; take over so SAVEPOINTs behave
@event.listens_for(engine, "connect")
def _disable_pysqlite_transactions(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None


@event.listens_for(engine, "begin")
def _emit_begin(conn):
    conn.exec_driver_sql("BEGIN")


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
def card_settings() -> CardSettings:
    """Card closing on the 10th, due on the 15th of the same month"""
    return CardSettings(closing_day=10, due_day=15, credit_limit=Decimal("1000.00"))


@pytest.fixture
def card(db: Session) -> CreditCard:
    """Persisted card matching card_settings"""
    card = CreditCard(
        account_id="acct_main",
        name="Nubank",
        last_digits="4321",
        credit_limit=Decimal("1000.00"),
        used_limit=Decimal("0.00"),
        closing_day=10,
        due_day=15,
    )
    db.add(card)
    db.commit()
    return card


@pytest.fixture
def purchase_date() -> date:
    return date(2025, 1, 5)
