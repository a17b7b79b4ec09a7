"""
Shared pytest fixtures for all test modules.

Uses an in-memory SQLite database (StaticPool) so every test
function gets a clean, isolated database with no disk I/O.
"""
import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from typing import Optional
from unittest.mock import AsyncMock, patch

from turapay.database import Base, get_db
from turapay.gateways import GatewayResponse
from turapay.services.rates import rate_service
from turapay import models


# ---------------------------------------------------------------------------
# In-memory database engine shared across all fixtures in a test session.
# StaticPool forces all SQLAlchemy connections to reuse the same underlying
# sqlite3 connection, which is required for in-memory SQLite.
# ---------------------------------------------------------------------------
TEST_ENGINE = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=TEST_ENGINE)

ZMW_RATE = Decimal("22")


@pytest.fixture(autouse=True)
def reset_db():
    """Drop and recreate all tables before each test for full isolation."""
    Base.metadata.drop_all(bind=TEST_ENGINE)
    Base.metadata.create_all(bind=TEST_ENGINE)
    yield
    Base.metadata.drop_all(bind=TEST_ENGINE)


@pytest.fixture(autouse=True)
def fixed_rate():
    """Never reach the public rate API from tests."""
    with patch.object(rate_service, "get_rate", AsyncMock(return_value=ZMW_RATE)) as m:
        yield m


@pytest.fixture
def db(reset_db):
    """Yield a SQLAlchemy session backed by the in-memory test database."""
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    """
    FastAPI TestClient with the real DB dependency overridden to use
    the in-memory test session. The TestClient is NOT used as a context
    manager so the lifespan hook (which touches the on-disk DB) is skipped.
    """
    from turapay.main import app

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers, not fixtures, so any test file can import and call them directly.
# ---------------------------------------------------------------------------
def make_profile(
    db,
    profile_id: str = "prof_1",
    verified: bool = False,
    is_admin: bool = False,
    phone_number: Optional[str] = None,
    referred_by: Optional[str] = None,
    balance: Decimal = Decimal("0"),
    token: Optional[str] = None,
) -> models.Profile:
    profile = models.Profile(
        id=profile_id,
        full_name=f"User {profile_id}",
        phone_number=phone_number,
        verified=verified,
        is_admin=is_admin,
        referred_by=referred_by,
        balance=balance,
        access_token=token or f"token-{profile_id}",
    )
    db.add(profile)
    db.commit()
    db.refresh(profile)
    return profile


def auth_headers(profile: models.Profile) -> dict:
    return {"Authorization": f"Bearer {profile.access_token}"}


def make_txn(
    db,
    txn_id: str,
    sender_id: str = "prof_1",
    amount: Decimal = Decimal("100.00"),
    fee: Decimal = Decimal("2.00"),
    status: str = "pending",
    receiver_phone: str = "+260971234567",
    payment_reference: Optional[str] = None,
    created_at: Optional[datetime] = None,   # defaults to 1 hour ago
) -> models.Transaction:
    if created_at is None:
        created_at = datetime.utcnow() - timedelta(hours=1)
    txn = models.Transaction(
        id=txn_id,
        sender_id=sender_id,
        receiver_name="Receiver",
        receiver_phone=receiver_phone,
        receiver_country="Zambia",
        amount=amount,
        fee=fee,
        total_amount=amount + fee,
        currency="USD",
        receiver_currency="ZMW",
        exchange_rate=ZMW_RATE,
        payout_amount=amount * ZMW_RATE,
        status=status,
        payment_reference=payment_reference,
        created_at=created_at,
    )
    db.add(txn)
    db.commit()
    db.refresh(txn)
    return txn


def gateway_response(data: dict, status_code: int = 200, text: Optional[str] = None) -> GatewayResponse:
    return GatewayResponse(status_code, data, text if text is not None else str(data))


def mock_gateway(
    create_collection=None,
    collection_status=None,
    create_disbursement=None,
    disbursement_status=None,
):
    """Return an AsyncMock gateway whose calls return the given GatewayResponses."""
    m = AsyncMock()
    m.create_collection = AsyncMock(return_value=create_collection)
    m.collection_status = AsyncMock(return_value=collection_status)
    m.create_disbursement = AsyncMock(return_value=create_disbursement)
    m.disbursement_status = AsyncMock(return_value=disbursement_status)
    return m
