import os

os.environ["DATABASE_URL"] = "sqlite:///./test_gateway.db"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["GATEWAY_DISPLAY_NAME"] = "Pay with bKash"
os.environ["GATEWAY_API_KEY"] = "test-api-key"
os.environ["GATEWAY_API_URL"] = "https://sandbox.example.test/api"
os.environ["SITE_URL"] = "https://shop.example.test"

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from membership_gateway.config import GatewaySettings
from membership_gateway.database import Base, make_engine, make_session_factory
from membership_gateway.models import Order, PENDING

SQLALCHEMY_DATABASE_URL = "sqlite:///./test_gateway.db"
engine = make_engine(SQLALCHEMY_DATABASE_URL)
TestingSessionLocal = make_session_factory(engine)


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db():
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture
def settings():
    return GatewaySettings(
        display_name="Pay with bKash",
        api_key="test-api-key",
        api_url="https://sandbox.example.test/api",
        timeout=5,
        site_url="https://shop.example.test",
    )


@pytest.fixture
def fixed_clock():
    return lambda: datetime(2026, 1, 15, 10, 30, tzinfo=timezone.utc)


@pytest.fixture
def make_order(db):
    def _make(**overrides):
        fields = dict(
            user_id=7,
            membership_id=3,
            subtotal=Decimal("450.00"),
            tax=Decimal("50.00"),
            payer_name="Rahim Uddin",
            payer_email="rahim@example.com",
            code="ABC123",
            status=PENDING,
        )
        fields.update(overrides)
        order = Order(**fields)
        db.add(order)
        db.commit()
        db.refresh(order)
        return order
    return _make


@pytest.fixture
def session_factory():
    return TestingSessionLocal
