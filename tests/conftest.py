import os
from datetime import datetime

# Configuration is read when shuttle.config is first imported
os.environ["SECRET_KEY"] = "test-secret-key-with-at-least-32-bytes!"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ADMIN_SETUP_KEY"] = "test-setup-key"
os.environ["AUTO_CREATE_TABLES"] = "false"
os.environ["PAYMENT_PROVIDER"] = "simulated"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ.pop("PGHOST", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from shuttle import models
from shuttle.auth.utils import create_access_token, get_password_hash
from shuttle.config import settings
from shuttle.database import Base, get_db
from shuttle.security.rate_limiter import RateLimiterRegistry
from shuttle.store import DataStore

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeClock:
    """Manually advanced clock for rate limiter tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def store(db_session):
    return DataStore(db_session)


@pytest.fixture
def limiters(fake_clock):
    return RateLimiterRegistry.from_settings(settings, clock=fake_clock)


@pytest.fixture
def app(db_session, limiters):
    from shuttle.main import create_app

    application = create_app()
    application.state.rate_limiters = limiters

    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    application.dependency_overrides[get_db] = override_get_db
    return application


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def make_route(store):
    def _make(**overrides):
        fields = {
            "provider": "TransEuro",
            "departure": "Bucharest",
            "arrival": "Vienna",
            "departure_time": datetime(2025, 7, 22, 8, 0),
            "arrival_time": datetime(2025, 7, 22, 20, 0),
            "price": 60.0,
            "vehicle_type": "Bus",
            "seats": 50,
        }
        fields.update(overrides)
        return store.create(models.Route, **fields)

    return _make


@pytest.fixture
def admin_account(store):
    return store.create(
        models.Admin,
        username="admin",
        email="admin@example.com",
        password=get_password_hash("Secret123"),
        role="super_admin",
        is_active=True,
    )


@pytest.fixture
def admin_headers(admin_account):
    token = create_access_token({"sub": str(admin_account.id), "is_admin": True})
    return {"Authorization": f"Bearer {token}"}
