import os

# Must be set before src.shared.database is imported
os.environ["DATABASE_URL"] = "sqlite://"

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from src.app import app
from src.shared.database import Base, SessionLocal, engine
from src.shared.waitlist import database as waitlist_database  # noqa: F401
from src.shared.waitlist.rate_limit_utils import get_now


class FrozenClock:
    """Controllable stand-in for the request time."""

    def __init__(self, now: datetime):
        self.now = now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture(autouse=True)
def default_rate_limit(monkeypatch):
    monkeypatch.delenv("WAITLIST_RATE_LIMIT_PER_DAY", raising=False)


@pytest.fixture
def db_session():
    """Fresh schema for every test, shared with the app through the static pool."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def clock():
    return FrozenClock(datetime(2026, 3, 14, 15, 30, 0))


@pytest.fixture
def client(db_session, clock):
    app.dependency_overrides[get_now] = lambda: clock.now
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
