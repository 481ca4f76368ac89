"""Shared fixtures: an in-memory database per test, a controllable clock and auth headers."""
import os

# must be set before diary.core.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["DEMO_MODE"] = "false"
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["USER_HIM_SECRET"] = "moonlight"
os.environ["USER_HER_SECRET"] = "sunflower"
os.environ["USER_HIM_NAME"] = "Him"
os.environ["USER_HER_NAME"] = "Her"
os.environ["COOKIE_SECURE"] = "false"

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from diary.core.clock import get_clock
from diary.core.security import create_access_token
from diary.db.init_db import init_db
from diary.db.session import get_db, make_engine
from diary.main import app
from diary.models.participant import Participant
from diary.security.rate_limit import get_login_limiter
from diary.storage.media import InMemoryMediaStorage, get_media_storage


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 1, 9, 0, 0))


@pytest.fixture
def engine():
    engine = make_engine("sqlite://")
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage():
    return InMemoryMediaStorage()


@pytest.fixture
def client(session_factory, storage, clock):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_media_storage] = lambda: storage
    app.dependency_overrides[get_clock] = lambda: clock
    get_login_limiter().reset()

    yield TestClient(app)

    app.dependency_overrides.clear()
    get_login_limiter().reset()


def auth_headers(participant: Participant) -> dict:
    return {"Authorization": f"Bearer {create_access_token(participant)}"}


@pytest.fixture
def him():
    return auth_headers(Participant.HIM)


@pytest.fixture
def her():
    return auth_headers(Participant.HER)
