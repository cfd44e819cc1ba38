"""Pytest configuration and fixtures for testing."""

from datetime import datetime, timedelta

import pytest

from api import create_app
from api.config import TestingConfig
from models.db_storage import DBStorage
from services.credentials import CredentialStore
from services.notifications import ResetNotifier
from services.sessions import build_session_service

TEST_CONFIG = {key: getattr(TestingConfig, key) for key in dir(TestingConfig) if key.isupper()}


class FakeClock:
    """Controllable naive-UTC clock."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingNotifier(ResetNotifier):
    """Keeps every (email, token) it was asked to deliver."""

    def __init__(self):
        self.sent = []

    def send_password_reset(self, user, token):
        self.sent.append((user.email, token))

    @property
    def last_token(self):
        return self.sent[-1][1]


@pytest.fixture(scope="function")
def clock():
    return FakeClock(datetime(2026, 1, 1, 12, 0, 0))


@pytest.fixture(scope="function")
def notifier():
    return RecordingNotifier()


@pytest.fixture(scope="function")
def storage():
    """Fresh in-memory SQLite database per test."""
    storage = DBStorage("sqlite://")
    storage.reload()

    yield storage

    storage.dispose()


@pytest.fixture(scope="function")
def credentials(storage, clock):
    return CredentialStore(storage, clock=clock)


@pytest.fixture(scope="function")
def user(credentials):
    """A stored user; the hash is a placeholder, not a real password."""
    return credentials.create("owner@example.com", "not-a-real-hash", "Owner", "One")


@pytest.fixture(scope="function")
def sessions(storage, clock, notifier):
    return build_session_service(storage, TEST_CONFIG, notifier=notifier, clock=clock)


@pytest.fixture(scope="function")
def app(notifier):
    app = create_app("testing", notifier=notifier)

    yield app

    app.extensions["storage"].dispose()


@pytest.fixture(scope="function")
def client(app):
    return app.test_client()


@pytest.fixture(scope="function")
def signup(client):
    """Sign up through the API and return the response JSON."""

    def _signup(email="a@x.com", password="secret1", first_name="A", last_name=None):
        body = {"email": email, "password": password, "firstName": first_name}
        if last_name is not None:
            body["lastName"] = last_name
        resp = client.post("/auth/signup", json=body)
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()

    return _signup


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
