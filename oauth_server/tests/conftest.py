"""
Pytest configuration for oauth_server. In-memory audit DB, no background sweep, no env clients.
Each test gets a fresh store and a deterministic fault injector through dependency overrides.
"""
import os

os.environ["OAUTH_AUDIT_DATABASE_URL"] = "sqlite:///:memory:"
os.environ["OAUTH_SWEEP_INTERVAL_SECONDS"] = "0"
for _var in ("OAUTH_CLIENT_ID", "OAUTH_CLIENT_SECRET", "OAUTH_REDIRECT_URI", "OAUTH_REDIRECT_URIS"):
    os.environ.pop(_var, None)

import hashlib
import secrets
import time
from base64 import urlsafe_b64encode

import pytest
from fastapi.testclient import TestClient

from oauth_server.database import SessionLocal, init_db
from oauth_server.faults import get_fault_injector
from oauth_server.main import app
from oauth_server.store import TokenStore, get_store

CLIENT_ID = "mock-client-id"
REDIRECT_URI = "http://localhost:5173/callback"


class FakeClock:
    """Manually advanced clock for expiry tests."""

    def __init__(self, start: float | None = None):
        self.now = time.time() if start is None else start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubFaultInjector:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = 0

    def should_fail(self) -> bool:
        self.calls += 1
        return self.fail


def make_code_verifier_and_challenge() -> tuple[str, str]:
    verifier = secrets.token_urlsafe(32)
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    challenge = urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
    return verifier, challenge


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return TokenStore(clock=clock)


@pytest.fixture
def faults():
    return StubFaultInjector()


@pytest.fixture
def client(store, faults):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_fault_injector] = lambda: faults
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def db():
    init_db()
    with SessionLocal() as session:
        yield session
