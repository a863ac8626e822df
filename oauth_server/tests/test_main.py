"""Tests for app wiring: health, discovery metadata, CORS, background expiry sweep."""
import asyncio

import pytest

from oauth_server.config import ISSUER
from oauth_server.main import sweep_expired
from oauth_server.store import TokenStore

from conftest import FakeClock


def test_health(client, store):
    store.issue_tokens(client_id="c", scope="profile", user_id="u")
    r = client.get("/health")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "ok"
    assert data["service"] == "oauth_server"
    assert data["store"] == {"authorization_codes": 0, "access_tokens": 1, "refresh_tokens": 1}


def test_authorization_server_metadata(client):
    r = client.get("/.well-known/oauth-authorization-server")
    assert r.status_code == 200
    data = r.json()
    assert data["issuer"] == ISSUER
    assert data["authorization_endpoint"] == f"{ISSUER}/oauth/authorize"
    assert data["token_endpoint"] == f"{ISSUER}/oauth/token"
    assert data["userinfo_endpoint"] == f"{ISSUER}/oauth/userinfo"
    assert data["response_types_supported"] == ["code"]
    assert set(data["code_challenge_methods_supported"]) == {"plain", "S256"}
    assert set(data["grant_types_supported"]) == {"authorization_code", "refresh_token"}


def test_cors_preflight_allows_exercise_client(client):
    r = client.options(
        "/oauth/token",
        headers={"Origin": "http://localhost:5173", "Access-Control-Request-Method": "POST"},
    )
    assert r.status_code == 200
    assert r.headers["access-control-allow-origin"] == "http://localhost:5173"
    assert r.headers["access-control-allow-credentials"] == "true"


def test_cors_rejects_other_origin(client):
    r = client.options(
        "/oauth/token",
        headers={"Origin": "http://evil.example", "Access-Control-Request-Method": "POST"},
    )
    assert "access-control-allow-origin" not in r.headers


def test_sweep_expired_purges_in_background():
    clock = FakeClock()
    store = TokenStore(clock=clock)
    store.issue_code(client_id="c", redirect_uri="http://x/cb", scope="profile")
    store.issue_tokens(client_id="c", scope="profile", user_id="u")
    clock.advance(3601)

    async def run():
        task = asyncio.create_task(sweep_expired(store, 0.01))
        await asyncio.sleep(0.1)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(run())
    assert store.counts() == {"authorization_codes": 0, "access_tokens": 0, "refresh_tokens": 1}
