"""
Tests for audit logging. No codes or tokens in audit records.
"""
from oauth_server import audit
from oauth_server.audit import (
    EVENT_CODE_ISSUED,
    EVENT_SERVER_ERROR,
    EVENT_TOKEN_FAIL,
    EVENT_TOKEN_ISSUED,
    log_audit,
    query_audit_logs,
)
from oauth_server.models import AuditLog

from conftest import CLIENT_ID, REDIRECT_URI, make_code_verifier_and_challenge


def _full_flow(client) -> dict:
    verifier, challenge = make_code_verifier_and_challenge()
    r = client.get(
        "/oauth/authorize",
        params={
            "client_id": CLIENT_ID,
            "redirect_uri": REDIRECT_URI,
            "response_type": "code",
            "code_challenge": challenge,
            "code_challenge_method": "S256",
        },
        follow_redirects=False,
    )
    code = r.headers["location"].split("code=")[1]
    r = client.post(
        "/oauth/token",
        data={
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": REDIRECT_URI,
            "client_id": CLIENT_ID,
            "code_verifier": verifier,
        },
    )
    assert r.status_code == 200
    return {"code": code, **r.json()}


def test_audit_records_code_and_token_issuance(client, db):
    _full_flow(client)
    events = [e["event_type"] for e in query_audit_logs(db, limit=2, client_id=CLIENT_ID)]
    assert events == [EVENT_TOKEN_ISSUED, EVENT_CODE_ISSUED]


def test_audit_records_failure_with_error_code(client, db):
    client.post("/oauth/token", data={"grant_type": "authorization_code", "client_id": CLIENT_ID})
    row = query_audit_logs(db, limit=1, event_type=EVENT_TOKEN_FAIL)[0]
    assert row["outcome"] == "fail"
    assert row["error"] == "invalid_request"
    assert row["client_id"] == CLIENT_ID


def test_audit_records_injected_server_error(client, faults, db):
    faults.fail = True
    client.get("/oauth/userinfo")
    row = query_audit_logs(db, limit=1)[0]
    assert row["event_type"] == EVENT_SERVER_ERROR
    assert row["outcome"] == "fail"


def test_audit_never_stores_tokens(client):
    flow = _full_flow(client)
    r = client.get("/audit", params={"limit": 500})
    assert r.status_code == 200
    body = r.text
    for secret in (flow["code"], flow["access_token"], flow["refresh_token"]):
        assert secret not in body


def test_audit_endpoint_filters(client, db):
    log_audit(db, "custom_event", client_id="filter-client", outcome="success")
    log_audit(db, "custom_event", client_id="filter-client", outcome="fail", error="invalid_grant")
    r = client.get("/audit", params={"client_id": "filter-client", "outcome": "fail"})
    data = r.json()
    assert len(data) == 1
    assert data[0]["error"] == "invalid_grant"
    r = client.get("/audit", params={"client_id": "filter-client", "limit": 1})
    assert len(r.json()) == 1
    assert r.json()[0]["outcome"] == "fail"  # most recent first


def test_audit_table_keeps_most_recent_rows(db, monkeypatch):
    monkeypatch.setattr(audit, "AUDIT_MAX_ROWS", 3)
    for i in range(5):
        log_audit(db, "capped_event", client_id=f"capped-{i}")
    assert db.query(AuditLog).count() == 3
    db.rollback()
    rows = query_audit_logs(db, limit=10)
    assert [r["client_id"] for r in rows] == ["capped-4", "capped-3", "capped-2"]
