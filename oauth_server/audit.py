"""
Audit logging. Security-relevant events only; no codes, tokens, verifiers, secrets or request bodies.
The table is capped at AUDIT_MAX_ROWS: each write drops rows that fall out of the window.
GET /audit lists recent events (lab use).
"""
import threading

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from oauth_server.config import AUDIT_MAX_ROWS
from oauth_server.database import get_db
from oauth_server.models import AuditLog

EVENT_CODE_ISSUED = "code_issued"
EVENT_AUTHORIZE_DENIED = "authorize_denied"
EVENT_TOKEN_ISSUED = "token_issued"
EVENT_TOKEN_REFRESHED = "token_refreshed"
EVENT_TOKEN_FAIL = "token_fail"
EVENT_USERINFO = "userinfo"
EVENT_USERINFO_FAIL = "userinfo_fail"
EVENT_SERVER_ERROR = "server_error"

OUTCOME_SUCCESS = "success"
OUTCOME_FAIL = "fail"

MAX_LIMIT = 500

# Handlers run in a threadpool and the in-memory DB is one shared connection.
# Every use ends in commit/rollback under this lock so no transaction spans two requests.
_lock = threading.Lock()


def get_client_ip(request: Request | None) -> str | None:
    """Client IP if available (request.client.host). No forwarding headers."""
    if request is None or request.client is None:
        return None
    return getattr(request.client, "host", None)


def log_audit(
    db: Session,
    event_type: str,
    *,
    client_id: str | None = None,
    ip: str | None = None,
    outcome: str = OUTCOME_SUCCESS,
    error: str | None = None,
) -> None:
    """Append one audit record and drop the oldest rows beyond AUDIT_MAX_ROWS."""
    with _lock:
        row = AuditLog(
            event_type=event_type,
            client_id=client_id,
            ip=ip,
            outcome=outcome,
            error=error,
        )
        db.add(row)
        db.flush()
        db.query(AuditLog).filter(AuditLog.id <= row.id - AUDIT_MAX_ROWS).delete(synchronize_session=False)
        db.commit()


def query_audit_logs(
    db: Session,
    *,
    limit: int = 100,
    event_type: str | None = None,
    outcome: str | None = None,
    client_id: str | None = None,
) -> list[dict]:
    """Query audit logs with optional filters. Most recent first."""
    with _lock:
        q = db.query(AuditLog).order_by(AuditLog.id.desc())
        if event_type:
            q = q.filter(AuditLog.event_type == event_type)
        if outcome:
            q = q.filter(AuditLog.outcome == outcome)
        if client_id:
            q = q.filter(AuditLog.client_id == client_id)
        rows = q.limit(min(max(1, limit), MAX_LIMIT)).all()
        result = [
            {
                "created_at": r.created_at.isoformat() if r.created_at else None,
                "event_type": r.event_type,
                "client_id": r.client_id,
                "ip": r.ip,
                "outcome": r.outcome,
                "error": r.error,
            }
            for r in rows
        ]
        db.rollback()
    return result


router = APIRouter()


@router.get("/audit")
def list_audit_logs(
    limit: int = 100,
    event_type: str | None = None,
    outcome: str | None = None,
    client_id: str | None = None,
    db: Session = Depends(get_db),
):
    """List recent audit events. No tokens or secrets. Most recent first."""
    return query_audit_logs(db, limit=limit, event_type=event_type, outcome=outcome, client_id=client_id)
