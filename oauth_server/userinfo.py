"""
UserInfo endpoint (GET /oauth/userinfo). Bearer access token required; returns the static profile.
"""
import logging
from dataclasses import asdict, dataclass

from fastapi import APIRouter, Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from oauth_server.audit import EVENT_USERINFO, EVENT_USERINFO_FAIL, OUTCOME_FAIL, get_client_ip, log_audit
from oauth_server.config import PROFILE_EMAIL, PROFILE_ID, PROFILE_NAME, PROFILE_PICTURE
from oauth_server.database import get_db
from oauth_server.errors import INVALID_REQUEST, INVALID_TOKEN, OAuthError
from oauth_server.faults import simulate_server_error
from oauth_server.store import TokenStore, get_store

logger = logging.getLogger(__name__)
router = APIRouter()
security = HTTPBearer(auto_error=False)

_WWW_AUTHENTICATE = {"WWW-Authenticate": "Bearer"}


@dataclass(frozen=True)
class UserProfile:
    id: str
    email: str
    name: str
    picture: str


PROFILE = UserProfile(id=PROFILE_ID, email=PROFILE_EMAIL, name=PROFILE_NAME, picture=PROFILE_PICTURE)


def _reject(db: Session, request: Request, error: str, description: str, client_id: str | None = None) -> OAuthError:
    log_audit(
        db, EVENT_USERINFO_FAIL, client_id=client_id, ip=get_client_ip(request), outcome=OUTCOME_FAIL, error=error
    )
    return OAuthError(error, description, status_code=401, headers=_WWW_AUTHENTICATE)


@router.get("/oauth/userinfo", dependencies=[Depends(simulate_server_error)])
def userinfo(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    store: TokenStore = Depends(get_store),
    db: Session = Depends(get_db),
):
    """Return the profile for any valid, unexpired access token. No scope-based filtering."""
    if credentials is None or not credentials.credentials:
        raise _reject(db, request, INVALID_REQUEST, "Missing or invalid Authorization header")

    record = store.get_access_token(credentials.credentials)
    if record is None:
        raise _reject(db, request, INVALID_TOKEN, "Invalid access token")
    if record.expired(store.now()):
        logger.debug("Expired access token presented by client_id=%s", record.client_id)
        raise _reject(db, request, INVALID_TOKEN, "Access token expired", client_id=record.client_id)

    log_audit(db, EVENT_USERINFO, client_id=record.client_id, ip=get_client_ip(request))
    return asdict(PROFILE)
