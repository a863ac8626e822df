"""
Authorization endpoint (GET /oauth/authorize). No login or consent screen: the single mock subject
is treated as signed in and consenting, so a valid request is answered with a code right away.
"""
import logging
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from oauth_server.audit import (
    EVENT_AUTHORIZE_DENIED,
    EVENT_CODE_ISSUED,
    OUTCOME_FAIL,
    OUTCOME_SUCCESS,
    get_client_ip,
    log_audit,
)
from oauth_server.clients import ClientRegistry, get_registry
from oauth_server.config import DEFAULT_SCOPE
from oauth_server.database import get_db
from oauth_server.errors import (
    ACCESS_DENIED,
    INVALID_CLIENT,
    INVALID_REQUEST,
    UNSUPPORTED_RESPONSE_TYPE,
    OAuthError,
)
from oauth_server.pkce import METHOD_PLAIN
from oauth_server.store import TokenStore, get_store

logger = logging.getLogger(__name__)
router = APIRouter()


def _redirect(redirect_uri: str, params: dict[str, str]) -> RedirectResponse:
    url = f"{redirect_uri}{'&' if '?' in redirect_uri else '?'}{urlencode(params)}"
    return RedirectResponse(url=url, status_code=302)


def _redirect_error(redirect_uri: str, error: str, error_description: str, state: str | None) -> RedirectResponse:
    params = {"error": error, "error_description": error_description}
    if state:
        params["state"] = state
    return _redirect(redirect_uri, params)


@router.get("/oauth/authorize")
def authorize(
    request: Request,
    client_id: str | None = None,
    redirect_uri: str | None = None,
    response_type: str | None = None,
    scope: str | None = None,
    state: str | None = None,
    code_challenge: str | None = None,
    code_challenge_method: str | None = None,
    error: str | None = None,
    registry: ClientRegistry = Depends(get_registry),
    store: TokenStore = Depends(get_store),
    db: Session = Depends(get_db),
):
    """
    Validate the request and redirect to redirect_uri with ?code=...&state=...
    Request-shape failures are 400 JSON, never a redirect to an unverified URI.
    error=true forces an access_denied redirect so clients can test their error branch.
    """
    if error == "true":
        if not redirect_uri:
            raise OAuthError(INVALID_REQUEST, "Missing redirect_uri")
        log_audit(db, EVENT_AUTHORIZE_DENIED, client_id=client_id, ip=get_client_ip(request), outcome=OUTCOME_FAIL)
        return _redirect_error(redirect_uri, ACCESS_DENIED, "User denied access", state)

    if not client_id or not redirect_uri or not response_type:
        raise OAuthError(INVALID_REQUEST, "Missing required parameters")

    client = registry.lookup(client_id)
    if client is None:
        raise OAuthError(INVALID_CLIENT, "Unknown client")

    if not client.redirect_uri_allowed(redirect_uri):
        raise OAuthError(INVALID_REQUEST, "Invalid redirect URI")

    if response_type != "code":
        raise OAuthError(UNSUPPORTED_RESPONSE_TYPE, "Only authorization code flow is supported")

    # PKCE parameters are stored as given; they are checked at the token endpoint
    method = None
    if code_challenge:
        method = code_challenge_method or METHOD_PLAIN
    auth_code = store.issue_code(
        client_id=client_id,
        redirect_uri=redirect_uri,
        scope=scope if scope is not None else DEFAULT_SCOPE,
        code_challenge=code_challenge or None,
        code_challenge_method=method,
    )
    log_audit(db, EVENT_CODE_ISSUED, client_id=client_id, ip=get_client_ip(request), outcome=OUTCOME_SUCCESS)
    logger.info("Authorization code issued for client_id=%s (pkce=%s)", client_id, method or "none")

    params = {"code": auth_code.code}
    if state:
        params["state"] = state
    return _redirect(redirect_uri, params)
