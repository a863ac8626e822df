"""
Token endpoint (POST /oauth/token). authorization_code grant with PKCE and refresh_token grant with rotation.
POST /oauth/refresh is an alias that forces grant_type=refresh_token.
Both routes go through the fault injector before the body is read.
"""
import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from oauth_server.audit import (
    EVENT_TOKEN_FAIL,
    EVENT_TOKEN_ISSUED,
    EVENT_TOKEN_REFRESHED,
    OUTCOME_FAIL,
    get_client_ip,
    log_audit,
)
from oauth_server.client_auth import authenticate_client, get_client_credentials
from oauth_server.clients import ClientRegistration, ClientRegistry, get_registry
from oauth_server.config import ACCESS_TOKEN_EXPIRES, PROFILE_ID
from oauth_server.database import get_db
from oauth_server.errors import (
    INVALID_GRANT,
    INVALID_REQUEST,
    UNSUPPORTED_GRANT_TYPE,
    OAuthError,
)
from oauth_server.faults import simulate_server_error
from oauth_server.pkce import verify_code_verifier
from oauth_server.store import AccessToken, RefreshToken, TokenStore, get_store

logger = logging.getLogger(__name__)
router = APIRouter()

# One description for every rejected code: unknown, expired, client/redirect_uri mismatch, bad verifier
_CODE_REJECTED = "Invalid, expired or mismatched authorization code or code_verifier"


async def token_params(request: Request) -> dict[str, str]:
    """Request body as a flat dict of strings: JSON object, urlencoded or multipart form."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            raise OAuthError(INVALID_REQUEST, "Malformed JSON body")
        if not isinstance(body, dict):
            raise OAuthError(INVALID_REQUEST, "Request body must be a JSON object")
        return {k: v for k, v in body.items() if isinstance(v, str)}
    form = await request.form()
    return {k: v for k, v in form.items() if isinstance(v, str)}


def _token_response(access: AccessToken, refresh: RefreshToken) -> dict:
    return {
        "access_token": access.token,
        "token_type": "Bearer",
        "expires_in": ACCESS_TOKEN_EXPIRES,
        "refresh_token": refresh.token,
        "scope": access.scope,
    }


def _token_authorization_code(params: dict[str, str], client: ClientRegistration, store: TokenStore) -> dict:
    code = params.get("code")
    redirect_uri = params.get("redirect_uri")
    code_verifier = params.get("code_verifier")
    if not code or not redirect_uri:
        raise OAuthError(INVALID_REQUEST, "Missing code or redirect_uri")

    # Single use: the record leaves the store here, whatever the outcome below
    auth_code = store.take_code(code)
    if auth_code is None:
        raise OAuthError(INVALID_GRANT, _CODE_REJECTED)
    if auth_code.expired(store.now()):
        raise OAuthError(INVALID_GRANT, _CODE_REJECTED)
    if auth_code.client_id != client.client_id or auth_code.redirect_uri != redirect_uri:
        raise OAuthError(INVALID_GRANT, _CODE_REJECTED)

    # Public clients MUST use PKCE
    if client.public and not auth_code.code_challenge:
        raise OAuthError(INVALID_REQUEST, "PKCE is required for public clients")

    if auth_code.code_challenge:
        if not code_verifier:
            raise OAuthError(INVALID_REQUEST, "PKCE code_verifier required")
        if not verify_code_verifier(code_verifier, auth_code.code_challenge, auth_code.code_challenge_method):
            raise OAuthError(INVALID_GRANT, _CODE_REJECTED)

    access, refresh = store.issue_tokens(client_id=client.client_id, scope=auth_code.scope, user_id=PROFILE_ID)
    logger.info("authorization_code grant: tokens issued for client_id=%s", client.client_id)
    return _token_response(access, refresh)


def _token_refresh_token(params: dict[str, str], client: ClientRegistration, store: TokenStore) -> dict:
    refresh_token = params.get("refresh_token")
    if not refresh_token:
        raise OAuthError(INVALID_REQUEST, "Missing refresh_token")

    # Full original scope is re-granted; no narrowing on refresh
    rotated = store.rotate_refresh_token(refresh_token, client.client_id)
    if rotated is None:
        raise OAuthError(INVALID_GRANT, "Invalid refresh token")
    access, refresh = rotated
    logger.info("refresh_token grant: new tokens issued for client_id=%s (refresh token rotated)", client.client_id)
    return _token_response(access, refresh)


def handle_token_request(
    request: Request,
    params: dict[str, str],
    registry: ClientRegistry,
    store: TokenStore,
    db: Session,
) -> dict:
    grant_type = params.get("grant_type")
    client_id, client_secret = get_client_credentials(
        request.headers.get("Authorization"),
        params.get("client_id"),
        params.get("client_secret"),
    )
    ip = get_client_ip(request)
    try:
        if not grant_type or not client_id:
            raise OAuthError(INVALID_REQUEST, "Missing required parameters")
        client = authenticate_client(registry, client_id, client_secret)
        if grant_type == "authorization_code":
            response = _token_authorization_code(params, client, store)
            event = EVENT_TOKEN_ISSUED
        elif grant_type == "refresh_token":
            response = _token_refresh_token(params, client, store)
            event = EVENT_TOKEN_REFRESHED
        else:
            raise OAuthError(
                UNSUPPORTED_GRANT_TYPE,
                "Only authorization_code and refresh_token grants are supported",
            )
    except OAuthError as exc:
        logger.debug("Token request rejected: client_id=%s error=%s (%s)", client_id, exc.error, exc.error_description)
        log_audit(db, EVENT_TOKEN_FAIL, client_id=client_id, ip=ip, outcome=OUTCOME_FAIL, error=exc.error)
        raise
    log_audit(db, event, client_id=client_id, ip=ip)
    return response


@router.post("/oauth/token", dependencies=[Depends(simulate_server_error)])
def token(
    request: Request,
    params: dict[str, str] = Depends(token_params),
    registry: ClientRegistry = Depends(get_registry),
    store: TokenStore = Depends(get_store),
    db: Session = Depends(get_db),
):
    """
    authorization_code: exchange code (+ code_verifier) for access_token and refresh_token.
    refresh_token: exchange refresh_token for a new pair; the old refresh token stops working.
    """
    return handle_token_request(request, params, registry, store, db)


@router.post("/oauth/refresh", dependencies=[Depends(simulate_server_error)])
def refresh(
    request: Request,
    params: dict[str, str] = Depends(token_params),
    registry: ClientRegistry = Depends(get_registry),
    store: TokenStore = Depends(get_store),
    db: Session = Depends(get_db),
):
    """Same as POST /oauth/token with grant_type=refresh_token."""
    return handle_token_request(request, {**params, "grant_type": "refresh_token"}, registry, store, db)
