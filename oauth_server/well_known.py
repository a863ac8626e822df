"""
Authorization server metadata (RFC 8414).
"""
from fastapi import APIRouter

from oauth_server.config import ISSUER
from oauth_server.pkce import METHOD_PLAIN, METHOD_S256

router = APIRouter()


@router.get("/.well-known/oauth-authorization-server")
def oauth_authorization_server():
    """OAuth 2.0 discovery document."""
    return {
        "issuer": ISSUER,
        "authorization_endpoint": f"{ISSUER}/oauth/authorize",
        "token_endpoint": f"{ISSUER}/oauth/token",
        "userinfo_endpoint": f"{ISSUER}/oauth/userinfo",
        "response_types_supported": ["code"],
        "grant_types_supported": ["authorization_code", "refresh_token"],
        "code_challenge_methods_supported": [METHOD_PLAIN, METHOD_S256],
        "token_endpoint_auth_methods_supported": ["none", "client_secret_post", "client_secret_basic"],
        "scopes_supported": ["profile", "email"],
    }
