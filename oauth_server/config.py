"""
Mock OAuth Server configuration. Defaults match the PKCE exercise (client on :5173, server on :3001).
No secrets in this file; an optional confidential client secret comes from env.
"""
import os

# Issuer URL (public identifier, used in metadata)
ISSUER = os.environ.get("OAUTH_ISSUER", "http://localhost:3001").rstrip("/")

HOST = os.environ.get("OAUTH_HOST", "127.0.0.1")
PORT = int(os.environ.get("OAUTH_PORT", "3001"))

# Authorization code lifetime (seconds): 5 minutes
CODE_TTL_SECONDS = 300

# Access token lifetime (seconds): 1 hour. Refresh tokens do not expire; they are rotated on use.
ACCESS_TOKEN_EXPIRES = 3600

# Scope granted when the authorization request has none
DEFAULT_SCOPE = "profile email"

# Share of token/userinfo requests answered with 500 server_error (chaos path)
SERVER_ERROR_RATE = float(os.environ.get("OAUTH_SERVER_ERROR_RATE", "0.1"))

# Background purge of expired codes and access tokens; 0 disables (expiry is still checked at use)
SWEEP_INTERVAL_SECONDS = int(os.environ.get("OAUTH_SWEEP_INTERVAL_SECONDS", "60"))

# Browser origins allowed to call the token and userinfo endpoints
CORS_ORIGINS = [
    o.strip()
    for o in os.environ.get("OAUTH_CORS_ORIGINS", "http://localhost:5173").split(",")
    if o.strip()
]

# Audit log database; in-memory by default (no persistence across restarts)
AUDIT_DATABASE_URL = os.environ.get("OAUTH_AUDIT_DATABASE_URL", "sqlite:///:memory:")

# Audit rows kept; older rows are deleted as new ones are written
AUDIT_MAX_ROWS = int(os.environ.get("OAUTH_AUDIT_MAX_ROWS", "10000"))

# Default public client for the exercise
DEFAULT_CLIENT_ID = "mock-client-id"
DEFAULT_CLIENT_NAME = "Mock OAuth Client"
DEFAULT_REDIRECT_URIS = (
    "http://localhost:5173/callback",
    "http://localhost:5173/auth/callback",
)

# Single-subject identity provider: the profile returned for every valid access token
PROFILE_ID = os.environ.get("OAUTH_PROFILE_ID", "default-user-11111")
PROFILE_EMAIL = os.environ.get("OAUTH_PROFILE_EMAIL", "user@example.com")
PROFILE_NAME = os.environ.get("OAUTH_PROFILE_NAME", "Test User")
PROFILE_PICTURE = os.environ.get(
    "OAUTH_PROFILE_PICTURE", "https://randomuser.me/api/portraits/lego/5.jpg"
)
