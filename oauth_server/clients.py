"""
Static client registry. Loaded once at import: the default public client for the PKCE exercise,
plus an optional client from env (OAUTH_CLIENT_ID + OAUTH_REDIRECT_URIS, OAUTH_CLIENT_SECRET for confidential).
"""
import base64
import hashlib
import logging
import os
from dataclasses import dataclass

import bcrypt

from oauth_server.config import DEFAULT_CLIENT_ID, DEFAULT_CLIENT_NAME, DEFAULT_REDIRECT_URIS

logger = logging.getLogger(__name__)


def _secret_bytes(secret: str) -> bytes:
    # Bcrypt only reads 72 bytes: prehash so every byte of the secret counts (44 bytes out)
    return base64.b64encode(hashlib.sha256(secret.encode("utf-8")).digest())


def hash_secret(secret: str) -> str:
    return bcrypt.hashpw(_secret_bytes(secret), bcrypt.gensalt()).decode("utf-8")


def verify_secret(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(_secret_bytes(plain), hashed.encode("utf-8"))


@dataclass(frozen=True)
class ClientRegistration:
    client_id: str
    name: str
    # Exact match required; no normalization
    redirect_uris: frozenset[str]
    public: bool = True
    # Confidential clients only: bcrypt hash of client_secret
    client_secret_hash: str | None = None

    def redirect_uri_allowed(self, uri: str) -> bool:
        return uri in self.redirect_uris

    @property
    def is_confidential(self) -> bool:
        return not self.public

    def check_secret(self, client_secret: str | None) -> bool:
        if not client_secret or not self.client_secret_hash:
            return False
        return verify_secret(client_secret, self.client_secret_hash)


class ClientRegistry:
    """Read-only mapping of client_id -> ClientRegistration."""

    def __init__(self, clients: list[ClientRegistration]):
        self._clients = {c.client_id: c for c in clients}

    def lookup(self, client_id: str | None) -> ClientRegistration | None:
        if not client_id:
            return None
        return self._clients.get(client_id)


def client_from_env() -> ClientRegistration | None:
    """Optional extra client: redirect URIs comma-separated; a secret makes it confidential."""
    client_id = os.environ.get("OAUTH_CLIENT_ID")
    redirect_uris_str = os.environ.get("OAUTH_REDIRECT_URIS") or os.environ.get("OAUTH_REDIRECT_URI")
    if not client_id or not redirect_uris_str:
        return None
    uris = [u.strip() for u in redirect_uris_str.split(",") if u.strip()]
    if not uris:
        return None
    client_secret = os.environ.get("OAUTH_CLIENT_SECRET")
    registration = ClientRegistration(
        client_id=client_id,
        name=os.environ.get("OAUTH_CLIENT_NAME", client_id),
        redirect_uris=frozenset(uris),
        public=not client_secret,
        client_secret_hash=hash_secret(client_secret) if client_secret else None,
    )
    logger.info("Registered client from env: %s (confidential=%s)", client_id, registration.is_confidential)
    return registration


def default_clients() -> list[ClientRegistration]:
    clients = [
        ClientRegistration(
            client_id=DEFAULT_CLIENT_ID,
            name=DEFAULT_CLIENT_NAME,
            redirect_uris=frozenset(DEFAULT_REDIRECT_URIS),
            public=True,
        )
    ]
    extra = client_from_env()
    if extra is not None:
        if extra.client_id == DEFAULT_CLIENT_ID:
            logger.warning("OAUTH_CLIENT_ID %s replaces the default client", extra.client_id)
            clients = []
        clients.append(extra)
    return clients


_registry = ClientRegistry(default_clients())


def get_registry() -> ClientRegistry:
    """Dependency: the process-wide client registry."""
    return _registry
