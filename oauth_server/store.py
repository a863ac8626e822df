"""
In-memory code/token store. Three maps keyed by opaque random values: authorization codes,
access tokens, refresh tokens. Nothing survives a restart.

One lock guards all three maps; every read-modify-write (code consumption, refresh rotation,
lazy expiry) runs as a single critical section, so concurrent requests for the same key see
exactly one winner.
"""
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

from oauth_server.config import ACCESS_TOKEN_EXPIRES, CODE_TTL_SECONDS
from oauth_server.pkce import random_token

logger = logging.getLogger(__name__)


@dataclass
class AuthorizationCode:
    code: str
    client_id: str
    redirect_uri: str
    scope: str  # space-separated, carried opaquely
    expires_at: float
    code_challenge: str | None = None
    code_challenge_method: str | None = None

    def expired(self, now: float) -> bool:
        return self.expires_at < now


@dataclass
class AccessToken:
    token: str
    client_id: str
    scope: str
    user_id: str
    expires_at: float

    def expired(self, now: float) -> bool:
        return self.expires_at < now


@dataclass
class RefreshToken:
    # No expiry: valid until rotated
    token: str
    client_id: str
    scope: str
    user_id: str


class TokenStore:
    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._lock = threading.Lock()
        self._codes: dict[str, AuthorizationCode] = {}
        self._access_tokens: dict[str, AccessToken] = {}
        self._refresh_tokens: dict[str, RefreshToken] = {}

    def now(self) -> float:
        return self._clock()

    # --- authorization codes ---

    def issue_code(
        self,
        *,
        client_id: str,
        redirect_uri: str,
        scope: str,
        code_challenge: str | None = None,
        code_challenge_method: str | None = None,
        ttl: int = CODE_TTL_SECONDS,
    ) -> AuthorizationCode:
        record = AuthorizationCode(
            code=random_token(),
            client_id=client_id,
            redirect_uri=redirect_uri,
            scope=scope,
            expires_at=self.now() + ttl,
            code_challenge=code_challenge,
            code_challenge_method=code_challenge_method,
        )
        with self._lock:
            self._codes[record.code] = record
        return record

    def take_code(self, code: str) -> AuthorizationCode | None:
        """
        Remove and return the code record. Only one caller ever receives a given record, whether
        the exchange then succeeds or is rejected. Expiry is left to the caller to check.
        """
        with self._lock:
            return self._codes.pop(code, None)

    # --- access and refresh tokens ---

    def _new_pair(self, client_id: str, scope: str, user_id: str, ttl: int) -> tuple[AccessToken, RefreshToken]:
        # Caller holds the lock
        access = AccessToken(
            token=random_token(),
            client_id=client_id,
            scope=scope,
            user_id=user_id,
            expires_at=self.now() + ttl,
        )
        refresh = RefreshToken(token=random_token(), client_id=client_id, scope=scope, user_id=user_id)
        self._access_tokens[access.token] = access
        self._refresh_tokens[refresh.token] = refresh
        return access, refresh

    def issue_tokens(
        self,
        *,
        client_id: str,
        scope: str,
        user_id: str,
        ttl: int = ACCESS_TOKEN_EXPIRES,
    ) -> tuple[AccessToken, RefreshToken]:
        with self._lock:
            return self._new_pair(client_id, scope, user_id, ttl)

    def rotate_refresh_token(
        self,
        refresh_token: str,
        client_id: str,
        ttl: int = ACCESS_TOKEN_EXPIRES,
    ) -> tuple[AccessToken, RefreshToken] | None:
        """
        Replace refresh_token with a new access/refresh pair carrying the same scope and subject.
        Returns None (and changes nothing) if the token is unknown or belongs to another client.
        """
        with self._lock:
            old = self._refresh_tokens.get(refresh_token)
            if old is None or old.client_id != client_id:
                return None
            del self._refresh_tokens[refresh_token]
            return self._new_pair(old.client_id, old.scope, old.user_id, ttl)

    def get_access_token(self, token: str) -> AccessToken | None:
        """
        Look up an access token. An expired record is removed from the store but still returned,
        so the caller can report expiry; it will not be found again.
        """
        with self._lock:
            record = self._access_tokens.get(token)
            if record is not None and record.expired(self.now()):
                del self._access_tokens[token]
            return record

    # --- housekeeping ---

    def purge_expired(self) -> int:
        """Delete expired codes and access tokens. Returns the number of records removed."""
        with self._lock:
            now = self.now()
            codes = [c for c, r in self._codes.items() if r.expired(now)]
            tokens = [t for t, r in self._access_tokens.items() if r.expired(now)]
            for c in codes:
                del self._codes[c]
            for t in tokens:
                del self._access_tokens[t]
        removed = len(codes) + len(tokens)
        if removed:
            logger.debug("Purged %d expired codes, %d expired access tokens", len(codes), len(tokens))
        return removed

    def counts(self) -> dict[str, int]:
        with self._lock:
            return {
                "authorization_codes": len(self._codes),
                "access_tokens": len(self._access_tokens),
                "refresh_tokens": len(self._refresh_tokens),
            }


_store = TokenStore()


def get_store() -> TokenStore:
    """Dependency: the process-wide store."""
    return _store
