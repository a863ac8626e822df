"""
Token generation and PKCE (RFC 7636) verification helpers. Pure functions, no state.
"""
import hashlib
import secrets
from base64 import urlsafe_b64encode

METHOD_PLAIN = "plain"
METHOD_S256 = "S256"


def random_token() -> str:
    """Opaque value for codes and tokens: 32 random bytes (256 bits), base64url."""
    return secrets.token_urlsafe(32)


def sha256(value: str) -> bytes:
    return hashlib.sha256(value.encode("utf-8")).digest()


def base64url_no_pad(data: bytes) -> str:
    """base64url alphabet ('-' and '_'), '=' padding stripped."""
    return urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def s256_challenge(code_verifier: str) -> str:
    return base64url_no_pad(sha256(code_verifier))


def verify_code_verifier(code_verifier: str, code_challenge: str, method: str | None) -> bool:
    """
    plain: verifier must equal the challenge. S256: BASE64URL(SHA256(verifier)) must equal the challenge.
    Any other method fails.
    """
    if method == METHOD_PLAIN:
        computed = code_verifier
    elif method == METHOD_S256:
        computed = s256_challenge(code_verifier)
    else:
        return False
    return secrets.compare_digest(computed.encode("utf-8"), code_challenge.encode("utf-8"))
