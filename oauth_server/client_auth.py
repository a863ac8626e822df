"""
Client authentication at the token endpoint. RFC 6749 §2.3.1.
Credentials via Authorization: Basic base64(client_id:client_secret) or client_id + client_secret in the body.
Public clients are identified by client_id only; confidential clients must present the matching secret.
"""
import base64
import binascii
import logging

from oauth_server.clients import ClientRegistration, ClientRegistry
from oauth_server.errors import INVALID_CLIENT, INVALID_REQUEST, OAuthError

logger = logging.getLogger(__name__)


def parse_basic(header_value: str | None) -> tuple[str, str] | None:
    """Parse 'Basic <base64(client_id:client_secret)>'. Returns (client_id, client_secret) or None."""
    if not header_value or not header_value.strip().lower().startswith("basic "):
        return None
    encoded = header_value.strip()[6:].strip()
    try:
        decoded = base64.b64decode(encoded, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    if ":" not in decoded:
        return None
    client_id, _, client_secret = decoded.partition(":")
    return (client_id, client_secret)


def get_client_credentials(
    authorization: str | None,
    client_id_body: str | None,
    client_secret_body: str | None,
) -> tuple[str | None, str | None]:
    """
    Get (client_id, client_secret) from the body or from Authorization Basic.
    Body takes precedence if it carries both values. client_id is used exactly as sent.
    """
    basic = parse_basic(authorization)
    if client_id_body and client_secret_body is not None:
        return (client_id_body, client_secret_body)
    if basic:
        return basic
    if client_id_body:
        return (client_id_body, client_secret_body)
    return (None, None)


def authenticate_client(
    registry: ClientRegistry,
    client_id: str | None,
    client_secret: str | None,
) -> ClientRegistration:
    """
    Resolve and authenticate the client. Missing client_id is 400 invalid_request;
    unknown client or wrong secret for a confidential client is 401 invalid_client.
    """
    if not client_id:
        raise OAuthError(INVALID_REQUEST, "Missing required parameters")
    client = registry.lookup(client_id)
    if client is None:
        logger.debug("Token request for unknown client_id=%s", client_id)
        raise OAuthError(INVALID_CLIENT, "Unknown client", status_code=401)
    if client.is_confidential and not client.check_secret(client_secret):
        logger.debug("Invalid client credentials for client_id=%s", client_id)
        raise OAuthError(INVALID_CLIENT, "Invalid client credentials", status_code=401)
    return client
