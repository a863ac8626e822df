"""
OAuth error responses (RFC 6749 §5.2). Handlers raise OAuthError; the app renders
{"error": ..., "error_description": ...} with the matching status.
"""
from fastapi import Request
from fastapi.responses import JSONResponse

INVALID_REQUEST = "invalid_request"
INVALID_CLIENT = "invalid_client"
INVALID_GRANT = "invalid_grant"
UNSUPPORTED_RESPONSE_TYPE = "unsupported_response_type"
UNSUPPORTED_GRANT_TYPE = "unsupported_grant_type"
SERVER_ERROR = "server_error"
INVALID_TOKEN = "invalid_token"
ACCESS_DENIED = "access_denied"


class OAuthError(Exception):
    def __init__(
        self,
        error: str,
        error_description: str,
        status_code: int = 400,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(f"{error}: {error_description}")
        self.error = error
        self.error_description = error_description
        self.status_code = status_code
        self.headers = headers

    def to_dict(self) -> dict:
        return {"error": self.error, "error_description": self.error_description}


async def oauth_error_handler(request: Request, exc: OAuthError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers)
