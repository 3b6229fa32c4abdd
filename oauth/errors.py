"""OAuth error taxonomy.

Client-facing errors are OAuthError subclasses. Each carries a fixed
OAuth error code and a default HTTP status, and renders itself as the
``{"error", "error_description"}`` JSON body used by every endpoint.

Store-level failures derive from StoreError and never reach the wire
directly - the orchestrator translates them.
"""

from typing import Optional

from fastapi.responses import JSONResponse


class OAuthError(Exception):
    """Base class for errors returned to OAuth clients."""

    error = "server_error"
    status_code = 500

    def __init__(self, description: str, status_code: Optional[int] = None, headers: dict = None):
        super().__init__(description)
        self.description = description
        if status_code is not None:
            self.status_code = status_code
        self.headers = headers

    def to_dict(self) -> dict:
        return {"error": self.error, "error_description": self.description}

    def to_response(self) -> JSONResponse:
        return JSONResponse(self.to_dict(), status_code=self.status_code, headers=self.headers)


class InvalidRequest(OAuthError):
    """Malformed or missing required fields."""

    error = "invalid_request"
    status_code = 400


class InvalidClient(OAuthError):
    """Unknown client id, mismatched redirect URI or wrong secret."""

    error = "invalid_client"
    status_code = 400


class InvalidGrant(OAuthError):
    """Malformed, expired or already redeemed authorization code."""

    error = "invalid_grant"
    status_code = 400


class UnsupportedGrantType(OAuthError):
    error = "unsupported_grant_type"
    status_code = 400


class Unauthorized(OAuthError):
    """Missing or invalid bearer token."""

    error = "unauthorized"
    status_code = 401


class ServerError(OAuthError):
    """Internal invariant violation."""

    error = "server_error"
    status_code = 500


# ============== Store Errors ==============

class StoreError(Exception):
    """Raised by the in-memory stores."""


class SessionNotFound(StoreError):
    def __init__(self, session_id: str):
        super().__init__("Session not found")
        self.session_id = session_id


class SessionExpired(StoreError):
    def __init__(self, session_id: str):
        super().__init__("Session expired")
        self.session_id = session_id


class CodeAlreadyRedeemed(StoreError):
    def __init__(self, session_id: str):
        super().__init__("Authorization code already used")
        self.session_id = session_id


class NoThirdPartyToken(StoreError):
    def __init__(self, session_id: str):
        super().__init__("No third-party token available for session")
        self.session_id = session_id
