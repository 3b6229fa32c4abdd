"""OAuth middleware for MCP endpoints.

Validates Bearer tokens against a token store before the request reaches
the MCP app. Works with both the OAuth TokenStore and the fixed-token
StaticTokenStore; anything with ``validate(token) -> record | None`` fits.
"""

import logging
from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from oauth.errors import Unauthorized

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token from an ``Authorization: Bearer <token>`` header value."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX):].strip()
    return token or None


class BearerGateMiddleware(BaseHTTPMiddleware):
    """Middleware to validate OAuth Bearer tokens for the Streamable HTTP MCP endpoint."""

    def __init__(self, app, token_store, resource_metadata_url: str = ""):
        super().__init__(app)
        self.token_store = token_store
        self.resource_metadata_url = resource_metadata_url

    def _unauthorized(self, description: str):
        headers = {"WWW-Authenticate": "Bearer"}
        if self.resource_metadata_url:
            headers["WWW-Authenticate"] = f'Bearer resource_metadata="{self.resource_metadata_url}"'
        return Unauthorized(description, headers=headers).to_response()

    async def dispatch(self, request: Request, call_next):
        token = extract_bearer_token(request.headers.get("Authorization"))
        if token is None:
            logger.info("[AUTH] Request rejected: no Bearer token")
            return self._unauthorized("Missing or invalid Authorization header")

        record = self.token_store.validate(token)
        if record is None:
            logger.info("[AUTH] Request rejected: invalid or expired token")
            return self._unauthorized("Invalid or expired token")

        request.state.token = record
        logger.debug(f"[AUTH] Request authorized: {request.url.path}")
        return await call_next(request)
