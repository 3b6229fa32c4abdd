"""Records held by the in-memory OAuth stores.

Client descriptors and tokens are immutable once created. Sessions are
mutated only by the session store, under its lock; callers always receive
copies.
"""

import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

BOOTSTRAP_CLIENT_ID = "mcp-client"
BOOTSTRAP_CLIENT_SECRET = "mcp-client-secret"
BOOTSTRAP_REDIRECT_URI = "http://localhost:8080/callback"
BOOTSTRAP_SCOPES = ("profile", "email")

AUTH_CODE_PREFIX = "mcp-code-"
TOKEN_TYPE = "Bearer"
THIRD_PARTY_TOKEN_EXPIRES_IN = 3600


@dataclass(frozen=True)
class ClientDescriptor:
    client_id: str
    redirect_uri: str
    client_secret: Optional[str] = None
    scopes: tuple = ()
    client_name: Optional[str] = None


@dataclass(frozen=True)
class ThirdPartyToken:
    """Upstream credential bound to a session on approval."""

    access_token: str
    refresh_token: str
    scope: Optional[str] = None
    token_type: str = TOKEN_TYPE
    expires_in: int = THIRD_PARTY_TOKEN_EXPIRES_IN

    @classmethod
    def synthesize(cls, scope: Optional[str]) -> "ThirdPartyToken":
        """Stand-in for a real upstream token exchange."""
        return cls(
            access_token=f"tp-token-{uuid.uuid4()}",
            refresh_token=f"tp-refresh-{uuid.uuid4()}",
            scope=scope,
        )


@dataclass
class AuthSession:
    session_id: str
    client_id: str
    expires_at: float
    scope: Optional[str] = None
    state: Optional[str] = None
    created_at: float = field(default_factory=time.time)
    third_party_token: Optional[ThirdPartyToken] = None
    code_challenge: Optional[str] = None
    code_challenge_method: Optional[str] = None
    consumed_at: Optional[float] = None

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at

    @property
    def consumed(self) -> bool:
        return self.consumed_at is not None


@dataclass(frozen=True)
class IssuedAccessToken:
    access_token: str
    refresh_token: str
    client_id: str
    third_party_token: ThirdPartyToken
    issued_at: float
    expires_in: int
    scope: Optional[str] = None
    token_type: str = TOKEN_TYPE

    @property
    def expires_at(self) -> float:
        return self.issued_at + self.expires_in

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at

    def to_response(self) -> dict:
        """Body of a successful token endpoint response."""
        return {
            "access_token": self.access_token,
            "token_type": self.token_type,
            "expires_in": self.expires_in,
            "refresh_token": self.refresh_token,
            "scope": self.scope,
        }


def authorization_code_for(session_id: str) -> str:
    return f"{AUTH_CODE_PREFIX}{session_id}"


def session_id_from_code(code: str) -> Optional[str]:
    """Recover the session id from a code, or None if it lacks the prefix."""
    if not code or not code.startswith(AUTH_CODE_PREFIX):
        return None
    return code[len(AUTH_CODE_PREFIX):]
