"""In-memory stores for OAuth clients, sessions and access tokens.

Each store owns its own lock and is handed to the orchestrator and the
bearer gate by reference. No lock is ever held across two stores.
Nothing survives a restart.
"""

import logging
import secrets
import string
import threading
import time
import uuid
from dataclasses import replace
from typing import Callable, Iterable, Optional

from oauth.errors import (
    CodeAlreadyRedeemed,
    InvalidRequest,
    NoThirdPartyToken,
    SessionExpired,
    SessionNotFound,
)
from oauth.models import (
    BOOTSTRAP_CLIENT_ID,
    BOOTSTRAP_CLIENT_SECRET,
    BOOTSTRAP_REDIRECT_URI,
    BOOTSTRAP_SCOPES,
    AuthSession,
    ClientDescriptor,
    IssuedAccessToken,
    ThirdPartyToken,
)

logger = logging.getLogger(__name__)

CLIENT_SECRET_LENGTH = 32
DEFAULT_SESSION_TTL = 600  # 10 minutes
DEFAULT_ACCESS_TOKEN_TTL = 3600  # 1 hour

_ALPHANUMERIC = string.ascii_letters + string.digits


def generate_client_secret(length: int = CLIENT_SECRET_LENGTH) -> str:
    return "".join(secrets.choice(_ALPHANUMERIC) for _ in range(length))


# ============== Client Registry ==============

class ClientRegistry:
    """Registered OAuth clients (dynamic client registration, RFC 7591).

    A bootstrap client is always present for local testing.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._clients: dict[str, ClientDescriptor] = {}
        bootstrap = ClientDescriptor(
            client_id=BOOTSTRAP_CLIENT_ID,
            client_secret=BOOTSTRAP_CLIENT_SECRET,
            redirect_uri=BOOTSTRAP_REDIRECT_URI,
            scopes=BOOTSTRAP_SCOPES,
        )
        self._clients[bootstrap.client_id] = bootstrap

    def __len__(self) -> int:
        with self._lock:
            return len(self._clients)

    def register(self, redirect_uris: list[str], client_name: Optional[str] = None) -> ClientDescriptor:
        """Register a new client.

        Only the first redirect URI is kept; the scope list starts empty.

        Raises:
            InvalidRequest: if no redirect URI was supplied.
        """
        if not redirect_uris:
            raise InvalidRequest("at least one redirect uri is required")

        client = ClientDescriptor(
            client_id=f"client-{uuid.uuid4()}",
            client_secret=generate_client_secret(),
            redirect_uri=redirect_uris[0],
            client_name=client_name,
        )
        with self._lock:
            self._clients[client.client_id] = client

        logger.info(f"[REGISTER] Client registered: {client.client_id} ({client_name or 'unnamed'})")
        return client

    def get(self, client_id: str) -> Optional[ClientDescriptor]:
        with self._lock:
            return self._clients.get(client_id)

    def validate(self, client_id: str, redirect_uri: Optional[str]) -> Optional[ClientDescriptor]:
        """Return the client if it exists and its redirect URI contains ``redirect_uri``.

        Containment rather than equality means an omitted redirect URI
        (as token requests often send) still matches.
        """
        client = self.get(client_id)
        if client is None:
            return None
        if (redirect_uri or "") not in client.redirect_uri:
            return None
        return client


# ============== Session Store ==============

class SessionStore:
    """In-flight authorization sessions, keyed by session id."""

    def __init__(self, ttl: int = DEFAULT_SESSION_TTL, clock: Callable[[], float] = time.time):
        self.ttl = ttl
        self._clock = clock
        self._lock = threading.RLock()
        self._sessions: dict[str, AuthSession] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def create(
        self,
        client_id: str,
        scope: Optional[str],
        state: Optional[str],
        session_id: str,
        third_party_token: Optional[ThirdPartyToken] = None,
        code_challenge: Optional[str] = None,
        code_challenge_method: Optional[str] = None,
    ) -> str:
        """Insert a session under the caller-generated ``session_id``.

        Passing ``third_party_token`` writes an already approved session.
        An existing session with the same id is overwritten.
        """
        now = self._clock()
        session = AuthSession(
            session_id=session_id,
            client_id=client_id,
            scope=scope,
            state=state,
            created_at=now,
            expires_at=now + self.ttl,
            third_party_token=third_party_token,
            code_challenge=code_challenge,
            code_challenge_method=code_challenge_method,
        )
        with self._lock:
            if session_id in self._sessions:
                logger.warning(f"[SESSION] Overwriting existing session: {session_id}")
            self._sessions[session_id] = session
        return session_id

    def attach_token(self, session_id: str, token: ThirdPartyToken) -> None:
        """Bind the third-party token to a session.

        Raises:
            SessionNotFound: if the session does not exist.
        """
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise SessionNotFound(session_id)
            if session.third_party_token is not None:
                logger.warning(f"[SESSION] Replacing third-party token on session: {session_id}")
            session.third_party_token = token

    def get(self, session_id: str) -> Optional[AuthSession]:
        with self._lock:
            session = self._sessions.get(session_id)
            return replace(session) if session else None

    def consume(self, session_id: str) -> AuthSession:
        """Mark the session's authorization code as redeemed.

        Check and mark happen in one critical section, so of two concurrent
        redemptions exactly one succeeds.

        Raises:
            SessionNotFound: no such session.
            SessionExpired: the session outlived its TTL.
            CodeAlreadyRedeemed: a previous exchange already used it.
        """
        now = self._clock()
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise SessionNotFound(session_id)
            if session.is_expired(now):
                raise SessionExpired(session_id)
            if session.consumed:
                raise CodeAlreadyRedeemed(session_id)
            session.consumed_at = now
            return replace(session)

    def sweep(self, now: Optional[float] = None) -> int:
        """Evict expired sessions. Returns the number removed."""
        now = self._clock() if now is None else now
        with self._lock:
            expired = [sid for sid, s in self._sessions.items() if s.is_expired(now)]
            for sid in expired:
                del self._sessions[sid]
        return len(expired)


# ============== Token Store ==============

class TokenStore:
    """Access tokens issued by the token endpoint."""

    def __init__(self, ttl: int = DEFAULT_ACCESS_TOKEN_TTL, clock: Callable[[], float] = time.time):
        self.ttl = ttl
        self._clock = clock
        self._lock = threading.RLock()
        self._tokens: dict[str, IssuedAccessToken] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)

    def issue(self, session: AuthSession) -> IssuedAccessToken:
        """Mint an access token for an approved session.

        Raises:
            NoThirdPartyToken: if the session was never approved.
        """
        if session.third_party_token is None:
            raise NoThirdPartyToken(session.session_id)

        token = IssuedAccessToken(
            access_token=f"mcp-token-{uuid.uuid4()}",
            refresh_token=f"mcp-refresh-{uuid.uuid4()}",
            client_id=session.client_id,
            scope=session.scope,
            third_party_token=session.third_party_token,
            issued_at=self._clock(),
            expires_in=self.ttl,
        )
        with self._lock:
            self._tokens[token.access_token] = token
        return token

    def validate(self, access_token: str) -> Optional[IssuedAccessToken]:
        now = self._clock()
        with self._lock:
            token = self._tokens.get(access_token)
            if token is None:
                return None
            if token.is_expired(now):
                del self._tokens[access_token]
                logger.debug("[TOKEN] Evicted expired access token on lookup")
                return None
            return token

    def sweep(self, now: Optional[float] = None) -> int:
        """Evict expired tokens. Returns the number removed."""
        now = self._clock() if now is None else now
        with self._lock:
            expired = [key for key, t in self._tokens.items() if t.is_expired(now)]
            for key in expired:
                del self._tokens[key]
        return len(expired)


class StaticTokenStore:
    """Fixed set of bearer tokens, for running without the OAuth flow."""

    def __init__(self, tokens: Iterable[str]):
        self._tokens = frozenset(t for t in tokens if t)

    def validate(self, access_token: str) -> Optional[str]:
        presented = access_token.encode()
        for candidate in self._tokens:
            if secrets.compare_digest(candidate.encode(), presented):
                return candidate
        return None
