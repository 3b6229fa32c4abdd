"""Authorization-code grant orchestration.

Coordinates the client registry, session store and token store:

    Requested -> AwaitingApproval -> Approved -> Exchanged

"AwaitingApproval" is never held in memory: the consent page carries the
request parameters and the approval arrives as a separate request. A
denial writes nothing. Each authorization code can be exchanged once.

The service knows nothing about HTTP. It returns ConsentPrompt,
AuthorizationRedirect or IssuedAccessToken and raises OAuthError
subclasses; oauth.endpoints maps those onto responses.
"""

import base64
import hashlib
import logging
import secrets
import uuid
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode, urlsplit

from oauth.errors import (
    CodeAlreadyRedeemed,
    InvalidClient,
    InvalidGrant,
    InvalidRequest,
    NoThirdPartyToken,
    ServerError,
    SessionExpired,
    SessionNotFound,
    UnsupportedGrantType,
)
from oauth.models import (
    BOOTSTRAP_CLIENT_ID,
    ClientDescriptor,
    IssuedAccessToken,
    ThirdPartyToken,
    authorization_code_for,
    session_id_from_code,
)
from oauth.stores import ClientRegistry, SessionStore, TokenStore

logger = logging.getLogger(__name__)

SUPPORTED_GRANT_TYPE = "authorization_code"
SUPPORTED_CODE_CHALLENGE_METHODS = ("S256",)


@dataclass(frozen=True)
class ConsentPrompt:
    """A validated authorization request waiting for the user's decision."""

    client: ClientDescriptor
    redirect_uri: str
    scope: str = ""
    state: str = ""
    code_challenge: str = ""
    code_challenge_method: str = ""


@dataclass(frozen=True)
class AuthorizationRedirect:
    location: str
    approved: bool


def build_redirect_url(redirect_uri: str, params: dict) -> str:
    """Append URL-encoded ``params`` to ``redirect_uri``, keeping any existing query."""
    separator = "&" if urlsplit(redirect_uri).query else "?"
    return f"{redirect_uri}{separator}{urlencode(params)}"


def s256_challenge(code_verifier: str) -> str:
    digest = hashlib.sha256(code_verifier.encode()).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode()


class AuthorizationService:
    """The authorization server's grant flow over three independent stores."""

    def __init__(
        self,
        clients: Optional[ClientRegistry] = None,
        sessions: Optional[SessionStore] = None,
        tokens: Optional[TokenStore] = None,
    ):
        self.clients = clients if clients is not None else ClientRegistry()
        self.sessions = sessions if sessions is not None else SessionStore()
        self.tokens = tokens if tokens is not None else TokenStore()

    # ============== Authorization Request ==============

    def authorize(
        self,
        response_type: str,
        client_id: str,
        redirect_uri: str,
        scope: Optional[str] = None,
        state: Optional[str] = None,
        code_challenge: Optional[str] = None,
        code_challenge_method: Optional[str] = None,
    ) -> ConsentPrompt:
        """Validate an authorization request. No session is created yet."""
        logger.debug(f"[AUTHORIZE] client_id: {client_id}, redirect_uri: {redirect_uri}")

        if response_type != "code":
            raise InvalidRequest(f"unsupported response_type: {response_type}")
        if not client_id or not redirect_uri:
            raise InvalidRequest("client_id and redirect_uri are required")

        client = self.clients.validate(client_id, redirect_uri)
        if client is None:
            logger.info(f"[AUTHORIZE] Invalid client id or redirect uri: {client_id} / {redirect_uri}")
            raise InvalidRequest("invalid client id or redirect uri")

        if code_challenge:
            code_challenge_method = code_challenge_method or "S256"
            if code_challenge_method not in SUPPORTED_CODE_CHALLENGE_METHODS:
                raise InvalidRequest(f"unsupported code_challenge_method: {code_challenge_method}")

        return ConsentPrompt(
            client=client,
            redirect_uri=redirect_uri,
            scope=scope or "",
            state=state or "",
            code_challenge=code_challenge or "",
            code_challenge_method=(code_challenge_method or "") if code_challenge else "",
        )

    # ============== Approval ==============

    def approve(
        self,
        client_id: str,
        redirect_uri: str,
        scope: str,
        state: str,
        approved: str,
        code_challenge: Optional[str] = None,
        code_challenge_method: Optional[str] = None,
    ) -> AuthorizationRedirect:
        """Record the user's decision and build the redirect back to the client.

        On approval the session is written already holding its third-party
        token, so no half-approved session is ever visible.
        """
        if self.clients.validate(client_id, redirect_uri) is None:
            logger.info(f"[APPROVE] Invalid client id or redirect uri: {client_id} / {redirect_uri}")
            raise InvalidRequest("invalid client id or redirect uri")

        if approved != "true":
            params = {
                "error": "access_denied",
                "error_description": "user rejected the authorization request",
            }
            if state:
                params["state"] = state
            logger.info(f"[APPROVE] Authorization denied for client: {client_id}")
            return AuthorizationRedirect(build_redirect_url(redirect_uri, params), approved=False)

        session_id = str(uuid.uuid4())
        self.sessions.create(
            client_id=client_id,
            scope=scope,
            state=state,
            session_id=session_id,
            third_party_token=ThirdPartyToken.synthesize(scope),
            code_challenge=code_challenge or None,
            code_challenge_method=(code_challenge_method or "S256") if code_challenge else None,
        )

        params = {"code": authorization_code_for(session_id)}
        if state:
            params["state"] = state
        location = build_redirect_url(redirect_uri, params)
        logger.info(f"[APPROVE] Authorization approved, redirecting to: {redirect_uri}")
        return AuthorizationRedirect(location, approved=True)

    # ============== Token Exchange ==============

    def exchange(
        self,
        grant_type: str,
        code: str = "",
        client_id: str = "",
        client_secret: str = "",
        redirect_uri: str = "",
        code_verifier: Optional[str] = None,
        refresh_token: str = "",
    ) -> IssuedAccessToken:
        """Redeem an authorization code for an access token."""
        logger.debug(f"[TOKEN] grant_type: {grant_type}, client_id: {client_id}")

        if grant_type == "refresh_token":
            logger.warning("[TOKEN] Refresh token grant requested; only authorization_code is supported")
            raise UnsupportedGrantType("only authorization_code is supported")
        if grant_type != SUPPORTED_GRANT_TYPE:
            logger.info(f"[TOKEN] Unsupported grant type: {grant_type}")
            raise UnsupportedGrantType("only authorization_code is supported")

        session_id = session_id_from_code(code)
        if session_id is None:
            logger.info("[TOKEN] Invalid authorization code")
            raise InvalidGrant("invalid authorization code")

        client_id = client_id or BOOTSTRAP_CLIENT_ID
        client = self.clients.validate(client_id, redirect_uri)
        if client is None:
            logger.info(f"[TOKEN] Invalid client id or redirect uri: {client_id} / {redirect_uri}")
            raise InvalidClient("invalid client id or redirect uri")
        if client_secret and not _secret_matches(client, client_secret):
            logger.info(f"[TOKEN] Client secret mismatch for: {client_id}")
            raise InvalidClient("invalid client credentials")

        session = self.sessions.get(session_id)
        if session is None:
            logger.error(f"[TOKEN] Session not found for code: {session_id}")
            raise ServerError("failed to create access token: Session not found")

        if session.client_id != client.client_id:
            logger.warning(f"[TOKEN] Code for {session.client_id} presented by: {client.client_id}")
            raise InvalidGrant("authorization code was issued to another client")

        if session.code_challenge:
            if not code_verifier or not secrets.compare_digest(
                s256_challenge(code_verifier).encode(), session.code_challenge.encode()
            ):
                logger.info(f"[TOKEN] PKCE verification failed for session: {session_id}")
                raise InvalidGrant("PKCE verification failed")

        try:
            session = self.sessions.consume(session_id)
        except SessionNotFound as e:
            raise ServerError(f"failed to create access token: {e}")
        except SessionExpired:
            raise InvalidGrant("authorization code expired")
        except CodeAlreadyRedeemed:
            logger.warning(f"[TOKEN] Replayed authorization code for session: {session_id}")
            raise InvalidGrant("authorization code already used")

        try:
            token = self.tokens.issue(session)
        except NoThirdPartyToken as e:
            logger.error(f"[TOKEN] Failed to create access token: {e}")
            raise ServerError(f"failed to create access token: {e}")

        logger.info(f"[TOKEN] Access token created for client: {token.client_id}")
        return token

    # ============== Bearer Validation & Housekeeping ==============

    def validate_bearer(self, access_token: str) -> Optional[IssuedAccessToken]:
        return self.tokens.validate(access_token)

    def sweep_expired(self) -> tuple[int, int]:
        """Evict expired sessions and tokens. Returns (sessions, tokens) removed."""
        removed_sessions = self.sessions.sweep()
        removed_tokens = self.tokens.sweep()
        if removed_sessions or removed_tokens:
            logger.info(f"[SWEEP] Evicted {removed_sessions} sessions, {removed_tokens} tokens")
        return removed_sessions, removed_tokens


def _secret_matches(client: ClientDescriptor, client_secret: str) -> bool:
    if client.client_secret is None:
        return False
    return secrets.compare_digest(client.client_secret.encode(), client_secret.encode())
