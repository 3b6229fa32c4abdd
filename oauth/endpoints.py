"""OAuth 2.1 endpoints for MCP server authentication.

This module contains all OAuth-related endpoints:
- Discovery metadata (/.well-known/*)
- Client registration (/oauth/register)
- Authorization flow (/oauth/authorize, /oauth/approve)
- Token endpoint (/oauth/token)

Only the authorization_code grant is supported.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Form, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from pydantic import ValidationError

from oauth.errors import InvalidRequest, OAuthError
from oauth.schemas import ClientRegistrationRequest, ClientRegistrationResponse
from oauth.service import AuthorizationService
from oauth.templates import render_consent_page

logger = logging.getLogger(__name__)

# Router for OAuth endpoints
router = APIRouter(tags=["oauth"])

SCOPES_SUPPORTED = ["profile", "email"]


def init_oauth_routes(app: FastAPI, service: AuthorizationService, public_url: str) -> None:
    """Attach the authorization service to ``app`` and mount the OAuth routes.

    ``public_url`` is the externally visible base URL (scheme and host)
    that every metadata document is derived from.
    """
    app.state.oauth_service = service
    app.state.public_url = public_url.rstrip("/")
    app.add_exception_handler(OAuthError, oauth_error_handler)
    app.include_router(router)


async def oauth_error_handler(request: Request, exc: OAuthError) -> JSONResponse:
    return exc.to_response()


def get_oauth_service(request: Request) -> AuthorizationService:
    return request.app.state.oauth_service


def get_public_url(request: Request) -> str:
    return request.app.state.public_url


# ============== OAuth 2.1 Discovery Endpoints ==============

@router.get("/.well-known/oauth-authorization-server")
async def oauth_authorization_server(public_url: str = Depends(get_public_url)):
    """OAuth 2.0 Authorization Server Metadata (RFC 8414)."""
    return {
        "issuer": public_url,
        "authorization_endpoint": f"{public_url}/oauth/authorize",
        "token_endpoint": f"{public_url}/oauth/token",
        "registration_endpoint": f"{public_url}/oauth/register",
        "jwks_uri": f"{public_url}/oauth/jwks",
        "scopes_supported": SCOPES_SUPPORTED,
        "response_types_supported": ["code"],
        "grant_types_supported": ["authorization_code"],
        "token_endpoint_auth_methods_supported": ["none", "client_secret_post"],
        "code_challenge_methods_supported": ["S256"],
    }


@router.get("/.well-known/oauth-protected-resource")
async def oauth_protected_resource(public_url: str = Depends(get_public_url)):
    """OAuth 2.0 Protected Resource Metadata (RFC 9728)."""
    return {
        "resource": f"{public_url}/mcp",
        "authorization_servers": [public_url],
        "scopes_supported": SCOPES_SUPPORTED,
        "bearer_methods_supported": ["header"],
    }


@router.get("/oauth/jwks")
async def jwks():
    """Key set advertised by the metadata. Tokens are opaque, so it is empty."""
    return {"keys": []}


# ============== Client Registration ==============

@router.post("/oauth/register")
async def register_client(request: Request, service: AuthorizationService = Depends(get_oauth_service)):
    """OAuth 2.0 Dynamic Client Registration (RFC 7591)."""
    try:
        data = await request.json()
    except ValueError:
        raise InvalidRequest("request body must be a JSON object")

    try:
        registration = ClientRegistrationRequest.model_validate(data)
    except ValidationError as e:
        raise InvalidRequest(f"invalid registration request: {e.errors()[0]['msg']}")

    client = service.clients.register(registration.redirect_uris, registration.client_name)

    response = ClientRegistrationResponse(
        client_id=client.client_id,
        client_secret=client.client_secret,
        client_name=registration.client_name,
        redirect_uris=registration.redirect_uris,
    )
    return JSONResponse(response.model_dump(), status_code=201)


# ============== Authorization Flow ==============

@router.get("/oauth/authorize")
async def authorize(
    response_type: str = "",
    client_id: str = "",
    redirect_uri: str = "",
    scope: Optional[str] = None,
    state: Optional[str] = None,
    code_challenge: Optional[str] = None,
    code_challenge_method: Optional[str] = None,
    service: AuthorizationService = Depends(get_oauth_service),
):
    """OAuth 2.0 Authorization Endpoint - renders the consent page."""
    prompt = service.authorize(
        response_type=response_type,
        client_id=client_id,
        redirect_uri=redirect_uri,
        scope=scope,
        state=state,
        code_challenge=code_challenge,
        code_challenge_method=code_challenge_method,
    )
    return HTMLResponse(render_consent_page(prompt))


@router.post("/oauth/approve")
async def approve(
    client_id: str = Form(""),
    redirect_uri: str = Form(""),
    scope: str = Form(""),
    state: str = Form(""),
    approved: str = Form(""),
    code_challenge: str = Form(""),
    code_challenge_method: str = Form(""),
    service: AuthorizationService = Depends(get_oauth_service),
):
    """Handle consent form submission."""
    result = service.approve(
        client_id=client_id,
        redirect_uri=redirect_uri,
        scope=scope,
        state=state,
        approved=approved,
        code_challenge=code_challenge,
        code_challenge_method=code_challenge_method,
    )
    return RedirectResponse(url=result.location, status_code=302)


# ============== Token Endpoint ==============

@router.post("/oauth/token")
async def token(
    request: Request,
    grant_type: str = Form(None),
    code: str = Form(None),
    redirect_uri: str = Form(None),
    client_id: str = Form(None),
    client_secret: str = Form(None),
    code_verifier: str = Form(None),
    refresh_token: str = Form(None),
    service: AuthorizationService = Depends(get_oauth_service),
):
    """OAuth 2.0 Token Endpoint."""
    # Handle form data or JSON
    if grant_type is None and request.headers.get("content-type", "").startswith("application/json"):
        try:
            data = await request.json()
        except ValueError as e:
            raise InvalidRequest(f"can't parse request body: {e}", status_code=422)
        if not isinstance(data, dict):
            raise InvalidRequest("request body must be a JSON object", status_code=422)
        grant_type = _json_field(data, "grant_type")
        code = _json_field(data, "code")
        redirect_uri = _json_field(data, "redirect_uri")
        client_id = _json_field(data, "client_id")
        client_secret = _json_field(data, "client_secret")
        code_verifier = _json_field(data, "code_verifier")
        refresh_token = _json_field(data, "refresh_token")

    if grant_type is None:
        logger.info("[TOKEN] Request without grant_type")
        raise InvalidRequest("missing field `grant_type`", status_code=422)

    issued = service.exchange(
        grant_type=grant_type,
        code=code or "",
        client_id=client_id or "",
        client_secret=client_secret or "",
        redirect_uri=redirect_uri or "",
        code_verifier=code_verifier,
        refresh_token=refresh_token or "",
    )
    return JSONResponse(issued.to_response(), headers={"Cache-Control": "no-store"})


def _json_field(data: dict, key: str) -> Optional[str]:
    value = data.get(key)
    return None if value is None else str(value)
