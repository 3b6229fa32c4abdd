"""Tests for the Bearer gate in front of the MCP endpoint."""

import pytest
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.responses import JSONResponse
from starlette.routing import Route
from starlette.testclient import TestClient

from oauth.middleware import BearerGateMiddleware, extract_bearer_token
from oauth.models import ThirdPartyToken
from oauth.stores import SessionStore, StaticTokenStore, TokenStore

METADATA_URL = "https://mcp.example.org/.well-known/oauth-protected-resource"


async def whoami(request):
    record = request.state.token
    client_id = getattr(record, "client_id", record)
    return JSONResponse({"client_id": client_id})


def gated_app(token_store, resource_metadata_url=METADATA_URL):
    return Starlette(
        routes=[Route("/", whoami, methods=["GET", "POST"])],
        middleware=[
            Middleware(
                BearerGateMiddleware,
                token_store=token_store,
                resource_metadata_url=resource_metadata_url,
            )
        ],
    )


@pytest.fixture
def token_store():
    return TokenStore(ttl=3600)


@pytest.fixture
def issued(token_store):
    sessions = SessionStore()
    sessions.create("client-1", "profile", None, "s1", third_party_token=ThirdPartyToken.synthesize("profile"))
    return token_store.issue(sessions.get("s1"))


@pytest.mark.parametrize("header,expected", [
    ("Bearer abc", "abc"),
    ("Bearer   abc  ", "abc"),
    ("Bearer ", None),
    ("bearer abc", None),
    ("Basic abc", None),
    ("", None),
    (None, None),
])
def test_extract_bearer_token(header, expected):
    assert extract_bearer_token(header) == expected


def test_missing_header_is_rejected(token_store):
    response = TestClient(gated_app(token_store)).get("/")
    assert response.status_code == 401
    assert response.json() == {
        "error": "unauthorized",
        "error_description": "Missing or invalid Authorization header",
    }
    assert response.headers["www-authenticate"] == f'Bearer resource_metadata="{METADATA_URL}"'


def test_unknown_token_is_rejected(token_store):
    response = TestClient(gated_app(token_store)).get("/", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401
    assert response.json()["error_description"] == "Invalid or expired token"


def test_plain_challenge_without_metadata_url(token_store):
    response = TestClient(gated_app(token_store, resource_metadata_url="")).get("/")
    assert response.headers["www-authenticate"] == "Bearer"


def test_valid_token_reaches_the_app(token_store, issued):
    response = TestClient(gated_app(token_store)).post(
        "/", headers={"Authorization": f"Bearer {issued.access_token}"},
    )
    assert response.status_code == 200
    assert response.json() == {"client_id": "client-1"}


def test_static_token_store_gate():
    client = TestClient(gated_app(StaticTokenStore(["s3cret"])))
    assert client.get("/", headers={"Authorization": "Bearer s3cret"}).json() == {"client_id": "s3cret"}
    assert client.get("/", headers={"Authorization": "Bearer s3cret2"}).status_code == 401
