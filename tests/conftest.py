"""Shared fixtures for the workspace-mcp-server tests."""

import pytest
from fastapi.testclient import TestClient

from config import Config
from main import create_app
from oauth.service import AuthorizationService
from oauth.stores import ClientRegistry, SessionStore, TokenStore
from tests.helpers import PUBLIC_FQDN, REDIRECT_URI, FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry():
    return ClientRegistry()


@pytest.fixture
def sessions(clock):
    return SessionStore(ttl=600, clock=clock)


@pytest.fixture
def tokens(clock):
    return TokenStore(ttl=3600, clock=clock)


@pytest.fixture
def service(registry, sessions, tokens):
    return AuthorizationService(clients=registry, sessions=sessions, tokens=tokens)


@pytest.fixture
def registered_client(service):
    return service.clients.register([REDIRECT_URI], client_name="Test Client")


@pytest.fixture
def workspace(tmp_path):
    (tmp_path / "README.md").write_text("hello")
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "app.py").write_text("print('hi')")
    return tmp_path


@pytest.fixture
def app_config(workspace):
    return Config({"workspace_path": str(workspace), "public_fqdn": PUBLIC_FQDN})


@pytest.fixture
def app(app_config):
    return create_app(app_config)


@pytest.fixture
def client(app):
    return TestClient(app)
