"""Workspace MCP Server.

It handles:
- MCP tools (list_files) via tools.py
- MCP protocol endpoint via Streamable HTTP (/mcp)
- OAuth 2.1 authorization server for MCP clients (oauth/)

MCP clients (ChatGPT, Claude, etc.) reach this server directly or through a
Cloudflare tunnel; CLOUDFLARED_TUNNEL_DOMAIN names the public host.
"""
import asyncio
import logging
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware import Middleware

from config import Config, load_config
from oauth.endpoints import init_oauth_routes
from oauth.middleware import BearerGateMiddleware
from oauth.service import AuthorizationService
from oauth.stores import ClientRegistry, SessionStore, StaticTokenStore, TokenStore
from tools import create_mcp

logger = logging.getLogger(__name__)

VERSION = "0.3.0"


async def run_expiry_sweeper(service: AuthorizationService, interval: float) -> None:
    """Periodically evict expired sessions and tokens until cancelled."""
    while True:
        await asyncio.sleep(interval)
        try:
            service.sweep_expired()
        except Exception:
            logger.exception("[SWEEP] Expiry sweep failed")


def build_gate_middleware(config: Config, service: AuthorizationService = None) -> list[Middleware]:
    """Bearer gate for the MCP app, according to the configured auth mode."""
    if config.auth_mode == "oauth":
        return [Middleware(
            BearerGateMiddleware,
            token_store=service.tokens,
            resource_metadata_url=f"{config.public_url}/.well-known/oauth-protected-resource",
        )]
    if config.auth_mode == "static":
        return [Middleware(BearerGateMiddleware, token_store=StaticTokenStore([config.auth_token]))]
    logger.warning("[STARTUP] Auth disabled: /mcp is open to anyone who can reach this server")
    return []


def create_app(config: Config = None) -> FastAPI:
    """Build the FastAPI application."""
    config = config or load_config()
    if not config.is_valid():
        raise ValueError(f"Invalid configuration (auth_mode={config.auth_mode!r}, log_level={config.log_level!r})")

    service = None
    if config.auth_mode == "oauth":
        service = AuthorizationService(
            clients=ClientRegistry(),
            sessions=SessionStore(ttl=config.session_ttl),
            tokens=TokenStore(ttl=config.access_token_ttl),
        )

    # ============== Streamable HTTP MCP App ==============
    # Created before the FastAPI app: its lifespan must run inside ours.
    mcp = create_mcp(config.workspace_path)
    mcp_http_app = mcp.http_app(
        path="/",  # Route at root of mounted app
        transport="streamable-http",
        middleware=build_gate_middleware(config, service),
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with mcp_http_app.lifespan(app):
            sweeper = None
            if service is not None:
                sweeper = asyncio.create_task(run_expiry_sweeper(service, config.sweep_interval))
            try:
                yield
            finally:
                if sweeper is not None:
                    sweeper.cancel()
                    with suppress(asyncio.CancelledError):
                        await sweeper

    app = FastAPI(
        title="Workspace MCP Server",
        description="MCP server exposing a workspace, with an OAuth 2.1 authorization server",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.config = config

    # Add CORS middleware for browser-based MCP client access
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.mount("/mcp", mcp_http_app)

    if service is not None:
        init_oauth_routes(app, service, config.public_url)

    # ============== Server Info Endpoints ==============

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "service": "workspace-mcp-server", "auth_mode": config.auth_mode}

    @app.get("/")
    async def root():
        """Root endpoint with server info."""
        response = {
            "name": "Workspace MCP Server",
            "version": VERSION,
            "endpoints": {"streamable_http": "/mcp/"},
            "tools": ["list_files"],
            "auth_mode": config.auth_mode,
        }
        if service is not None:
            response["oauth"] = {
                "protected_resource": f"{config.public_url}/.well-known/oauth-protected-resource",
                "authorization_server": f"{config.public_url}/.well-known/oauth-authorization-server",
            }
        return response

    logger.info(f"[STARTUP] Public URL: {config.public_url}, auth mode: {config.auth_mode}")
    logger.info(f"[STARTUP] Workspace: {config.workspace_path}")
    return app


# ============== Main Entry Point ==============

if __name__ == "__main__":
    import uvicorn

    from logging_config import setup_logging

    _config = load_config()
    setup_logging(_config.log_level, _config.log_format, _config.log_file)
    uvicorn.run(create_app(_config), host=_config.host, port=_config.port)
