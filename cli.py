"""CLI entry point for workspace-mcp-server.

Runs the MCP server for one workspace directory, in the foreground.
"""
import argparse
import sys
from pathlib import Path

import uvicorn

from config import AUTH_MODES, LOG_LEVELS, Config, load_config
from logging_config import setup_logging
from main import VERSION, create_app


# ============== Commands ==============

def cmd_start(config: Config) -> int:
    """Start the MCP server in the foreground."""
    if not Path(config.workspace_path).is_dir():
        print(f"[X] Workspace path is not a directory: {config.workspace_path}", file=sys.stderr)
        return 2

    setup_logging(config.log_level, config.log_format, config.log_file)
    app = create_app(config)
    uvicorn.run(app, host=config.host, port=config.port, log_level=config.log_level.lower())
    return 0


def cmd_config(config: Config) -> int:
    """Show the effective configuration."""
    print("\n--- Configuration ---")
    print(f"  Workspace:   {config.workspace_path}")
    print(f"  Listen:      {config.host}:{config.port}")
    print(f"  Public URL:  {config.public_url}")
    print(f"  Auth mode:   {config.auth_mode}")
    if config.auth_mode == "static":
        print(f"  Auth token:  {'set' if config.auth_token else 'MISSING'}")
    if config.auth_mode == "oauth":
        print(f"  Session TTL: {config.session_ttl}s")
        print(f"  Token TTL:   {config.access_token_ttl}s")
    print(f"  Log level:   {config.log_level} ({config.log_format})")
    print()
    return 0


def cmd_version() -> int:
    """Show version information."""
    print(f"workspace-mcp-server v{VERSION}")
    return 0


# ============== Main Entry Point ==============

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="workspace-mcp-server",
        description="Workspace MCP Server - MCP server with an OAuth 2.1 authorization server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  start     Start the MCP server (default)
  config    Show the effective configuration
  version   Show version

Examples:
  workspace-mcp-server --workspace-path ~/projects/demo
  workspace-mcp-server --auth-mode static --auth-token s3cret --port 9000
"""
    )

    parser.add_argument(
        "command",
        nargs="?",
        default="start",
        choices=["start", "config", "version"],
        help="Command to run (default: start)"
    )
    parser.add_argument("--workspace-path", dest="workspace_path", help="Workspace directory to expose")
    parser.add_argument("--port", type=int, help="Local port (default: 9876)")
    parser.add_argument("--host", help="Bind address (default: 0.0.0.0)")
    parser.add_argument("--public-fqdn", dest="public_fqdn", help="Public host clients use, e.g. a tunnel domain")
    parser.add_argument("--auth-mode", dest="auth_mode", choices=AUTH_MODES, help="Bearer gate mode (default: oauth)")
    parser.add_argument(
        "--auth-token",
        dest="auth_token",
        help="Bearer token required in static mode (env: WORKSPACE_MCP_AUTH_TOKEN)"
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        type=str.upper,
        choices=LOG_LEVELS,
        help="Log level (default: INFO)"
    )
    parser.add_argument("--version", "-v", action="store_true", help=argparse.SUPPRESS)
    return parser


def main(argv: list[str] = None) -> int:
    """Main entry point for CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version or args.command == "version":
        return cmd_version()

    overrides = {
        key: getattr(args, key)
        for key in ("workspace_path", "port", "host", "public_fqdn", "auth_mode", "auth_token", "log_level")
    }
    config = load_config(overrides)

    if not config.is_valid():
        if config.log_level not in LOG_LEVELS:
            print(f"[X] Invalid configuration: log level '{config.log_level}'", file=sys.stderr)
            return 2
        print(f"[X] Invalid configuration: auth mode '{config.auth_mode}'", file=sys.stderr)
        if config.auth_mode == "static":
            print("  Static mode needs --auth-token or WORKSPACE_MCP_AUTH_TOKEN.", file=sys.stderr)
        return 2

    if args.command == "config":
        return cmd_config(config)
    return cmd_start(config)


if __name__ == "__main__":
    sys.exit(main())
