"""MCP tools for workspace-mcp-server.

This module defines the MCP tools exposed to clients. Tools operate
inside a single workspace directory chosen at startup.
"""

import logging
from pathlib import Path
from typing import Optional

from fastmcp import FastMCP

logger = logging.getLogger(__name__)

SERVER_NAME = "workspace-mcp-server"
INSTRUCTIONS = "This MCP server provides tools to browse files within the user-defined workspace."


def resolve_workspace_path(workspace: Path, path: Optional[str]) -> Path:
    """Resolve a workspace-relative path, refusing anything outside the workspace."""
    root = workspace.resolve()
    target = (root / (path or ".")).resolve()
    if target != root and root not in target.parents:
        raise ValueError(f"Path is outside the workspace: {path}")
    return target


def list_workspace_files(workspace: Path, path: Optional[str] = None) -> list[str]:
    """Names of the entries in a workspace directory, sorted."""
    target = resolve_workspace_path(workspace, path)
    if not target.is_dir():
        raise ValueError(f"Not a directory: {path or '.'}")
    return sorted(entry.name for entry in target.iterdir())


def create_mcp(workspace_path: str) -> FastMCP:
    """Create the FastMCP server instance bound to ``workspace_path``."""
    workspace = Path(workspace_path)
    mcp = FastMCP(SERVER_NAME, instructions=INSTRUCTIONS)

    @mcp.tool()
    def list_files(path: Optional[str] = None) -> dict:
        """List files in the current workspace directory.

        Args:
            path: Workspace relative path to list files from (default: workspace root)

        Returns:
            A dict with the entry names under "files"
        """
        files = list_workspace_files(workspace, path)
        logger.info(f"[TOOL] list_files invoked, path: {path or '.'}, entries: {len(files)}")
        return {"files": files}

    return mcp
