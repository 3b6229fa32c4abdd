"""Tests for the workspace MCP tools."""

import pytest

from tools import create_mcp, list_workspace_files, resolve_workspace_path


def test_list_workspace_root(workspace):
    assert list_workspace_files(workspace) == ["README.md", "src"]


def test_list_subdirectory(workspace):
    assert list_workspace_files(workspace, "src") == ["app.py"]


def test_list_empty_directory(workspace):
    (workspace / "empty").mkdir()
    assert list_workspace_files(workspace, "empty") == []


@pytest.mark.parametrize("path", ["..", "../..", "src/../..", "/etc"])
def test_paths_outside_workspace_are_refused(workspace, path):
    with pytest.raises(ValueError):
        list_workspace_files(workspace, path)


def test_file_is_not_listable(workspace):
    with pytest.raises(ValueError):
        list_workspace_files(workspace, "README.md")


def test_missing_directory_is_not_listable(workspace):
    with pytest.raises(ValueError):
        list_workspace_files(workspace, "nope")


def test_resolve_stays_inside_workspace(workspace):
    assert resolve_workspace_path(workspace, None) == workspace.resolve()
    assert resolve_workspace_path(workspace, "src/../src") == (workspace / "src").resolve()


def test_create_mcp_names_the_server(workspace):
    mcp = create_mcp(str(workspace))
    assert mcp.name == "workspace-mcp-server"
