"""Tests for the command line entry point."""

import pytest

import cli
from config import load_config


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Keep the host's env vars and config file out of CLI runs."""
    def load(overrides=None):
        return load_config(overrides, config_file=tmp_path / "config.json", environ={})
    monkeypatch.setattr(cli, "load_config", load)


def test_version(capsys):
    assert cli.main(["version"]) == 0
    assert "workspace-mcp-server v" in capsys.readouterr().out
    assert cli.main(["--version"]) == 0


def test_config_command(capsys, workspace):
    code = cli.main(["config", "--workspace-path", str(workspace), "--public-fqdn", "mcp.example.org"])
    assert code == 0
    out = capsys.readouterr().out
    assert str(workspace) in out
    assert "https://mcp.example.org" in out
    assert "Auth mode:   oauth" in out


def test_static_mode_without_token_is_refused(capsys):
    assert cli.main(["config", "--auth-mode", "static"]) == 2
    assert "WORKSPACE_MCP_AUTH_TOKEN" in capsys.readouterr().err


def test_start_refuses_missing_workspace(capsys, tmp_path):
    assert cli.main(["start", "--workspace-path", str(tmp_path / "missing")]) == 2
    assert "not a directory" in capsys.readouterr().err


def test_start_runs_uvicorn(monkeypatch, workspace):
    calls = []
    monkeypatch.setattr(cli, "setup_logging", lambda *args: None)
    monkeypatch.setattr(cli.uvicorn, "run", lambda app, **kwargs: calls.append(kwargs))

    assert cli.main(["--workspace-path", str(workspace), "--port", "9100"]) == 0
    assert calls == [{"host": "0.0.0.0", "port": 9100, "log_level": "info"}]


def test_unknown_auth_mode_is_rejected_by_parser():
    with pytest.raises(SystemExit):
        cli.main(["--auth-mode", "basic"])


def test_log_level_flag_is_case_insensitive(capsys):
    assert cli.main(["config", "--log-level", "debug"]) == 0
    assert "Log level:   DEBUG" in capsys.readouterr().out


def test_unknown_log_level_flag_is_rejected_by_parser():
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["--log-level", "foo"])
    assert exc_info.value.code == 2


def test_unknown_log_level_from_env_is_refused(monkeypatch, tmp_path, capsys):
    def load(overrides=None):
        return load_config(overrides, config_file=tmp_path / "config.json", environ={"LOG_LEVEL": "verbose"})
    monkeypatch.setattr(cli, "load_config", load)

    assert cli.main(["config"]) == 2
    assert "log level 'VERBOSE'" in capsys.readouterr().err
