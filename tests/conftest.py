"""Shared fixtures for the Loki MCP tests."""

import pytest

from core.config import ENV_VARS, CONFIG_PATH_ENV_VAR
from mcp_server.tools.loki import backends, mcp_tools


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """No LOKI_* variables, no config files from the developer machine, a fresh logcli version check."""
    for env_var in (*ENV_VARS.values(), CONFIG_PATH_ENV_VAR):
        monkeypatch.delenv(env_var, raising=False)

    home = tmp_path / "home"
    home.mkdir()
    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(workdir)

    version_check = backends.is_logcli_available
    version_check.cache_clear()
    monkeypatch.setattr(mcp_tools, "_query_tool", None)
    yield
    version_check.cache_clear()
