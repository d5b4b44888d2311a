"""Tests for LokiQueryTool dispatch and error wrapping."""

import pytest

from core.config import LokiConfig
from core.errors import LokiClientError
from mcp_server.tools.loki import query_tool as query_tool_module
from mcp_server.tools.loki.backends import HttpBackend, LokiBackend
from mcp_server.tools.loki.models import LokiQueryOptions
from mcp_server.tools.loki.query_tool import LokiQueryTool


class RecordingBackend(LokiBackend):
    name = "recording"

    def __init__(self, config=None, error=None, labels=None):
        super().__init__(config or LokiConfig())
        self.error = error
        self.labels = labels or []
        self.queries = []

    async def query_logs(self, query, options):
        self.queries.append((query, options))
        if self.error:
            raise self.error
        return f"result for {query}"

    async def get_labels(self):
        if self.error:
            raise self.error
        return self.labels

    async def get_label_values(self, label):
        if self.error:
            raise self.error
        return [f"{label}-{value}" for value in self.labels]


class TestConstruction:
    def test_uses_given_config_and_backend(self):
        backend = RecordingBackend()
        tool = LokiQueryTool(LokiConfig(addr="http://loki:3100"), backend=backend)
        assert tool.backend is backend
        assert tool.config.addr == "http://loki:3100"

    def test_resolves_config_and_selects_backend(self, monkeypatch):
        monkeypatch.setenv("LOKI_ADDR", "http://env:3100")
        monkeypatch.setattr(query_tool_module, "select_backend", lambda config: HttpBackend(config))

        tool = LokiQueryTool()

        assert tool.config.addr == "http://env:3100"
        assert isinstance(tool.backend, HttpBackend)

    def test_safe_config(self):
        tool = LokiQueryTool(LokiConfig(addr="http://loki:3100", password="secret"), backend=RecordingBackend())
        assert tool.safe_config() == {"addr": "http://loki:3100"}


class TestQueryLogs:
    @pytest.mark.asyncio
    async def test_delegates_to_backend(self):
        backend = RecordingBackend()
        tool = LokiQueryTool(LokiConfig(), backend=backend)
        options = LokiQueryOptions(limit=10)

        assert await tool.query_logs('{app="x"}', options) == 'result for {app="x"}'
        assert backend.queries == [('{app="x"}', options)]

    @pytest.mark.asyncio
    async def test_default_options(self):
        backend = RecordingBackend()
        await LokiQueryTool(LokiConfig(), backend=backend).query_logs("{}")
        assert backend.queries[0][1] == LokiQueryOptions()

    @pytest.mark.asyncio
    async def test_typed_error_propagates_unchanged(self):
        error = LokiClientError("http_query_error", "HTTP query failed", status=502)
        tool = LokiQueryTool(LokiConfig(), backend=RecordingBackend(error=error))

        with pytest.raises(LokiClientError) as exc_info:
            await tool.query_logs("{}")

        assert exc_info.value is error

    @pytest.mark.asyncio
    async def test_unexpected_error_wrapped(self):
        tool = LokiQueryTool(LokiConfig(), backend=RecordingBackend(error=RuntimeError("boom")))

        with pytest.raises(LokiClientError) as exc_info:
            await tool.query_logs('{app="x"}', LokiQueryOptions(limit=3))

        error = exc_info.value
        assert error.code == "internal_error"
        assert "boom" in error.message
        assert error.details == {"query": '{app="x"}', "options": {"limit": 3, "quiet": False}}
        assert isinstance(error.__cause__, RuntimeError)


class TestLabels:
    @pytest.mark.asyncio
    async def test_labels_newline_joined(self):
        tool = LokiQueryTool(LokiConfig(), backend=RecordingBackend(labels=["app", "job"]))
        assert await tool.get_labels() == "app\njob"

    @pytest.mark.asyncio
    async def test_no_labels_is_empty_text(self):
        tool = LokiQueryTool(LokiConfig(), backend=RecordingBackend())
        assert await tool.get_labels() == ""

    @pytest.mark.asyncio
    async def test_label_values_newline_joined(self):
        tool = LokiQueryTool(LokiConfig(), backend=RecordingBackend(labels=["1", "2"]))
        assert await tool.get_label_values("app") == "app-1\napp-2"

    @pytest.mark.asyncio
    async def test_label_values_error_wrapped(self):
        tool = LokiQueryTool(LokiConfig(), backend=RecordingBackend(error=KeyError("data")))

        with pytest.raises(LokiClientError) as exc_info:
            await tool.get_label_values("app")

        assert exc_info.value.code == "internal_error"
        assert exc_info.value.details == {"command": "label values", "label": "app"}
