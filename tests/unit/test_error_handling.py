"""Tests for typed errors and transport error classification."""

import httpx
import pytest

from core.errors import LokiAuthError, LokiClientError
from mcp_server.tools.loki.error_handling import LokiErrorClassifier, LokiErrorType


def status_error(status, text=""):
    request = httpx.Request("GET", "http://loki:3100/loki/api/v1/labels")
    response = httpx.Response(status, text=text, request=request)
    return httpx.HTTPStatusError("error", request=request, response=response)


class TestLokiClientError:
    def test_str_includes_code(self):
        assert str(LokiClientError("http_query_error", "HTTP query failed")) == "HTTP query failed (code: http_query_error)"

    def test_to_dict_drops_empty_values(self):
        assert LokiClientError("internal_error", "boom").to_dict() == {"code": "internal_error", "message": "boom"}
        assert LokiClientError("x", "y", status=2, details={"stderr": "e"}).to_dict() == {
            "code": "x",
            "message": "y",
            "status": 2,
            "details": {"stderr": "e"},
        }

    def test_auth_error_is_client_error(self):
        assert isinstance(LokiAuthError("config_load_error", "bad"), LokiClientError)


class TestClassifyError:
    @pytest.mark.parametrize("message,expected", [
        ("dial tcp: lookup loki: Name or service not known", LokiErrorType.DNS_RESOLUTION_FAILED),
        ("[Errno 111] Connection refused", LokiErrorType.CONNECTION_REFUSED),
        ("504 Gateway Timeout", LokiErrorType.SERVICE_UNAVAILABLE),
        ("read timed out", LokiErrorType.TIMEOUT),
        ("parse error at line 1, col 5", LokiErrorType.QUERY_SYNTAX_ERROR),
        ("something odd", LokiErrorType.UNKNOWN),
    ])
    def test_patterns(self, message, expected):
        assert LokiErrorClassifier.classify_error(message) == expected


class TestClassifyException:
    def test_timeout(self):
        assert LokiErrorClassifier.classify_exception(httpx.ReadTimeout("slow")) == LokiErrorType.TIMEOUT

    @pytest.mark.parametrize("status,expected", [
        (400, LokiErrorType.QUERY_SYNTAX_ERROR),
        (403, LokiErrorType.AUTHENTICATION_FAILED),
        (429, LokiErrorType.RATE_LIMITED),
        (503, LokiErrorType.SERVICE_UNAVAILABLE),
        (500, LokiErrorType.HTTP_ERROR),
    ])
    def test_status_codes(self, status, expected):
        assert LokiErrorClassifier.classify_exception(status_error(status)) == expected

    def test_connect_error_without_known_message(self):
        assert LokiErrorClassifier.classify_exception(httpx.ConnectError("")) == LokiErrorType.CONNECTION_REFUSED

    def test_friendly_message_mentions_url(self):
        message = LokiErrorClassifier.get_user_friendly_message(LokiErrorType.TIMEOUT, "http://loki:3100")
        assert "http://loki:3100" in message
