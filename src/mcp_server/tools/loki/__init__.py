"""Loki tools package for MCP server integration."""

# Import all MCP tool functions
from .mcp_tools import (
    query_loki_tool,
    get_labels_tool,
    get_label_values_tool,
    get_query_tool,
)

# Import supporting classes for advanced usage
from .query_tool import LokiQueryTool
from .backends import LokiBackend, LogcliBackend, HttpBackend, is_logcli_available, select_backend
from .formatter import format_query_response, NO_RESULTS
from .models import LokiQueryOptions, LabelListResponse, DEFAULT_LIMIT, MAX_LIMIT
from .error_handling import LokiErrorClassifier, LokiErrorType

# Export all public interfaces
__all__ = [
    # MCP tool functions
    "query_loki_tool",
    "get_labels_tool",
    "get_label_values_tool",
    "get_query_tool",

    # Supporting classes
    "LokiQueryTool",
    "LokiBackend",
    "LogcliBackend",
    "HttpBackend",
    "is_logcli_available",
    "select_backend",
    "format_query_response",
    "NO_RESULTS",
    "LokiQueryOptions",
    "LabelListResponse",
    "DEFAULT_LIMIT",
    "MAX_LIMIT",
    "LokiErrorClassifier",
    "LokiErrorType",
]
