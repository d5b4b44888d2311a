"""MCP tool functions for Loki log queries.

This module provides async MCP tools for interacting with Loki:
- query_loki_tool: Run a LogQL query over a time range
- get_labels_tool: List label names
- get_label_values_tool: List the values of one label

Failures are raised as ToolError so the MCP caller receives an error result.
"""

from datetime import datetime, timezone
from typing import Optional

from mcp.server.fastmcp.exceptions import ToolError

from common.pylogger import get_python_logger
from core.errors import LokiClientError

from .models import LokiQueryOptions, MAX_LIMIT, OUTPUT_MODES
from .query_tool import LokiQueryTool

logger = get_python_logger(__name__)

_query_tool: Optional[LokiQueryTool] = None


def get_query_tool() -> LokiQueryTool:
    """Shared LokiQueryTool, created on first use so configuration is resolved once."""
    global _query_tool
    if _query_tool is None:
        _query_tool = LokiQueryTool()
    return _query_tool


def parse_timestamp(value: Optional[str], field_name: str) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp; naive values are taken as UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError as e:
        raise LokiClientError(
            "invalid_time_range",
            f"Invalid '{field_name}' timestamp {value!r}. Use ISO 8601, e.g. '2024-01-01T12:00:00Z'",
            details={field_name: value},
        ) from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def build_query_options(
    from_time: Optional[str] = None,
    to_time: Optional[str] = None,
    limit: Optional[int] = None,
    batch: Optional[int] = None,
    output: Optional[str] = None,
    quiet: Optional[bool] = None,
    forward: Optional[bool] = None,
) -> LokiQueryOptions:
    """Validate raw tool arguments and build LokiQueryOptions."""
    if limit is not None and not 1 <= limit <= MAX_LIMIT:
        raise LokiClientError(
            "invalid_limit",
            f"limit {limit} must be between 1 and {MAX_LIMIT}",
            details={"limit": limit},
        )
    if output is not None and output not in OUTPUT_MODES:
        raise LokiClientError(
            "invalid_output",
            f"Unsupported output {output!r}; use one of {', '.join(OUTPUT_MODES)}",
            details={"output": output},
        )

    return LokiQueryOptions(
        from_time=parse_timestamp(from_time, "from"),
        to_time=parse_timestamp(to_time, "to"),
        limit=limit,
        batch=batch,
        output=output,
        quiet=bool(quiet),
        forward=forward,
    )


async def query_loki_tool(
    query: str,
    from_time: Optional[str] = None,
    to_time: Optional[str] = None,
    limit: Optional[int] = None,
    batch: Optional[int] = None,
    output: Optional[str] = None,
    quiet: Optional[bool] = None,
    forward: Optional[bool] = None,
    query_tool: Optional[LokiQueryTool] = None,
) -> str:
    """
    MCP tool function for querying Loki logs.

    Args:
        query: LogQL query string (e.g., '{app="myapp"} |= "error"')
        from_time: Start time in ISO format (default: one hour ago)
        to_time: End time in ISO format (default: now)
        limit: Maximum number of log entries, at most MAX_LIMIT (default: DEFAULT_LIMIT)
        batch: Batch size for logcli
        output: "default", "raw" or "jsonl"
        quiet: Suppress label headers
        forward: Return results in chronological order
        query_tool: Service to use instead of the shared one

    Returns:
        Query output text
    """
    try:
        options = build_query_options(from_time, to_time, limit, batch, output, quiet, forward)
        tool = query_tool or get_query_tool()
        return await tool.query_logs(query, options)
    except LokiClientError as e:
        logger.error("Loki query tool execution error for %s: %s", query, e)
        raise ToolError(f"Error running Loki query: {e}") from e


async def get_labels_tool(query_tool: Optional[LokiQueryTool] = None) -> str:
    """MCP tool function listing all label names, one per line."""
    try:
        tool = query_tool or get_query_tool()
        return await tool.get_labels()
    except LokiClientError as e:
        logger.error("Labels query tool execution error: %s", e)
        raise ToolError(f"Error getting labels: {e}") from e


async def get_label_values_tool(label: str, query_tool: Optional[LokiQueryTool] = None) -> str:
    """MCP tool function listing the values of a label, one per line."""
    try:
        tool = query_tool or get_query_tool()
        return await tool.get_label_values(label)
    except LokiClientError as e:
        logger.error("Label values query tool execution error for %s: %s", label, e)
        raise ToolError(f"Error getting label values: {e}") from e
