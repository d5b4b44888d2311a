"""Loki MCP server.

Exposes Grafana Loki log queries as MCP tools over stdio:
- query_loki: Run a LogQL query
- get_labels: List label names
- get_label_values: List the values of a label

Resources:
- loki://config: Connection settings with secrets removed
"""

import asyncio
import json
import sys
from typing import Annotated, Literal, Optional

from mcp.server.fastmcp import FastMCP
from pydantic import Field

from common.pylogger import get_python_logger
from core.errors import LokiClientError

from .tools.loki import (
    MAX_LIMIT,
    get_labels_tool,
    get_label_values_tool,
    get_query_tool,
    is_logcli_available,
    query_loki_tool,
)

logger = get_python_logger(__name__)

SERVER_NAME = "loki-query-server"
RESTART_DELAY_SECONDS = 1.0

mcp = FastMCP(
    SERVER_NAME,
    instructions="Query Grafana Loki logs with LogQL and discover labels and label values.",
)


@mcp.tool(name="query_loki")
async def query_loki(
    query: Annotated[str, Field(description="Loki query string (LogQL)")],
    from_time: Annotated[
        Optional[str],
        Field(
            validation_alias="from",
            description="Start timestamp in UTC, ISO 8601 (e.g. '2023-01-01T12:00:00Z'). "
                        "Relative expressions like '1h ago' are not supported. Defaults to one hour ago.",
        ),
    ] = None,
    to_time: Annotated[
        Optional[str],
        Field(
            validation_alias="to",
            description="End timestamp in UTC, ISO 8601 (e.g. '2023-01-01T13:00:00Z'). Defaults to now.",
        ),
    ] = None,
    limit: Annotated[
        Optional[Annotated[int, Field(ge=1, le=MAX_LIMIT)]],
        Field(description=f"Maximum number of logs to return. Maximum value is {MAX_LIMIT}"),
    ] = None,
    batch: Annotated[Optional[int], Field(description="Batch size for query results")] = None,
    output: Annotated[
        Optional[Literal["default", "raw", "jsonl"]],
        Field(
            description="Output format: 'default' (formatted log lines), 'raw' (unprocessed log lines) "
                        "or 'jsonl' (JSON Lines)",
        ),
    ] = None,
    quiet: Annotated[Optional[bool], Field(description="Suppress query metadata")] = None,
    forward: Annotated[Optional[bool], Field(description="Display results in chronological order")] = None,
) -> str:
    """Run a LogQL query against Loki and return the matching log lines or metric samples."""
    return await query_loki_tool(
        query,
        from_time=from_time,
        to_time=to_time,
        limit=limit,
        batch=batch,
        output=output,
        quiet=quiet,
        forward=forward,
    )


@mcp.tool(name="get_label_values")
async def get_label_values(
    label: Annotated[str, Field(description="Label name to get values for")],
) -> str:
    """List all values of a Loki label, one per line."""
    return await get_label_values_tool(label)


@mcp.tool(name="get_labels")
async def get_labels() -> str:
    """List all Loki label names, one per line."""
    return await get_labels_tool()


@mcp.resource(
    "loki://config",
    name="loki-config",
    description="Loki connection settings (password and bearer token removed)",
    mime_type="application/json",
)
def loki_config() -> str:
    return json.dumps(get_query_tool().safe_config(), indent=2)


def _log_uncaught_exception(exc_type, exc_value, exc_traceback):
    """Log a fatal error on stderr before the interpreter exits."""
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
        return
    logger.error("Uncaught exception", exc_info=(exc_type, exc_value, exc_traceback))


def _handle_loop_exception(loop: asyncio.AbstractEventLoop, context: dict) -> None:
    """Log failures that escape a task or callback; the loop keeps running."""
    logger.error(
        "Unhandled error in event loop: %s",
        context.get("message", "unknown error"),
        exc_info=context.get("exception"),
    )


def prepare() -> None:
    """
    Blocking setup, run before the event loop starts.

    Caches the logcli version check so no tool call has to run it, then
    resolves the configuration and picks the backend.
    """
    is_logcli_available()
    try:
        tool = get_query_tool()
        logger.info("Using %s backend for Loki at %s", tool.backend.name, tool.config.addr)
    except LokiClientError as e:
        # Tools retry the setup on each call and report the error to the caller
        logger.error("Loki configuration could not be loaded: %s", e)


async def serve() -> None:
    """Serve MCP over stdio, restarting the session loop when it fails."""
    asyncio.get_running_loop().set_exception_handler(_handle_loop_exception)

    logger.info("Loki MCP server has started")
    while True:
        try:
            await mcp.run_stdio_async()
            return
        except Exception:
            logger.exception("MCP session loop failed, restarting in %.1fs", RESTART_DELAY_SECONDS)
            await asyncio.sleep(RESTART_DELAY_SECONDS)


def main():
    """Entry point for the MCP server."""
    sys.excepthook = _log_uncaught_exception
    prepare()
    try:
        asyncio.run(serve())
    except KeyboardInterrupt:
        logger.info("Loki MCP server stopped")


if __name__ == "__main__":
    main()
