"""MCP tool packages."""
