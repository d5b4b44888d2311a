"""Loki MCP server package."""
