"""Shared helpers used across the server packages."""
