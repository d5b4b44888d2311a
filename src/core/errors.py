"""Typed errors raised by the Loki query service."""

from typing import Any, Dict, Optional


class LokiClientError(Exception):
    """
    Failure raised by the Loki query service.

    Attributes:
        code: Stable error code, e.g. "query_execution_failed" or "http_query_error"
        message: Human readable message
        status: Process exit status or HTTP status code, when known
        details: Structured context such as the query, options, stderr or response body
    """

    def __init__(
        self,
        code: str,
        message: str,
        status: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status = status
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, excluding empty values."""
        data = {
            "code": self.code,
            "message": self.message,
            "status": self.status,
            "details": self.details or None,
        }
        return {k: v for k, v in data.items() if v is not None}

    def __str__(self) -> str:
        return f"{self.message} (code: {self.code})"


class LokiAuthError(LokiClientError):
    """Failure while loading the connection/authentication configuration."""
