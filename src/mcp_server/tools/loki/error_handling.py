"""Classification of Loki transport errors."""

from enum import Enum

import httpx


class LokiErrorType(Enum):
    """Classification of Loki transport errors."""
    CONNECTION_REFUSED = "connection_refused"
    DNS_RESOLUTION_FAILED = "dns_resolution_failed"
    HTTP_ERROR = "http_error"
    TIMEOUT = "timeout"
    AUTHENTICATION_FAILED = "authentication_failed"
    SERVICE_UNAVAILABLE = "service_unavailable"
    QUERY_SYNTAX_ERROR = "query_syntax_error"
    RATE_LIMITED = "rate_limited"
    UNKNOWN = "unknown"


class LokiErrorClassifier:
    """Classifies Loki transport failures and provides user-friendly messages."""

    ERROR_PATTERNS = {
        LokiErrorType.DNS_RESOLUTION_FAILED: [
            "name or service not known",
            "nodename nor servname provided",
            "temporary failure in name resolution",
            "no address associated with hostname",
            "getaddrinfo failed"
        ],
        LokiErrorType.CONNECTION_REFUSED: [
            "connection refused",
            "connection reset",
            "no route to host",
            "all connection attempts failed"
        ],
        LokiErrorType.SERVICE_UNAVAILABLE: [
            "service unavailable",
            "bad gateway",
            "gateway timeout"
        ],
        LokiErrorType.TIMEOUT: [
            "timeout",
            "timed out",
            "deadline exceeded"
        ],
        LokiErrorType.AUTHENTICATION_FAILED: [
            "unauthorized",
            "authentication failed",
            "invalid credentials",
            "forbidden",
            "no org id"
        ],
        LokiErrorType.QUERY_SYNTAX_ERROR: [
            "parse error",
            "syntax error",
            "invalid query"
        ],
        LokiErrorType.RATE_LIMITED: [
            "rate limit",
            "too many requests",
            "too many outstanding requests"
        ]
    }

    STATUS_TYPES = {
        400: LokiErrorType.QUERY_SYNTAX_ERROR,
        401: LokiErrorType.AUTHENTICATION_FAILED,
        403: LokiErrorType.AUTHENTICATION_FAILED,
        429: LokiErrorType.RATE_LIMITED,
        502: LokiErrorType.SERVICE_UNAVAILABLE,
        503: LokiErrorType.SERVICE_UNAVAILABLE,
        504: LokiErrorType.SERVICE_UNAVAILABLE,
    }

    @classmethod
    def classify_error(cls, error_message: str) -> LokiErrorType:
        """
        Classify an error message into a specific error type.

        Args:
            error_message: The error message to classify

        Returns:
            LokiErrorType: The classified error type
        """
        error_lower = error_message.lower()

        for error_type, patterns in cls.ERROR_PATTERNS.items():
            if any(pattern in error_lower for pattern in patterns):
                return error_type

        return LokiErrorType.UNKNOWN

    @classmethod
    def classify_exception(cls, error: Exception) -> LokiErrorType:
        """Classify an httpx exception using its type and status code before falling back to its message."""
        if isinstance(error, httpx.TimeoutException):
            return LokiErrorType.TIMEOUT

        if isinstance(error, httpx.HTTPStatusError):
            status_type = cls.STATUS_TYPES.get(error.response.status_code)
            if status_type:
                return status_type
            message_type = cls.classify_error(error.response.text)
            return message_type if message_type != LokiErrorType.UNKNOWN else LokiErrorType.HTTP_ERROR

        message_type = cls.classify_error(str(error))
        if message_type == LokiErrorType.UNKNOWN and isinstance(error, httpx.ConnectError):
            return LokiErrorType.CONNECTION_REFUSED
        return message_type

    @classmethod
    def get_user_friendly_message(cls, error_type: LokiErrorType, loki_url: str) -> str:
        """
        Get a user-friendly error message for the given error type.

        Args:
            error_type: The classified error type
            loki_url: The Loki URL that was being accessed

        Returns:
            str: User-friendly error message with a troubleshooting hint
        """
        messages = {
            LokiErrorType.CONNECTION_REFUSED: f"Loki refused the connection at {loki_url}. Check that Loki is running and LOKI_ADDR is correct.",
            LokiErrorType.DNS_RESOLUTION_FAILED: f"Loki host could not be resolved for {loki_url}. Check LOKI_ADDR.",
            LokiErrorType.HTTP_ERROR: f"HTTP error accessing Loki at {loki_url}.",
            LokiErrorType.TIMEOUT: f"Request to Loki timed out at {loki_url}. Narrow the time range or lower the limit.",
            LokiErrorType.AUTHENTICATION_FAILED: f"Authentication failed when accessing Loki at {loki_url}. Check credentials and tenant ID.",
            LokiErrorType.SERVICE_UNAVAILABLE: f"Loki is temporarily unavailable at {loki_url}. Please try again later.",
            LokiErrorType.QUERY_SYNTAX_ERROR: "Loki rejected the query. Check the LogQL syntax.",
            LokiErrorType.RATE_LIMITED: f"Rate limit exceeded for Loki at {loki_url}. Please reduce query frequency.",
            LokiErrorType.UNKNOWN: f"Unexpected error accessing Loki at {loki_url}"
        }

        return messages.get(error_type, messages[LokiErrorType.UNKNOWN])
