"""Loki backends: the logcli command-line tool and the Loki HTTP API."""

import asyncio
import functools
import subprocess
from abc import ABC, abstractmethod
from typing import Dict, Any, List, Optional

import httpx

from common.pylogger import get_python_logger
from core.config import LokiConfig
from core.errors import LokiClientError

from .error_handling import LokiErrorClassifier
from .formatter import format_query_response
from .models import LokiQueryOptions, LabelListResponse
from .query_builder import (
    build_query_command,
    build_labels_command,
    build_query_range_params,
    build_request_headers,
    build_ssl_verify,
    redact_headers,
    query_range_url,
    labels_url,
    label_values_url,
)

logger = get_python_logger(__name__)

LOGCLI_BINARY = "logcli"
VERSION_CHECK_TIMEOUT_SECONDS = 10.0
REQUEST_TIMEOUT_SECONDS = 30.0

_SECRET_FLAGS = ("--password=", "--bearer-token=")


@functools.lru_cache(maxsize=None)
def is_logcli_available(binary: str = LOGCLI_BINARY) -> bool:
    """
    Run `logcli --version` once per process and cache whether it succeeded.

    This blocks for up to VERSION_CHECK_TIMEOUT_SECONDS, so the server calls it
    before starting the event loop; later calls return the cached result.
    """
    try:
        result = subprocess.run(
            [binary, "--version"],
            capture_output=True,
            timeout=VERSION_CHECK_TIMEOUT_SECONDS,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.info("logcli not available (%s), using the Loki HTTP API", e)
        return False

    available = result.returncode == 0
    logger.info("logcli available: %s", available)
    return available


def _redact_args(args: List[str]) -> List[str]:
    return [
        f"{arg.split('=', 1)[0]}=[REDACTED]" if arg.startswith(_SECRET_FLAGS) else arg
        for arg in args
    ]


class LokiBackend(ABC):
    """Executes Loki queries and label lookups."""

    name = "base"

    def __init__(self, config: LokiConfig):
        self.config = config

    @abstractmethod
    async def query_logs(self, query: str, options: LokiQueryOptions) -> str:
        """Run a LogQL query and return the formatted output."""

    @abstractmethod
    async def get_labels(self) -> List[str]:
        """Return all label names."""

    @abstractmethod
    async def get_label_values(self, label: str) -> List[str]:
        """Return the values of one label."""


class LogcliBackend(LokiBackend):
    """Runs logcli as a subprocess with an argument vector, never through a shell."""

    name = "logcli"

    def __init__(self, config: LokiConfig, binary: str = LOGCLI_BINARY):
        super().__init__(config)
        self.binary = binary

    async def _run(self, args: List[str], error_code: str, details: Dict[str, Any]) -> str:
        logger.debug("Running %s %s", self.binary, _redact_args(args))

        try:
            process = await asyncio.create_subprocess_exec(
                self.binary,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise LokiClientError(error_code, f"Failed to start {self.binary}: {e}", details=details) from e

        stdout, stderr = await process.communicate()
        stderr_text = stderr.decode("utf-8", errors="replace")

        if process.returncode != 0:
            logger.error("%s exited with status %s: %s", self.binary, process.returncode, stderr_text.strip())
            raise LokiClientError(
                error_code,
                f"{self.binary} exited with status {process.returncode}: {stderr_text.strip() or 'no error output'}",
                status=process.returncode,
                details={**details, "stderr": stderr_text},
            )

        return stdout.decode("utf-8", errors="replace")

    async def query_logs(self, query: str, options: LokiQueryOptions) -> str:
        args = build_query_command(self.config, query, options)
        return await self._run(
            args,
            "query_execution_failed",
            {"query": query, "options": options.to_dict()},
        )

    async def get_labels(self) -> List[str]:
        output = await self._run(
            build_labels_command(self.config),
            "execution_failed",
            {"command": "labels"},
        )
        return LabelListResponse.from_lines(output).items

    async def get_label_values(self, label: str) -> List[str]:
        output = await self._run(
            build_labels_command(self.config, label),
            "execution_failed",
            {"command": "label values", "label": label},
        )
        return LabelListResponse.from_lines(output).items


class HttpBackend(LokiBackend):
    """Calls the Loki HTTP API with httpx, one client per request."""

    name = "http"

    def __init__(self, config: LokiConfig, transport: Optional[httpx.AsyncBaseTransport] = None,
                 timeout: float = REQUEST_TIMEOUT_SECONDS):
        super().__init__(config)
        self._transport = transport
        self._timeout = timeout

    def _require_addr(self, details: Dict[str, Any]) -> str:
        if not self.config.addr:
            raise LokiClientError(
                "http_query_error",
                "Loki server address (addr) is not configured",
                details=details,
            )
        return self.config.addr

    def _bearer_token_from_file(self, details: Dict[str, Any]) -> Optional[str]:
        """Token from bearer_token_file, read per request so rotated tokens are picked up."""
        if self.config.bearer_token or not self.config.bearer_token_file:
            return None
        try:
            with open(self.config.bearer_token_file, "r") as f:
                return f.read().strip()
        except OSError as e:
            raise LokiClientError(
                "http_query_error",
                f"Failed to read bearer token file {self.config.bearer_token_file}: {e}",
                details=details,
            ) from e

    async def _get(self, action: str, url: str, headers: Dict[str, str],
                   details: Dict[str, Any], params: Optional[Dict[str, str]] = None) -> Any:
        logger.debug("%s: GET %s params=%s headers=%s", action, url, params, redact_headers(headers))

        try:
            verify = build_ssl_verify(self.config)
            async with httpx.AsyncClient(timeout=self._timeout, verify=verify, transport=self._transport) as client:
                response = await client.get(url, params=params, headers=headers)
                response.raise_for_status()
                return response.json()

        except httpx.HTTPStatusError as e:
            error_type = LokiErrorClassifier.classify_exception(e)
            logger.error("%s failed: HTTP %s - %s", action, e.response.status_code, e.response.text)
            raise LokiClientError(
                "http_query_error",
                f"{action} failed: HTTP {e.response.status_code} {e.response.reason_phrase}",
                status=e.response.status_code,
                details={
                    **details,
                    "status": e.response.status_code,
                    "status_text": e.response.reason_phrase,
                    "response_body": e.response.text,
                    "error_type": error_type.value,
                    "hint": LokiErrorClassifier.get_user_friendly_message(error_type, self.config.addr),
                },
            ) from e

        except httpx.HTTPError as e:
            error_type = LokiErrorClassifier.classify_exception(e)
            logger.error("%s failed: %s", action, e)
            raise LokiClientError(
                "http_query_error",
                f"{action} failed: {str(e) or type(e).__name__}",
                details={
                    **details,
                    "error_type": error_type.value,
                    "hint": LokiErrorClassifier.get_user_friendly_message(error_type, self.config.addr),
                },
            ) from e

        except ValueError as e:
            raise LokiClientError(
                "http_query_error",
                f"{action} failed: response is not valid JSON",
                details=details,
            ) from e

        except OSError as e:
            # CA or client certificate could not be loaded
            raise LokiClientError(
                "http_query_error",
                f"{action} failed: TLS configuration error: {e}",
                details=details,
            ) from e

    async def query_logs(self, query: str, options: LokiQueryOptions) -> str:
        details = {"query": query, "options": options.to_dict()}
        addr = self._require_addr(details)

        headers = build_request_headers(self.config, options, self._bearer_token_from_file(details))
        params = build_query_range_params(query, options)

        data = await self._get("HTTP query", query_range_url(addr), headers, details, params=params)
        return format_query_response(data, options)

    async def get_labels(self) -> List[str]:
        details = {"command": "labels"}
        addr = self._require_addr(details)

        headers = build_request_headers(self.config, bearer_token=self._bearer_token_from_file(details))
        data = await self._get("HTTP labels query", labels_url(addr), headers, details)
        return _data_list(data)

    async def get_label_values(self, label: str) -> List[str]:
        details = {"command": "label values", "label": label}
        addr = self._require_addr(details)

        headers = build_request_headers(self.config, bearer_token=self._bearer_token_from_file(details))
        data = await self._get("HTTP label values query", label_values_url(addr, label), headers, details)
        return _data_list(data)


def _data_list(body: Any) -> List[str]:
    """The `data` array of a labels response, or an empty list."""
    if isinstance(body, dict) and isinstance(body.get("data"), list):
        return [str(item) for item in body["data"]]
    return []


def select_backend(config: LokiConfig) -> LokiBackend:
    """logcli when it is installed, the HTTP API otherwise."""
    if is_logcli_available():
        return LogcliBackend(config)
    return HttpBackend(config)
