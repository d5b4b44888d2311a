"""Loki query service dispatching to the logcli or HTTP backend."""

from typing import Dict, Any, Optional

from common.pylogger import get_python_logger
from core.config import LokiConfig, load_loki_config
from core.errors import LokiClientError

from .backends import LokiBackend, select_backend
from .models import LokiQueryOptions, LabelListResponse

logger = get_python_logger(__name__)


class LokiQueryTool:
    """Tool for querying Loki logs and labels with async support."""

    def __init__(self, config: Optional[LokiConfig] = None, backend: Optional[LokiBackend] = None):
        self.config = config if config is not None else load_loki_config()
        # Chosen once; the logcli version check is cached for the process
        self.backend = backend if backend is not None else select_backend(self.config)
        logger.debug("LokiQueryTool initialized with %s backend", self.backend.name)

    def safe_config(self) -> Dict[str, Any]:
        """Connection settings without secrets, for display."""
        return self.config.safe_dict()

    async def query_logs(self, query: str, options: Optional[LokiQueryOptions] = None) -> str:
        """
        Query logs from Loki using LogQL syntax.

        Args:
            query (str): LogQL query string, forwarded as-is. Supports:
                - Label filtering: '{namespace="default", app="myapp"}'
                - Log line filtering: '{app="myapp"} |= "error"'
                - Metrics queries: 'rate({app="myapp"}[5m])'
            options (LokiQueryOptions, optional): Time range, limit, batch size,
                output mode, quiet and direction settings

        Returns:
            str: logcli output verbatim, or the HTTP response formatted like logcli

        Raises:
            LokiClientError: "query_execution_failed" for logcli failures,
                "http_query_error" for HTTP failures, "internal_error" otherwise
        """
        options = options or LokiQueryOptions()
        logger.debug("Executing Loki query via %s: %s (%s)", self.backend.name, query, options.to_dict())

        try:
            return await self.backend.query_logs(query, options)
        except LokiClientError:
            raise
        except Exception as e:
            logger.error("Loki query failed: %s", e)
            raise LokiClientError(
                "internal_error",
                f"Loki query error: {e}",
                details={"query": query, "options": options.to_dict()},
            ) from e

    async def get_labels(self) -> str:
        """Get available log labels from Loki, one per line."""
        logger.debug("Retrieving label list via %s", self.backend.name)

        try:
            labels = await self.backend.get_labels()
        except LokiClientError:
            raise
        except Exception as e:
            logger.error("Getting labels failed: %s", e)
            raise LokiClientError(
                "internal_error",
                f"Failed to get labels: {e}",
                details={"command": "labels"},
            ) from e

        logger.info("Found %d labels", len(labels))
        return LabelListResponse(items=labels).to_text()

    async def get_label_values(self, label: str) -> str:
        """Get values for a specific label from Loki, one per line."""
        logger.debug("Retrieving values for label '%s' via %s", label, self.backend.name)

        try:
            values = await self.backend.get_label_values(label)
        except LokiClientError:
            raise
        except Exception as e:
            logger.error("Getting label values failed for '%s': %s", label, e)
            raise LokiClientError(
                "internal_error",
                f"Failed to get label values: {e}",
                details={"command": "label values", "label": label},
            ) from e

        logger.info("Found %d values for label '%s'", len(values), label)
        return LabelListResponse(items=values).to_text()
