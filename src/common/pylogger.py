"""Process-wide logging setup.

Logs go to stderr because stdout carries the MCP stdio transport.
"""

import logging
import os
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEBUG_ENV_VAR = "DEBUG"

_configured = False


def _debug_enabled() -> bool:
    return os.getenv(DEBUG_ENV_VAR, "").strip().lower() in ("1", "true", "yes", "on")


def get_python_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Configure logging once and return a logger.

    The level is DEBUG when the DEBUG environment variable is truthy, INFO otherwise.
    Later calls only look up the logger. Modules call get_python_logger(__name__).
    """
    global _configured

    if not _configured:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))

        root = logging.getLogger()
        root.addHandler(handler)
        root.setLevel(logging.DEBUG if _debug_enabled() else logging.INFO)

        # httpx logs every request at INFO
        logging.getLogger("httpx").setLevel(logging.WARNING)
        _configured = True

    return logging.getLogger(name)
