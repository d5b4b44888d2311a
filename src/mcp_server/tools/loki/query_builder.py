"""
Builders that turn query options into logcli arguments or Loki HTTP requests.

Everything here is a pure transform of (LokiConfig, LokiQueryOptions) except
build_ssl_verify, which reads the configured CA and client certificate files.
"""

import base64
import ssl
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Union
from urllib.parse import quote

from common.pylogger import get_python_logger
from core.config import LokiConfig

from .models import LokiQueryOptions, DEFAULT_LIMIT, MAX_LIMIT

logger = get_python_logger(__name__)

LOGCLI_QUERY_COMMAND = "query"
LOGCLI_LABELS_COMMAND = "labels"

DEFAULT_LOOKBACK = timedelta(hours=1)

API_PREFIX = "/loki/api/v1"


def to_iso8601(value: datetime) -> str:
    """Render a datetime as UTC ISO-8601 with millisecond precision, e.g. 2024-01-01T12:00:00.000Z."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_auth_args(config: LokiConfig) -> List[str]:
    """logcli connection/authentication flags for every configured field."""
    args = []

    if config.addr:
        args.append(f"--addr={config.addr}")
    if config.username:
        args.append(f"--username={config.username}")
    if config.password:
        args.append(f"--password={config.password}")
    if config.tenant_id:
        args.append(f"--tenant-id={config.tenant_id}")
    if config.bearer_token:
        args.append(f"--bearer-token={config.bearer_token}")
    if config.bearer_token_file:
        args.append(f"--bearer-token-file={config.bearer_token_file}")
    if config.ca_file:
        args.append(f"--ca-file={config.ca_file}")
    if config.cert_file:
        args.append(f"--cert-file={config.cert_file}")
    if config.key_file:
        args.append(f"--key-file={config.key_file}")
    if config.org_id:
        args.append(f"--org-id={config.org_id}")
    if config.tls_skip_verify:
        args.append("--tls-skip-verify")

    return args


def build_global_args(options: LokiQueryOptions) -> List[str]:
    """Global logcli flags, placed before the sub-command."""
    args = []

    if options.quiet:
        args.append("--quiet")
    if options.output:
        args.append(f"--output={options.output}")

    return args


def build_query_specific_args(options: LokiQueryOptions, now: Optional[datetime] = None) -> List[str]:
    """
    Flags of the logcli query sub-command, placed after the sub-command.

    Args:
        options: Query options
        now: Reference time for the default one-hour window (defaults to the current UTC time)

    Returns:
        List[str]: --from, --to and the optional --limit, --batch and --forward flags
    """
    args = []

    if options.from_time:
        args.append(f"--from={to_iso8601(options.from_time)}")
    else:
        now = now or datetime.now(timezone.utc)
        args.append(f"--from={to_iso8601(now - DEFAULT_LOOKBACK)}")

    if options.to_time:
        args.append(f"--to={to_iso8601(options.to_time)}")
    else:
        args.append("--to=now")

    if options.limit:
        args.append(f"--limit={options.limit}")
    if options.batch:
        args.append(f"--batch={options.batch}")
    if options.forward:
        args.append("--forward")

    return args


def build_query_command(config: LokiConfig, query: str, options: LokiQueryOptions,
                        now: Optional[datetime] = None) -> List[str]:
    """
    Full logcli argument vector for a query, without the executable.

    Order matters to logcli's parser: auth flags, global flags, the "query"
    sub-command, query flags, then the LogQL string as a single final argument.
    """
    return [
        *build_auth_args(config),
        *build_global_args(options),
        LOGCLI_QUERY_COMMAND,
        *build_query_specific_args(options, now=now),
        query,
    ]


def build_labels_command(config: LokiConfig, label: Optional[str] = None) -> List[str]:
    """logcli arguments listing label names, or the values of one label when given."""
    args = [*build_auth_args(config), LOGCLI_LABELS_COMMAND]
    if label is not None:
        args.append(label)
    return args


def resolve_limit(limit: Optional[int]) -> int:
    """Caller limit when it is between 1 and MAX_LIMIT, DEFAULT_LIMIT otherwise."""
    if limit is not None and 0 < limit <= MAX_LIMIT:
        return limit
    return DEFAULT_LIMIT


def build_query_range_params(query: str, options: LokiQueryOptions) -> Dict[str, str]:
    """Query parameters for the query_range endpoint."""
    params = {"query": query}

    if options.from_time:
        params["start"] = to_iso8601(options.from_time)
    if options.to_time:
        params["end"] = to_iso8601(options.to_time)

    params["limit"] = str(resolve_limit(options.limit))

    if options.forward is not None:
        params["direction"] = "forward" if options.forward else "backward"

    return params


def build_request_headers(config: LokiConfig, options: Optional[LokiQueryOptions] = None,
                          bearer_token: Optional[str] = None) -> Dict[str, str]:
    """
    HTTP headers for Loki API requests.

    Basic auth wins over a bearer token. A literal bearer token in the config
    wins over the bearer_token argument, which carries a token read from
    bearer_token_file.
    """
    headers = {}

    token = config.bearer_token or bearer_token
    if config.username and config.password:
        credentials = base64.b64encode(f"{config.username}:{config.password}".encode("utf-8")).decode("ascii")
        headers["Authorization"] = f"Basic {credentials}"
    elif token:
        headers["Authorization"] = f"Bearer {token}"

    if config.tenant_id:
        headers["X-Scope-OrgID"] = str(config.tenant_id)
    if config.org_id:
        headers["X-Org-ID"] = str(config.org_id)

    if options is not None and options.output in ("raw", "jsonl"):
        headers["Accept"] = "application/json"

    return headers


def build_ssl_verify(config: LokiConfig) -> Union[bool, ssl.SSLContext]:
    """
    TLS verification setting for a single request.

    False when tls_skip_verify is set, an SSL context carrying the configured
    CA and client certificate otherwise, or True when no TLS material is set.
    """
    if config.key_file and not config.cert_file:
        logger.warning("key_file %s is ignored without cert_file", config.key_file)

    if config.tls_skip_verify:
        return False

    if not (config.ca_file or config.cert_file):
        return True

    context = ssl.create_default_context(cafile=config.ca_file)
    if config.cert_file:
        context.load_cert_chain(certfile=config.cert_file, keyfile=config.key_file)
    return context


def redact_headers(headers: Dict[str, str]) -> Dict[str, str]:
    """Copy of headers safe for logging."""
    return {k: ("[REDACTED]" if k == "Authorization" else v) for k, v in headers.items()}


def query_range_url(addr: str) -> str:
    return f"{addr.rstrip('/')}{API_PREFIX}/query_range"


def labels_url(addr: str) -> str:
    return f"{addr.rstrip('/')}{API_PREFIX}/labels"


def label_values_url(addr: str, label: str) -> str:
    """Label values endpoint with the label name path-encoded."""
    return f"{addr.rstrip('/')}{API_PREFIX}/label/{quote(label, safe='')}/values"
