"""Formats Loki HTTP API responses the way logcli prints them."""

import json
from datetime import datetime, timedelta, timezone
from typing import Dict, Any, List, Optional

from .models import LokiQueryOptions

NO_RESULTS = "No results found."

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def format_labels(labels: Dict[str, Any]) -> str:
    """Render a label set as {k1="v1", k2="v2"}, keeping payload order."""
    pairs = ", ".join(f'{key}="{value}"' for key, value in labels.items())
    return f"{{{pairs}}}"


def _iso_from_millis(millis: float) -> str:
    return (_EPOCH + timedelta(milliseconds=millis)).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _format_streams(result: List[Dict[str, Any]], options: LokiQueryOptions) -> str:
    lines = []

    for stream in result:
        labels = stream.get("stream", {})

        if not options.quiet:
            lines.append(format_labels(labels))

        for timestamp, line in stream.get("values", []):
            if options.output == "jsonl":
                entry = {"timestamp": timestamp, "labels": labels, "line": line}
                lines.append(json.dumps(entry, separators=(",", ":"), ensure_ascii=False))
            elif options.output == "raw":
                lines.append(line)
            else:
                # nanoseconds -> milliseconds
                lines.append(f"{_iso_from_millis(int(timestamp) // 1_000_000)} {line}")

        if not options.quiet:
            lines.append("")

    return "".join(f"{line}\n" for line in lines)


def _format_vector(result: List[Dict[str, Any]]) -> str:
    output = ""
    for item in result:
        _timestamp, value = item["value"]
        output += f"{format_labels(item.get('metric', {}))} {value}\n"
    return output


def _format_matrix(result: List[Dict[str, Any]]) -> str:
    output = ""
    for item in result:
        output += f"{format_labels(item.get('metric', {}))}\n"
        for timestamp, value in item.get("values", []):
            # seconds -> milliseconds
            output += f"  {_iso_from_millis(float(timestamp) * 1000)} {value}\n"
        output += "\n"
    return output


def format_query_response(response_data: Optional[Dict[str, Any]],
                          options: Optional[LokiQueryOptions] = None) -> str:
    """
    Format a query_range response envelope as text.

    Args:
        response_data: Parsed JSON body of the query_range endpoint
        options: Query options; output and quiet control streams formatting

    Returns:
        str: Formatted text, NO_RESULTS for an empty result, or pretty-printed
        JSON when the result type is not recognised
    """
    options = options or LokiQueryOptions()

    data = response_data.get("data") if isinstance(response_data, dict) else None
    if not isinstance(data, dict) or not data.get("result"):
        return NO_RESULTS

    result = data["result"]

    result_type = data.get("resultType")
    if result_type == "streams":
        return _format_streams(result, options)
    if result_type == "vector":
        return _format_vector(result)
    if result_type == "matrix":
        return _format_matrix(result)

    return json.dumps(response_data, indent=2)
