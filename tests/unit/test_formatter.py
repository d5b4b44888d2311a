"""Tests for formatting Loki query responses."""

import json

import pytest

from mcp_server.tools.loki.formatter import NO_RESULTS, format_labels, format_query_response
from mcp_server.tools.loki.models import LokiQueryOptions

TS1 = "1700000000123456789"
TS2 = "1700000001000000000"


def envelope(result_type, result):
    return {"status": "success", "data": {"resultType": result_type, "result": result}}


STREAMS = envelope("streams", [
    {"stream": {"app": "x"}, "values": [[TS1, "first line"], [TS2, "second line"]]},
])


class TestLabels:
    def test_payload_order_kept(self):
        assert format_labels({"b": "2", "a": "1"}) == '{b="2", a="1"}'

    def test_empty(self):
        assert format_labels({}) == "{}"


class TestEmptyResults:
    @pytest.mark.parametrize("result_type", ["streams", "vector", "matrix", "something"])
    def test_empty_result_is_sentinel(self, result_type):
        assert format_query_response(envelope(result_type, [])) == NO_RESULTS

    @pytest.mark.parametrize("body", [None, {}, {"data": None}, {"data": {"resultType": "streams"}}, []])
    def test_missing_data_is_sentinel(self, body):
        assert format_query_response(body) == NO_RESULTS


class TestStreams:
    def test_default_output(self):
        text = format_query_response(STREAMS, LokiQueryOptions())
        assert text == (
            '{app="x"}\n'
            "2023-11-14T22:13:20.123Z first line\n"
            "2023-11-14T22:13:21.000Z second line\n"
            "\n"
        )

    def test_jsonl_output(self):
        text = format_query_response(STREAMS, LokiQueryOptions(output="jsonl", quiet=True))
        lines = text.splitlines()

        assert len(lines) == 2
        entries = [json.loads(line) for line in lines]
        assert entries[0] == {"timestamp": TS1, "labels": {"app": "x"}, "line": "first line"}
        assert entries[1]["line"] == "second line"

    def test_raw_output(self):
        text = format_query_response(STREAMS, LokiQueryOptions(output="raw", quiet=True))
        assert text.splitlines() == ["first line", "second line"]

    def test_quiet_omits_header_and_separator(self):
        loud = format_query_response(STREAMS, LokiQueryOptions(output="raw"))
        quiet = format_query_response(STREAMS, LokiQueryOptions(output="raw", quiet=True))

        assert loud == '{app="x"}\nfirst line\nsecond line\n\n'
        assert quiet == "first line\nsecond line\n"

    def test_multiple_streams(self):
        body = envelope("streams", [
            {"stream": {"app": "a"}, "values": [[TS1, "a1"]]},
            {"stream": {"app": "b"}, "values": [[TS2, "b1"]]},
        ])
        text = format_query_response(body, LokiQueryOptions(output="raw"))
        assert text == '{app="a"}\na1\n\n{app="b"}\nb1\n\n'


class TestMetrics:
    def test_vector(self):
        body = envelope("vector", [
            {"metric": {"app": "x", "level": "error"}, "value": [1700000000.5, "42"]},
            {"metric": {}, "value": [1700000000.5, "7"]},
        ])
        assert format_query_response(body) == '{app="x", level="error"} 42\n{} 7\n'

    def test_matrix(self):
        body = envelope("matrix", [
            {"metric": {"app": "x"}, "values": [[1700000000, "1"], [1700000060, "3"]]},
        ])
        assert format_query_response(body) == (
            '{app="x"}\n'
            "  2023-11-14T22:13:20.000Z 1\n"
            "  2023-11-14T22:14:20.000Z 3\n"
            "\n"
        )

    def test_metrics_ignore_quiet(self):
        body = envelope("vector", [{"metric": {"app": "x"}, "value": [1700000000, "1"]}])
        assert format_query_response(body, LokiQueryOptions(quiet=True)) == '{app="x"} 1\n'


class TestFallback:
    def test_unknown_result_type_is_pretty_json(self):
        body = envelope("scalar", [1700000000, "1"])
        assert format_query_response(body) == json.dumps(body, indent=2)
