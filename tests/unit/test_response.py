"""
Unit tests for response headers, sinks and HTTP dates.
"""

import io
from datetime import datetime, timezone

import pytest

from filestreamer.http.response import (
    BufferedResponseSink,
    ResponseHeaders,
    WriterResponseSink,
    format_http_date,
    serialize_head,
)
from filestreamer.http.status_codes import HTTPStatus


class TestResponseHeaders:
    """Tests for ResponseHeaders."""

    def test_keys_are_lowercase(self):
        """Test names are normalised on set and get."""
        headers = ResponseHeaders({"Content-Type": "text/plain"})

        assert list(headers) == ["content-type"]
        assert headers["CONTENT-TYPE"] == "text/plain"

    def test_overwrite_keeps_position(self):
        """Test a later set replaces the value in place."""
        headers = ResponseHeaders()
        headers["a"] = "1"
        headers["b"] = "2"
        headers["A"] = "3"

        assert headers.lines() == ["a: 3", "b: 2"]

    def test_values_are_strings(self):
        """Test non-string values are converted."""
        headers = ResponseHeaders()
        headers["content-length"] = 42
        assert headers["content-length"] == "42"

    def test_remove_missing_is_noop(self):
        """Test remove() tolerates absent headers."""
        headers = ResponseHeaders({"x": "1"})
        headers.remove("y")
        headers.remove("X")
        assert len(headers) == 0

    def test_copy_is_independent(self):
        """Test copies do not share state."""
        headers = ResponseHeaders({"x": "1"})
        clone = headers.copy()
        clone["x"] = "2"
        assert headers["x"] == "1"


class TestSerializeHead:
    """Tests for serialize_head()."""

    def test_status_line_and_headers(self):
        """Test the wire format of the head."""
        headers = ResponseHeaders({"content-range": "bytes 0-99/1000"})
        head = serialize_head(HTTPStatus.PARTIAL_CONTENT, headers)

        assert head == (
            b"HTTP/1.1 206 Partial Content\r\n"
            b"content-range: bytes 0-99/1000\r\n"
            b"\r\n"
        )


class TestBufferedResponseSink:
    """Tests for BufferedResponseSink."""

    def test_records_head_and_chunks(self):
        """Test status, headers, body and chunk sizes are kept."""
        sink = BufferedResponseSink()
        sink.send_head(HTTPStatus.OK, ResponseHeaders({"content-length": 5}))
        sink.write(b"hel")
        sink.write(b"lo")

        assert sink.status == HTTPStatus.OK
        assert sink.headers["content-length"] == "5"
        assert bytes(sink.body) == b"hello"
        assert sink.chunk_sizes == [3, 2]

    def test_head_only_once(self):
        """Test a second send_head() is an error."""
        sink = BufferedResponseSink()
        sink.send_head(HTTPStatus.OK, ResponseHeaders())

        with pytest.raises(RuntimeError):
            sink.send_head(HTTPStatus.OK, ResponseHeaders())

    def test_write_before_head(self):
        """Test body bytes cannot precede the head."""
        with pytest.raises(RuntimeError):
            BufferedResponseSink().write(b"x")


class TestWriterResponseSink:
    """Tests for WriterResponseSink."""

    def test_include_head(self):
        """Test the raw head precedes the body."""
        out = io.BytesIO()
        sink = WriterResponseSink(out, include_head=True)
        sink.send_head(HTTPStatus.OK, ResponseHeaders({"content-length": 2}))
        sink.write(b"ok")
        sink.flush()

        assert out.getvalue() == b"HTTP/1.1 200 OK\r\ncontent-length: 2\r\n\r\nok"
        assert sink.bytes_written == 2

    def test_head_to_separate_stream(self):
        """Test the head goes to head_stream and the body stays clean."""
        out = io.BytesIO()
        err = io.StringIO()
        sink = WriterResponseSink(out, head_stream=err)
        sink.send_head(HTTPStatus.NOT_MODIFIED, ResponseHeaders({"x": "1"}))

        assert out.getvalue() == b""
        assert err.getvalue().splitlines() == ["304 Not Modified", "x: 1"]


class TestHTTPStatus:
    """Tests for HTTPStatus helpers."""

    def test_phrase(self):
        assert HTTPStatus.RANGE_NOT_SATISFIABLE.phrase == "Range Not Satisfiable"

    def test_has_body(self):
        """Test only 200 and 206 carry file content."""
        assert HTTPStatus.OK.has_body
        assert HTTPStatus.PARTIAL_CONTENT.has_body
        assert not HTTPStatus.NOT_MODIFIED.has_body

    def test_is_error(self):
        assert HTTPStatus.NOT_ACCEPTABLE.is_error
        assert not HTTPStatus.TEMPORARY_REDIRECT.is_error


class TestFormatHttpDate:
    """Tests for format_http_date()."""

    def test_timestamp(self):
        """Test unix timestamps format as RFC 1123 GMT."""
        assert format_http_date(1718445600) == "Sat, 15 Jun 2024 10:00:00 GMT"

    def test_fraction_dropped(self):
        """Test sub-second precision is discarded."""
        assert format_http_date(1718445600.9) == "Sat, 15 Jun 2024 10:00:00 GMT"

    def test_datetime(self):
        """Test aware datetimes are converted to GMT."""
        dt = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        assert format_http_date(dt) == "Thu, 01 Jan 2026 12:00:00 GMT"
