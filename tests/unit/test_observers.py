"""
Unit tests for the logging observer.
"""

import json
import logging

from filestreamer.http.request import RequestContext
from filestreamer.http.response import BufferedResponseSink
from filestreamer.observers import LoggingObserver, StreamLog
from filestreamer import RangeFileStreamer, StreamerConfig


def entry(**overrides) -> StreamLog:
    values = dict(
        method="GET",
        path="/video.mp4",
        status_code=206,
        bytes_sent=100,
        range="bytes 999900-999999/1000000",
        content_encoding="",
        complete=True,
        duration_ms=0.4242,
        timestamp="15/Jun/2024:10:00:00 +0000",
    )
    values.update(overrides)
    return StreamLog(**values)


class TestStreamLog:
    """Tests for StreamLog formatting."""

    def test_text(self):
        assert entry().to_text() == "GET /video.mp4 206 100 bytes 999900-999999/1000000 0.42ms"

    def test_text_incomplete(self):
        """Test aborted streams are marked."""
        assert entry(range="", complete=False).to_text().endswith("- 0.42ms (incomplete)")

    def test_dict_rounds_duration(self):
        assert entry().to_dict()["duration_ms"] == 0.42


class TestLoggingObserver:
    """Tests for LoggingObserver with a real streamer."""

    def _stream(self, video, observer, no_wait_lock, transcoder):
        streamer = RangeFileStreamer(StreamerConfig(), lock=no_wait_lock, transcoder=transcoder, observer=observer)
        streamer.stream(video, RequestContext({"Range": "bytes=0-9"}, url="/video.mp4"), BufferedResponseSink())

    def test_text_access_line(self, caplog, video, no_wait_lock, transcoder):
        """Test one access line per response on filestreamer.access."""
        with caplog.at_level(logging.INFO, logger="filestreamer.access"):
            self._stream(video, LoggingObserver(), no_wait_lock, transcoder)

        records = [r for r in caplog.records if r.name == "filestreamer.access"]
        assert len(records) == 1
        assert records[0].getMessage().startswith("GET /video.mp4 206 10 bytes 0-9/1000000 ")

    def test_json_access_line(self, caplog, video, no_wait_lock, transcoder):
        """Test the json format is machine-readable."""
        with caplog.at_level(logging.INFO, logger="filestreamer.access"):
            self._stream(video, LoggingObserver(log_format="json"), no_wait_lock, transcoder)

        record = [r for r in caplog.records if r.name == "filestreamer.access"][0]
        data = json.loads(record.getMessage())
        assert data["status_code"] == 206
        assert data["bytes_sent"] == 10
        assert data["complete"] is True

    def test_read_error_warns(self, caplog, tmp_path):
        with caplog.at_level(logging.WARNING, logger="filestreamer.access"):
            LoggingObserver().on_read_error(tmp_path / "a.mp4", 8192, BrokenPipeError("gone"))

        assert "stopped at byte 8192" in caplog.text
        assert "BrokenPipeError" in caplog.text
