"""
=============================================================================
STREAM OBSERVERS
=============================================================================

Hooks the streamer calls for things it deliberately does NOT raise:

    on_read_error   a read or client write failed mid-stream; the partial
                    response stays as it is
    on_fallback     a compression or image conversion failed; the
                    original file is served instead
    on_complete     a response was emitted (any status)

=============================================================================
WHY NOT JUST RAISE?
=============================================================================

Once the status line and headers are on the wire there is no way to
turn the response into an error. A client that closes the connection
in the middle of a video is normal traffic. The observer records the
event once, instead of the caller logging the same failure for every
remaining chunk.

=============================================================================
LOG FORMATS
=============================================================================

    text:  GET /video.mp4 206 100 bytes 999900-999999/1000000 0.42ms
    json:  {"method": "GET", "path": "/video.mp4", "status_code": 206, ...}

=============================================================================
"""

import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


# ═══════════════════════════════════════════════════════════════════════════
# LOGGER CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════
# Namespaced logger for one-line-per-response access logs:
#   logging.getLogger("filestreamer.access").setLevel(logging.WARNING)
# ═══════════════════════════════════════════════════════════════════════════
logger = logging.getLogger("filestreamer.access")


class StreamObserver:
    """Base observer. Every hook is a no-op."""

    def on_read_error(self, path: Path, offset: int, error: BaseException) -> None:
        pass

    def on_fallback(self, path: Path, reason: str) -> None:
        pass

    def on_complete(self, request, outcome) -> None:
        pass


@dataclass
class StreamLog:
    """Structured log entry for one streamed response."""

    method: str
    path: str
    status_code: int
    bytes_sent: int
    range: str
    content_encoding: str
    complete: bool
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        return {
            "method": self.method,
            "path": self.path,
            "status_code": self.status_code,
            "bytes_sent": self.bytes_sent,
            "range": self.range,
            "content_encoding": self.content_encoding,
            "complete": self.complete,
            "duration_ms": round(self.duration_ms, 2),
            "timestamp": self.timestamp,
        }

    def to_text(self) -> str:
        text = (
            f"{self.method} {self.path} {self.status_code} {self.bytes_sent} "
            f"{self.range or '-'} {self.duration_ms:.2f}ms"
        )
        if not self.complete:
            text += " (incomplete)"
        return text


class LoggingObserver(StreamObserver):
    """
    Observer that writes to the standard logging module.

    Args:
        log_format: "text" or "json" for the per-response access line.
        log_level: Level of the access line (fallbacks log at INFO,
                   read errors at WARNING regardless).
    """

    def __init__(self, log_format: str = "text", log_level: int = logging.INFO):
        self.log_format = log_format
        self.log_level = log_level

    def on_read_error(self, path: Path, offset: int, error: BaseException) -> None:
        logger.warning(f"Stream of {path} stopped at byte {offset}: {type(error).__name__}: {error}")

    def on_fallback(self, path: Path, reason: str) -> None:
        logger.info(f"Serving original {path}: {reason}")

    def on_complete(self, request, outcome) -> None:
        entry = StreamLog(
            method=request.method,
            path=request.url or str(request.path),
            status_code=int(outcome.status),
            bytes_sent=outcome.bytes_sent,
            range=outcome.headers.get("content-range", ""),
            content_encoding=outcome.headers.get("content-encoding", ""),
            complete=outcome.complete,
            duration_ms=outcome.duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(entry.to_dict()))
        else:
            logger.log(self.log_level, entry.to_text())


def configure_logging(level: str = "INFO", fmt: Optional[str] = None) -> None:
    """Configure the root logger and the filestreamer namespace."""
    numeric = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=numeric,
        format=fmt or "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("filestreamer").setLevel(numeric)
