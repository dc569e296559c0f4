"""
=============================================================================
FILESTREAMER - Range-Aware Static File Streaming
=============================================================================

Decides and emits the correct HTTP response for a static-file request:
partial content, conditional caching, MIME negotiation, precompressed
text variants and image format substitution.

=============================================================================
PROJECT OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      FILESTREAMER ARCHITECTURE                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. RANGE REQUESTS                                                 │
    │      - bytes=A-B and bytes=A-                                       │
    │      - 206 Partial Content / 416 Range Not Satisfiable              │
    │                                                                      │
    │   2. CONDITIONAL GET                                                │
    │      - Last-Modified / If-Modified-Since → 304                      │
    │                                                                      │
    │   3. CONTENT NEGOTIATION                                            │
    │      - Accept → 406                                                 │
    │      - Accept-Encoding → .br / .zz / .gz siblings                   │
    │      - Accept → 307 to .avif / .jpg siblings                        │
    │                                                                      │
    │   4. SAFE CONCURRENT ACCESS                                         │
    │      - flock() shared/exclusive with randomized retry              │
    │      - atomic publish of generated variants                         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    filestreamer/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m filestreamer)
    ├── config.py            # StreamerConfig dataclass
    ├── errors.py            # StreamError / ErrKind
    ├── observers.py         # StreamObserver, access logging
    ├── transcoding.py       # compressors and image converters
    ├── core/                # Filesystem plumbing
    │   ├── locking.py       # FileLock
    │   └── files.py         # FileMeta, sidecars, atomic writes
    ├── http/                # Protocol pieces
    │   ├── request.py       # RequestContext, Range parsing
    │   ├── response.py      # ResponseHeaders, sinks
    │   ├── status_codes.py  # HTTPStatus
    │   └── mime_types.py    # MimeRegistry
    ├── negotiation/         # File substitution
    │   ├── encoding.py      # compressed variants
    │   └── images.py        # avif / jpg redirects
    └── handlers/
        ├── stream.py        # RangeFileStreamer
        └── static.py        # StaticFileHandler

=============================================================================
QUICK START
=============================================================================

    from filestreamer import RangeFileStreamer, RequestContext, BufferedResponseSink

    streamer = RangeFileStreamer()
    sink = BufferedResponseSink()

    streamer.stream(
        "/var/www/video.mp4",
        RequestContext({"Range": "bytes=0-1023"}),
        sink,
    )

    sink.status          # HTTPStatus.PARTIAL_CONTENT
    sink.headers["content-range"]   # 'bytes 0-1023/1000000'

=============================================================================
"""

__version__ = "1.0.0"

from .config import StreamerConfig
from .errors import ErrKind, StreamError
from .handlers import RangeFileStreamer, StaticFileHandler, StreamOutcome
from .http import (
    BufferedResponseSink,
    HTTPStatus,
    RequestContext,
    ResponseHeaders,
    ResponseSink,
    WriterResponseSink,
)
from .observers import LoggingObserver, StreamObserver, configure_logging

__all__ = [
    "RangeFileStreamer",
    "StaticFileHandler",
    "StreamOutcome",
    "StreamerConfig",
    "StreamError",
    "ErrKind",
    "RequestContext",
    "ResponseHeaders",
    "ResponseSink",
    "BufferedResponseSink",
    "WriterResponseSink",
    "HTTPStatus",
    "StreamObserver",
    "LoggingObserver",
    "configure_logging",
    "__version__",
]
