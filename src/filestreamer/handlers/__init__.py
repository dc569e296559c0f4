"""
=============================================================================
HANDLERS MODULE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │ Handler           │ Use Case                                        │
    ├─────────────────────────────────────────────────────────────────────┤
    │ RangeFileStreamer │ Stream one known file to a ResponseSink         │
    │                   │ streamer.stream(path, ctx, sink)               │
    ├─────────────────────────────────────────────────────────────────────┤
    │ StaticFileHandler │ Map a URL path under a document root first     │
    │                   │ handler.handle("/css/site.css", ctx, sink)     │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .stream import RangeFileStreamer, StreamOutcome, accepts_content_type
from .static import StaticFileHandler

__all__ = [
    "RangeFileStreamer",
    "StreamOutcome",
    "StaticFileHandler",
    "accepts_content_type",
]
