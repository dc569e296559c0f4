"""
=============================================================================
HTTP PACKAGE
=============================================================================

Protocol-level building blocks for the streamer:

    request.py       RequestContext, StreamRequest, Range parsing, ByteWindow
    response.py      ResponseHeaders, ResponseSink implementations, HTTP dates
    status_codes.py  HTTPStatus enum with reason phrases
    mime_types.py    MimeRegistry (extension → content-type, cache-control)

=============================================================================
"""

from .request import (
    RequestContext,
    StreamRequest,
    ByteWindow,
    parse_range_header,
)
from .response import (
    ResponseHeaders,
    ResponseSink,
    BufferedResponseSink,
    WriterResponseSink,
    format_http_date,
)
from .status_codes import HTTPStatus
from .mime_types import MimeRegistry, has_extension, is_text_like

__all__ = [
    # Request side
    "RequestContext",
    "StreamRequest",
    "ByteWindow",
    "parse_range_header",

    # Response side
    "ResponseHeaders",
    "ResponseSink",
    "BufferedResponseSink",
    "WriterResponseSink",
    "format_http_date",

    # Status codes
    "HTTPStatus",

    # MIME types
    "MimeRegistry",
    "has_extension",
    "is_text_like",
]
