"""
=============================================================================
REQUEST CONTEXT AND RANGE PARSING
=============================================================================

Read-only view of the inbound request, built once at the boundary and
never mutated.

=============================================================================
HEADERS CONSUMED
=============================================================================

    ┌───────────────────┬─────────────────────────────────────────────────┐
    │ Header            │ Meaning                                         │
    ├───────────────────┼─────────────────────────────────────────────────┤
    │ Range             │ bytes=start-end  or  bytes=start-               │
    │ Accept            │ MIME negotiation (406, image substitution)      │
    │ Accept-Encoding   │ br / deflate / gzip variant selection           │
    │ If-Modified-Since │ exact string match against Last-Modified        │
    └───────────────────┴─────────────────────────────────────────────────┘

=============================================================================
RANGE REQUESTS
=============================================================================

    File: 1,000,000 bytes

    Range: bytes=0-499          → [0, 499]          500 bytes
    Range: bytes=999900-        → [999900, 999999]  last 100 bytes
    Range: bytes=500-100        → 416 (end before start)
    Range: bytes=2000000-       → 416 (start past the end)

    Byte positions are INCLUSIVE on both ends:

        bytes=0-0   would be a single byte, but a window must span at
                    least two bytes here (end > start) or it is rejected.

    So every one-byte window answers 416, including the open-ended one
    on the last byte:

        Range: bytes=7-7        → 416 (end == start)
        Range: bytes=9-         → 416 on a 10-byte file (end == start == 9)

    A satisfiable window therefore has start < end < size, which is
    stricter than the usual start <= end < size. Clients that ask for a
    single byte (some players open with bytes=0-0) get 416 and have to
    retry with a wider range.

Suffix ranges (bytes=-500) and multipart ranges (bytes=0-1,5-6) are not
supported. A Range header that matches neither supported form is ignored
and the full file is served.

=============================================================================
INTERVIEW QUESTIONS ABOUT RANGE REQUESTS
=============================================================================

Q: "How does a video player seek without downloading the whole file?"
A: "It sends Range: bytes=N- for the byte offset of the new position.
   The server answers 206 Partial Content with Content-Range, and the
   player keeps reading from there."

Q: "What should a server do with a Range it can't satisfy?"
A: "Answer 416 Range Not Satisfiable, ideally with
   Content-Range: bytes */<size> so the client learns the real length."

=============================================================================
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from ..errors import ErrKind, StreamError


RequestedRange = Tuple[int, Optional[int]]

_RANGE_RE = re.compile(r"^\s*bytes\s*=\s*(\d+)\s*-\s*(\d*)\s*$", re.IGNORECASE)


def parse_range_header(value: Optional[str]) -> Optional[RequestedRange]:
    """
    Parse a Range header into (start, end) with end=None for open ranges.

    Returns None when the header is absent or not in a supported form.

    Examples:
        >>> parse_range_header("bytes=0-499")
        (0, 499)
        >>> parse_range_header("bytes=999900-")
        (999900, None)
        >>> parse_range_header("bytes=-500") is None
        True
    """
    if not value:
        return None

    match = _RANGE_RE.match(value)
    if not match:
        return None

    start = int(match.group(1))
    end = int(match.group(2)) if match.group(2) else None
    return start, end


@dataclass(frozen=True)
class RequestContext:
    """
    Inbound request data the streamer is allowed to see.

    Header names are normalised to lowercase at construction, so lookups
    are case-insensitive.

    Attributes:
        headers: Request headers (read-only after construction).
        method:  "GET" or "HEAD". HEAD responses carry headers only.
        url:     Public URL path of the request without query string.
                 Used to build redirect locations for transcoded images.
    """

    headers: Mapping[str, str] = field(default_factory=dict)
    method: str = "GET"
    url: str = ""

    def __post_init__(self):
        normalised = {name.lower(): value for name, value in self.headers.items()}
        object.__setattr__(self, "headers", MappingProxyType(normalised))
        object.__setattr__(self, "method", self.method.upper())
        object.__setattr__(self, "url", self.url.split("?", 1)[0])

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)

    @property
    def range(self) -> Optional[str]:
        return self.get_header("range")

    @property
    def accept(self) -> str:
        return self.get_header("accept", "") or ""

    @property
    def accept_encoding(self) -> str:
        return self.get_header("accept-encoding", "") or ""

    @property
    def if_modified_since(self) -> Optional[str]:
        return self.get_header("if-modified-since")


@dataclass(frozen=True)
class StreamRequest:
    """
    Immutable description of one streaming request.

    Built once per call from the file path and the RequestContext.
    """

    path: Path
    requested_range: Optional[RequestedRange] = None
    accept: str = ""
    accept_encoding: str = ""
    if_modified_since: Optional[str] = None
    method: str = "GET"
    url: str = ""

    @classmethod
    def from_context(cls, path, ctx: RequestContext) -> "StreamRequest":
        return cls(
            path=Path(path),
            requested_range=parse_range_header(ctx.range),
            accept=ctx.accept,
            accept_encoding=ctx.accept_encoding,
            if_modified_since=ctx.if_modified_since,
            method=ctx.method,
            url=ctx.url,
        )

    @property
    def is_head(self) -> bool:
        return self.method == "HEAD"


@dataclass(frozen=True)
class ByteWindow:
    """
    Inclusive [start, end] slice of a file.

    Invariant: 0 <= start <= end < size. The only exception is the full
    window of an empty file, which is (0, -1) with length 0.
    """

    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    @classmethod
    def full(cls, size: int) -> "ByteWindow":
        return cls(0, size - 1)

    @classmethod
    def resolve(cls, requested: RequestedRange, size: int) -> "ByteWindow":
        """
        Turn a parsed Range into a window over a file of `size` bytes.

        Raises:
            StreamError(UNSUPPORTED_RANGE): start past the end of the file,
                end at or past the end of the file, or end <= start.
        """
        start, end = requested
        if end is None:
            end = size - 1

        if start > size or end >= size or end <= start:
            raise StreamError(
                f"Range bytes={start}-{end} not satisfiable for size {size}",
                ErrKind.UNSUPPORTED_RANGE,
            )
        return cls(start, end)

    def content_range(self, size: int) -> str:
        return f"bytes {self.start}-{self.end}/{size}"
