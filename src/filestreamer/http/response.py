"""
=============================================================================
RESPONSE HEADERS AND SINKS
=============================================================================

The streamer never talks to a socket. It builds ResponseHeaders and hands
status, headers and body chunks to a ResponseSink.

=============================================================================
RESPONSE FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         STREAM → SINK                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   RangeFileStreamer                     ResponseSink                │
    │   ─────────────────                     ────────────                │
    │                                                                      │
    │   headers = ResponseHeaders()                                       │
    │   headers["content-length"] = 100                                   │
    │                                                                      │
    │   sink.send_head(206, headers)  ─────►  status line + headers       │
    │   sink.write(chunk)             ─────►  body bytes                  │
    │   sink.write(chunk)             ─────►  body bytes                  │
    │   sink.flush()                  ─────►  push to client              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    BufferedResponseSink  collects everything in memory (tests, small apps)
    WriterResponseSink    writes to a binary stream (CLI, pipes, sockets)

=============================================================================
HEADER NAMES
=============================================================================

Header names are case-insensitive (RFC 7230). ResponseHeaders stores them
lowercase, in insertion order, so the emitted order is deterministic:

    content-type: video/mp4
    cache-control: max-age=604800, public
    x-content-type-options: nosniff
    accept-ranges: bytes
    content-length: 100

=============================================================================
"""

from abc import ABC, abstractmethod
from collections.abc import MutableMapping
from datetime import datetime, timezone
from typing import BinaryIO, Dict, Iterator, List, Optional, TextIO, Union

from .status_codes import HTTPStatus


class ResponseHeaders(MutableMapping):
    """
    Ordered, case-insensitive mapping of response header name → value.

    Values are stored as strings; setting an existing header keeps its
    original position.

        headers = ResponseHeaders({"Content-Type": "text/plain"})
        headers["content-length"] = 42
        headers["CONTENT-TYPE"]         # 'text/plain'
        headers.lines()                 # ['content-type: text/plain', 'content-length: 42']
    """

    def __init__(self, initial: Optional[Dict[str, object]] = None):
        self._headers: Dict[str, str] = {}
        if initial:
            self.update(initial)

    def __getitem__(self, name: str) -> str:
        return self._headers[name.lower()]

    def __setitem__(self, name: str, value: object) -> None:
        self._headers[name.lower()] = str(value)

    def __delitem__(self, name: str) -> None:
        del self._headers[name.lower()]

    def __iter__(self) -> Iterator[str]:
        return iter(self._headers)

    def __len__(self) -> int:
        return len(self._headers)

    def __repr__(self) -> str:
        return f"ResponseHeaders({self._headers!r})"

    def remove(self, name: str) -> None:
        """Drop a header if present."""
        self._headers.pop(name.lower(), None)

    def copy(self) -> "ResponseHeaders":
        return ResponseHeaders(self._headers)

    def lines(self) -> List[str]:
        """Headers formatted as 'name: value' lines, in order."""
        return [f"{name}: {value}" for name, value in self._headers.items()]


class ResponseSink(ABC):
    """
    Destination for one HTTP response.

    send_head() is called exactly once, before any write().
    """

    @abstractmethod
    def send_head(self, status: HTTPStatus, headers: ResponseHeaders) -> None:
        """Emit the status code and headers."""

    @abstractmethod
    def write(self, chunk: bytes) -> None:
        """Emit a chunk of the body."""

    def flush(self) -> None:
        """Push buffered output to the client. No-op by default."""


def serialize_head(status: HTTPStatus, headers: ResponseHeaders, version: str = "HTTP/1.1") -> bytes:
    """
    Serialize the status line and headers to bytes.

        HTTP/1.1 206 Partial Content\\r\\n
        content-range: bytes 0-99/1000\\r\\n
        \\r\\n
    """
    lines = [f"{version} {int(status)} {status.phrase}"]
    lines.extend(headers.lines())
    lines.append("")
    return "\r\n".join(lines).encode("latin-1") + b"\r\n"


class BufferedResponseSink(ResponseSink):
    """
    Sink that keeps the whole response in memory.

    Also records the size of every write so the chunking of the output
    loop can be inspected.
    """

    def __init__(self):
        self.status: Optional[HTTPStatus] = None
        self.headers: Optional[ResponseHeaders] = None
        self.body = bytearray()
        self.chunk_sizes: List[int] = []

    def send_head(self, status: HTTPStatus, headers: ResponseHeaders) -> None:
        if self.status is not None:
            raise RuntimeError("Response head already sent")
        self.status = status
        self.headers = headers.copy()

    def write(self, chunk: bytes) -> None:
        if self.status is None:
            raise RuntimeError("write() called before send_head()")
        self.body.extend(chunk)
        self.chunk_sizes.append(len(chunk))


class WriterResponseSink(ResponseSink):
    """
    Sink that writes the body to a binary stream.

    Args:
        stream: Binary file object receiving the body.
        include_head: Write the raw HTTP status line and headers to
                      `stream` before the body (like `curl -i`).
        head_stream: Text stream that receives a readable copy of the head
                     when include_head is False (e.g. sys.stderr).
    """

    def __init__(
        self,
        stream: BinaryIO,
        include_head: bool = False,
        head_stream: Optional[TextIO] = None,
    ):
        self.stream = stream
        self.include_head = include_head
        self.head_stream = head_stream
        self.status: Optional[HTTPStatus] = None
        self.bytes_written = 0

    def send_head(self, status: HTTPStatus, headers: ResponseHeaders) -> None:
        self.status = status
        if self.include_head:
            self.stream.write(serialize_head(status, headers))
        elif self.head_stream is not None:
            print(f"{int(status)} {status.phrase}", file=self.head_stream)
            for line in headers.lines():
                print(line, file=self.head_stream)

    def write(self, chunk: bytes) -> None:
        self.stream.write(chunk)
        self.bytes_written += len(chunk)

    def flush(self) -> None:
        self.stream.flush()


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def format_http_date(value: Union[datetime, float, int]) -> str:
    """
    Format a datetime or unix timestamp as an HTTP-date (RFC 7231).

    Format: Day, DD Mon YYYY HH:MM:SS GMT
    Example: Wed, 01 Jan 2026 12:00:00 GMT

    HTTP dates are ALWAYS in GMT (UTC), never local time. Fractional
    seconds are dropped.
    """
    if isinstance(value, datetime):
        dt = value.astimezone(timezone.utc)
    else:
        dt = datetime.fromtimestamp(int(value), tz=timezone.utc)

    # Weekday names (0=Monday in Python's datetime)
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]

    # Month names (1-indexed, so we subtract 1)
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )
