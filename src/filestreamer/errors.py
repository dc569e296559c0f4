"""
=============================================================================
STREAM ERRORS
=============================================================================

Typed failures raised by the streamer BEFORE any byte reaches the client.

=============================================================================
ERROR KINDS
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     ERROR KIND → HTTP STATUS                        │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   NOT_FOUND          404   File missing or not a regular file       │
    │   NOT_READABLE       403   File exists but cannot be opened         │
    │   FORBIDDEN          403   Path escapes the served root             │
    │   NO_EXTENSION       415   No extension, so no content-type         │
    │   UNSUPPORTED_RANGE  416   Range header cannot be satisfied         │
    │   LOCK_TIMEOUT       503   Shared lock not obtained in time         │
    │   IO_FAILURE         500   stat/open failed for another reason      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

IO_FAILURE during the chunked output phase is NOT raised. Once headers are
on the wire the streamer reports it to its observer and stops.

=============================================================================
"""

from enum import Enum
from pathlib import Path
from typing import Optional, Union


class ErrKind(str, Enum):
    """Kinds of stream failure. The value is a short machine-friendly code."""

    NOT_FOUND = "not_found"
    NOT_READABLE = "not_readable"
    FORBIDDEN = "forbidden"
    NO_EXTENSION = "no_extension"
    UNSUPPORTED_RANGE = "unsupported_range"
    LOCK_TIMEOUT = "lock_timeout"
    IO_FAILURE = "io_failure"

    @property
    def status_code(self) -> int:
        """HTTP status a caller should answer with for this kind."""
        return _STATUS_FOR_KIND[self]


_STATUS_FOR_KIND = {
    ErrKind.NOT_FOUND: 404,
    ErrKind.NOT_READABLE: 403,
    ErrKind.FORBIDDEN: 403,
    ErrKind.NO_EXTENSION: 415,
    ErrKind.UNSUPPORTED_RANGE: 416,
    ErrKind.LOCK_TIMEOUT: 503,
    ErrKind.IO_FAILURE: 500,
}


class StreamError(Exception):
    """
    Raised when a file cannot be streamed.

    Carries the error kind and the offending path so callers can pick a
    response without parsing the message:

        try:
            streamer.stream(path, ctx, sink)
        except StreamError as e:
            send_error(e.status_code, str(e))
    """

    def __init__(
        self,
        message: str,
        kind: ErrKind = ErrKind.IO_FAILURE,
        path: Optional[Union[str, Path]] = None,
    ):
        if path is not None:
            message = f"{message} @{path}"
        super().__init__(message)
        self.kind = kind
        self.path = Path(path) if path is not None else None

    @property
    def status_code(self) -> int:
        return self.kind.status_code
