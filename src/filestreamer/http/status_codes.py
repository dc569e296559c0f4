"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The subset of HTTP status codes a static-file stream can answer with.

=============================================================================
STATUS CODES USED BY THE STREAMER
=============================================================================

    ┌──────┬──────────────────────────┬─────────────────────────────────────┐
    │ Code │ Phrase                   │ When                                │
    ├──────┼──────────────────────────┼─────────────────────────────────────┤
    │ 200  │ OK                       │ Full content, no Range requested    │
    │ 206  │ Partial Content          │ Valid Range request                 │
    │ 304  │ Not Modified             │ If-Modified-Since matches           │
    │ 307  │ Temporary Redirect       │ Redirect to a transcoded sibling    │
    │ 403  │ Forbidden                │ Unreadable file / path traversal    │
    │ 404  │ Not Found                │ File does not exist                 │
    │ 406  │ Not Acceptable           │ Accept header rejects content-type  │
    │ 415  │ Unsupported Media Type   │ File has no extension               │
    │ 416  │ Range Not Satisfiable    │ Range header out of bounds          │
    │ 500  │ Internal Server Error    │ Unexpected I/O failure              │
    │ 503  │ Service Unavailable      │ File lock could not be obtained     │
    └──────┴──────────────────────────┴─────────────────────────────────────┘

=============================================================================
INTERVIEW QUESTIONS ABOUT STATUS CODES
=============================================================================

Q: "Why 307 and not 302 for the image redirect?"
A: "307 guarantees the method is preserved. A HEAD stays a HEAD,
   where some clients historically rewrote 302 targets to GET."

Q: "What's 304 Not Modified?"
A: "Used with conditional requests (If-None-Match, If-Modified-Since).
   Tells the client 'your cached version is still valid, use it.'
   Saves bandwidth by not re-sending unchanged resources."

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    This enum extends IntEnum, so status codes can be used as integers:

        >>> HTTPStatus.PARTIAL_CONTENT == 206
        True
        >>> HTTPStatus.PARTIAL_CONTENT.phrase
        'Partial Content'
    """

    # =========================================================================
    # 2xx SUCCESS
    # =========================================================================
    OK = 200                                # Full body
    PARTIAL_CONTENT = 206                   # Range request fulfilled (video streaming)

    # =========================================================================
    # 3xx REDIRECTION
    # =========================================================================
    NOT_MODIFIED = 304                      # Cached version is still valid
    TEMPORARY_REDIRECT = 307                # Like 302 but preserves HTTP method

    # =========================================================================
    # 4xx CLIENT ERRORS
    # =========================================================================
    FORBIDDEN = 403
    NOT_FOUND = 404
    NOT_ACCEPTABLE = 406                    # Can't satisfy Accept header
    UNSUPPORTED_MEDIA_TYPE = 415
    RANGE_NOT_SATISFIABLE = 416             # Range header invalid

    # =========================================================================
    # 5xx SERVER ERRORS
    # =========================================================================
    INTERNAL_SERVER_ERROR = 500
    SERVICE_UNAVAILABLE = 503

    @property
    def phrase(self) -> str:
        """Reason phrase used in the status line ("HTTP/1.1 206 Partial Content")."""
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def has_body(self) -> bool:
        """True for statuses the streamer answers with file content."""
        return self in (HTTPStatus.OK, HTTPStatus.PARTIAL_CONTENT)

    @property
    def is_error(self) -> bool:
        return self >= 400


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.PARTIAL_CONTENT: "Partial Content",
    HTTPStatus.NOT_MODIFIED: "Not Modified",
    HTTPStatus.TEMPORARY_REDIRECT: "Temporary Redirect",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.NOT_ACCEPTABLE: "Not Acceptable",
    HTTPStatus.UNSUPPORTED_MEDIA_TYPE: "Unsupported Media Type",
    HTTPStatus.RANGE_NOT_SATISFIABLE: "Range Not Satisfiable",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
}
