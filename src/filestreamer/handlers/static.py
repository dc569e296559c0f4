"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Maps a URL path under a root directory to a file and hands it to the
RangeFileStreamer.

=============================================================================
SECURITY: PATH TRAVERSAL ATTACK
=============================================================================

Path traversal is an attack where a malicious user tries to access
files outside the intended directory:

    ATTACK ATTEMPT:
    ┌─────────────────────────────────────────────────────────────────────┐
    │  GET /../../../etc/passwd HTTP/1.1                                  │
    │                                                                      │
    │  If not protected, this could read:                                 │
    │  /var/www/../../../etc/passwd                                       │
    │  → /etc/passwd  (SECURITY BREACH!)                                 │
    │                                                                      │
    │  Our protection:                                                    │
    │  1. Resolve the full path (follow .. and symlinks)                 │
    │  2. Check if it's still inside root_dir                            │
    │  3. If not, raise StreamError(FORBIDDEN) → 403                     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    PYTHON PROTECTION:

        full_path = (root_dir / user_input).resolve()
        full_path.relative_to(root_dir)  # Raises if outside root!

=============================================================================
SERVER-SIDE SOURCES
=============================================================================

A document root that also holds PHP scripts must never hand out their
source. With prevent_php_access set, a request for *.php answers exactly
like a missing file (404), so it does not even confirm the file exists.

=============================================================================
"""

import logging
from pathlib import Path
from typing import Union

from ..errors import ErrKind, StreamError
from ..http.mime_types import has_extension
from ..http.request import RequestContext
from ..http.response import ResponseSink
from .stream import BLOCKED_SOURCE_EXTENSIONS, RangeFileStreamer, StreamOutcome


logger = logging.getLogger(__name__)


class StaticFileHandler:
    """
    Serves files below `root_dir`.

    =========================================================================
    FLOW
    =========================================================================

        Request: GET /css/site.css

        1. Strip leading slashes from the URL path
        2. Resolve to a filesystem path under root_dir
        3. Security check: is path within root_dir?
        4. If directory: serve index.html
        5. Refuse .php sources
        6. Delegate to RangeFileStreamer.stream()

    =========================================================================
    USAGE
    =========================================================================

        handler = StaticFileHandler("/var/www", RangeFileStreamer())
        handler.handle("/video.mp4", ctx, sink)

    =========================================================================
    """

    def __init__(
        self,
        root_dir: Union[str, Path],
        streamer: RangeFileStreamer,
        index_file: str = "index.html",
    ):
        # Resolve to absolute path (important for the traversal check)
        self.root_dir = Path(root_dir).resolve()
        self.streamer = streamer
        self.index_file = index_file

        if not self.root_dir.is_dir():
            raise ValueError(f"Static root directory does not exist: {root_dir}")

    def resolve(self, url_path: str) -> Path:
        """
        Map a URL path to the file that should be streamed.

        Raises:
            StreamError: FORBIDDEN for traversal, NOT_FOUND for a directory
                without index or a refused source file.
        """
        relative = url_path.split("?", 1)[0].lstrip("/")
        full_path = (self.root_dir / relative).resolve()

        try:
            full_path.relative_to(self.root_dir)
        except ValueError:
            logger.warning(f"Path traversal attempt: {url_path}")
            raise StreamError("Access denied", ErrKind.FORBIDDEN, url_path) from None

        if full_path.is_dir():
            index_path = full_path / self.index_file
            if not index_path.is_file():
                raise StreamError("Directory has no index", ErrKind.NOT_FOUND, url_path)
            full_path = index_path

        if self.streamer.config.prevent_php_access and has_extension(full_path) in BLOCKED_SOURCE_EXTENSIONS:
            logger.warning(f"Refused request for server-side source: {url_path}")
            raise StreamError("File not found", ErrKind.NOT_FOUND, url_path)

        return full_path

    def handle(self, url_path: str, request_ctx: RequestContext, sink: ResponseSink) -> StreamOutcome:
        return self.streamer.stream(self.resolve(url_path), request_ctx, sink)
