"""
=============================================================================
RANGE FILE STREAMER
=============================================================================

Decides and emits the HTTP response for one static-file GET or HEAD.

=============================================================================
WHAT HAPPENS TO A REQUEST
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       STREAMING PIPELINE                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   path exists?  ────────── no ──► StreamError(NOT_FOUND)            │
    │   extension?    ────────── no ──► StreamError(NO_EXTENSION)         │
    │        │                                                             │
    │        ▼                                                             │
    │   registry headers (content-type, cache-control, nosniff)           │
    │        │                                                             │
    │        ├── text, >= 4 KiB ──► maybe serve site.css.br instead       │
    │        ├── image ───────────► maybe 307 to photo.avif / photo.jpg   │
    │        ▼                                                             │
    │   open + SHARED lock + fstat snapshot                               │
    │        │                                                             │
    │        ├── Accept mismatch ────────────────► 406                    │
    │        ├── If-Modified-Since == mtime ─────► 304                    │
    │        ├── Range unsatisfiable ────────────► 416                    │
    │        ├── Range ok ───────────────────────► 206 + chunks           │
    │        └── no Range ───────────────────────► 200 + chunks           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Every StreamError is raised BEFORE the sink sees a status line. After
the head is sent nothing is raised; a failing read or a client that
hangs up ends the body early and is reported to the observer.

With prevent_php_access set, a *.php file raises NOT_FOUND here as well,
whoever calls stream(). If a compressed variant disappears between being
picked and being opened (another request rebuilt it), the original file
is served instead and the observer gets on_fallback.

=============================================================================
CHUNKED OUTPUT
=============================================================================

    Window [999900, 999999] with chunk_size = 8192:

        seek(999900)
        read(min(8192, 100)) → 100 bytes → sink.write → sink.flush

    Memory use is bounded by chunk_size no matter how large the file is.

=============================================================================
INTERVIEW QUESTIONS ABOUT STREAMING
=============================================================================

Q: "Why lock a file you are only reading?"
A: "A writer replacing the file in place takes an exclusive lock. The
   shared lock keeps that writer out until we're done, so size and
   content can't change between fstat and the last read."

Q: "Why check If-Modified-Since before the Range?"
A: "A client that already has the file doesn't care whether its Range
   would fit. 304 is the cheaper and more useful answer."

=============================================================================
"""

import logging
import os
import stat
import time
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Optional, Tuple

from ..config import StreamerConfig
from ..core.files import FileMeta
from ..core.locking import FileLock, LockMode
from ..errors import ErrKind, StreamError
from ..http.mime_types import MimeRegistry, base_type, has_extension, is_text_like
from ..http.request import ByteWindow, RequestContext, StreamRequest
from ..http.response import ResponseHeaders, ResponseSink
from ..http.status_codes import HTTPStatus
from ..negotiation.encoding import CompressedVariantCache
from ..negotiation.images import ImageNegotiator
from ..observers import LoggingObserver, StreamObserver
from ..transcoding import Transcoder


logger = logging.getLogger(__name__)


# Server-side sources answered like missing files under prevent_php_access
BLOCKED_SOURCE_EXTENSIONS = {"php"}


@dataclass
class StreamOutcome:
    """
    What stream() emitted.

    Attributes:
        status:      Status sent to the sink.
        headers:     Headers sent to the sink.
        served_path: File whose bytes were (or would have been) sent.
                     A compressed variant when content-encoding is set.
        window:      Byte window of the body; None for 304/406/416/307.
        bytes_sent:  Body bytes the sink accepted.
        location:    Redirect target of a 307.
        complete:    False when the body stopped early.
        duration_ms: Wall time of the whole call.
    """

    status: HTTPStatus
    headers: ResponseHeaders
    served_path: Path
    window: Optional[ByteWindow] = None
    bytes_sent: int = 0
    location: Optional[str] = None
    complete: bool = True
    duration_ms: float = 0.0


def accepts_content_type(accept: str, content_type: str) -> bool:
    """
    True if an Accept header admits `content_type`.

    Matches the exact base type, */* or the <major>/* wildcard.
    An empty Accept admits everything.
    """
    if not accept.strip():
        return True

    mime = base_type(content_type)
    major = mime.split("/", 1)[0]
    return mime in accept or "*/*" in accept or f"{major}/*" in accept


class RangeFileStreamer:
    """
    Streams a file to a ResponseSink honouring Range, If-Modified-Since,
    Accept and Accept-Encoding.

    =========================================================================
    USAGE
    =========================================================================

        streamer = RangeFileStreamer(StreamerConfig(chunk_size=65536))

        ctx = RequestContext({"Range": "bytes=0-499"}, url="/video.mp4")
        sink = BufferedResponseSink()

        outcome = streamer.stream("/var/www/video.mp4", ctx, sink)
        outcome.status          # HTTPStatus.PARTIAL_CONTENT
        len(sink.body)          # 500

    Every collaborator can be injected; defaults are built from config.
    =========================================================================
    """

    def __init__(
        self,
        config: Optional[StreamerConfig] = None,
        registry: Optional[MimeRegistry] = None,
        lock: Optional[FileLock] = None,
        transcoder: Optional[Transcoder] = None,
        observer: Optional[StreamObserver] = None,
    ):
        self.config = config or StreamerConfig()
        self.registry = registry or MimeRegistry.from_config(self.config)
        self.lock = lock or FileLock.from_config(self.config)
        self.transcoder = transcoder or Transcoder.from_config(self.config, self.lock)
        self.observer = observer or LoggingObserver(self.config.log_format)

        self.variants = CompressedVariantCache(self.transcoder, self.lock, self.observer)
        self.images = ImageNegotiator(
            self.transcoder,
            self.observer,
            avif_quality=self.config.avif_quality,
            jpeg_quality=self.config.jpeg_quality,
        )

    def stream(self, path, request_ctx: RequestContext, sink: ResponseSink) -> StreamOutcome:
        """
        Emit the response for `path` to `sink`.

        Raises:
            StreamError: NOT_FOUND, NO_EXTENSION, NOT_READABLE, LOCK_TIMEOUT
                or IO_FAILURE. Always raised before the sink is touched.
        """
        started = time.perf_counter()
        request = StreamRequest.from_context(path, request_ctx)

        outcome = self._stream(request, sink)

        outcome.duration_ms = (time.perf_counter() - started) * 1000
        self.observer.on_complete(request, outcome)
        return outcome

    # ─────────────────────────────────────────────────────────────────────
    # PIPELINE
    # ─────────────────────────────────────────────────────────────────────

    def _stream(self, request: StreamRequest, sink: ResponseSink) -> StreamOutcome:
        path = request.path

        # ─────────────────────────────────────────────────────────────────
        # 1-2. EXISTENCE AND EXTENSION
        # ─────────────────────────────────────────────────────────────────
        source_size = self._regular_file_size(path)

        extension = has_extension(path)
        if extension is None:
            raise StreamError("File has no extension", ErrKind.NO_EXTENSION, path)

        if self.config.prevent_php_access and extension in BLOCKED_SOURCE_EXTENSIONS:
            logger.warning(f"Refused to stream server-side source: {path}")
            raise StreamError("File not found", ErrKind.NOT_FOUND, path)

        # ─────────────────────────────────────────────────────────────────
        # 3. DEFAULT HEADERS FOR THE TYPE
        # ─────────────────────────────────────────────────────────────────
        headers = self.registry.get_file_headers(extension)
        headers["server"] = self.config.server_name
        content_type = headers["content-type"]

        # ─────────────────────────────────────────────────────────────────
        # 4. COMPRESSED VARIANT
        # ─────────────────────────────────────────────────────────────────
        served = path
        if is_text_like(content_type, extension) and source_size >= self.config.compress_min_size:
            headers["vary"] = "accept-encoding"
            variant = self.variants.pick(path, request.accept_encoding)
            if variant.encoding is not None:
                headers["content-encoding"] = variant.encoding
                served = variant.path

        # ─────────────────────────────────────────────────────────────────
        # 5. IMAGE SUBSTITUTION
        # ─────────────────────────────────────────────────────────────────
        if ImageNegotiator.applies(content_type, extension):
            location = self.images.negotiate(path, extension, request.accept, request.url)
            if location is not None:
                return self._redirect(path, location, headers, sink)

        # ─────────────────────────────────────────────────────────────────
        # 6. OPEN, LOCK, SNAPSHOT
        # ─────────────────────────────────────────────────────────────────
        try:
            fp = self._open(served)
        except StreamError as e:
            # A concurrent refresh may delete the variant after pick()
            if served == path or e.kind is not ErrKind.NOT_FOUND:
                raise
            self.observer.on_fallback(path, f"compressed variant vanished: {served.name}")
            headers.remove("content-encoding")
            served = path
            fp = self._open(served)

        with fp:
            self.lock.acquire(fp, served, LockMode.SHARED)
            meta = FileMeta.snapshot(fp, extension)
            return self._respond(request, fp, served, meta, headers, sink)

    def _respond(
        self,
        request: StreamRequest,
        fp: IO,
        served: Path,
        meta: FileMeta,
        headers: ResponseHeaders,
        sink: ResponseSink,
    ) -> StreamOutcome:
        content_type = headers["content-type"]

        # ─────────────────────────────────────────────────────────────────
        # 7. ACCEPT
        # ─────────────────────────────────────────────────────────────────
        if not accepts_content_type(request.accept, content_type):
            only_type = ResponseHeaders({"content-type": content_type})
            sink.send_head(HTTPStatus.NOT_ACCEPTABLE, only_type)
            return StreamOutcome(HTTPStatus.NOT_ACCEPTABLE, only_type, served)

        # ─────────────────────────────────────────────────────────────────
        # 8-10. WINDOW
        # ─────────────────────────────────────────────────────────────────
        window: Optional[ByteWindow] = None
        if request.requested_range is None:
            window = ByteWindow.full(meta.size)
            status = HTTPStatus.OK
        else:
            try:
                window = ByteWindow.resolve(request.requested_range, meta.size)
            except StreamError as e:
                logger.debug(f"{e} ({served})")
            status = HTTPStatus.PARTIAL_CONTENT

        headers["accept-ranges"] = "bytes"
        if window is not None:
            headers["content-length"] = str(window.length)
            if status == HTTPStatus.PARTIAL_CONTENT:
                headers["content-range"] = window.content_range(meta.size)

        # ─────────────────────────────────────────────────────────────────
        # 11. CONDITIONAL GET
        # ─────────────────────────────────────────────────────────────────
        headers["last-modified"] = meta.last_modified
        if request.if_modified_since == meta.last_modified:
            headers.remove("content-length")
            headers.remove("content-range")
            sink.send_head(HTTPStatus.NOT_MODIFIED, headers)
            return StreamOutcome(HTTPStatus.NOT_MODIFIED, headers, served)

        # ─────────────────────────────────────────────────────────────────
        # 12. UNSATISFIABLE RANGE
        # ─────────────────────────────────────────────────────────────────
        if window is None:
            headers["content-range"] = f"bytes */{meta.size}"
            sink.send_head(HTTPStatus.RANGE_NOT_SATISFIABLE, headers)
            return StreamOutcome(HTTPStatus.RANGE_NOT_SATISFIABLE, headers, served)

        # ─────────────────────────────────────────────────────────────────
        # 13. HEAD AND BODY
        # ─────────────────────────────────────────────────────────────────
        sink.send_head(status, headers)
        outcome = StreamOutcome(status, headers, served, window=window)

        if request.is_head or not status.has_body:
            return outcome

        outcome.bytes_sent, outcome.complete = self._copy_window(fp, served, window, sink)
        return outcome

    # ─────────────────────────────────────────────────────────────────────
    # HELPERS
    # ─────────────────────────────────────────────────────────────────────

    @staticmethod
    def _regular_file_size(path: Path) -> int:
        try:
            st = os.stat(path)
        except FileNotFoundError:
            raise StreamError("File not found", ErrKind.NOT_FOUND, path) from None
        except PermissionError as e:
            raise StreamError(f"Cannot stat file: {e.strerror}", ErrKind.NOT_READABLE, path) from e
        except OSError as e:
            raise StreamError(f"Cannot stat file: {e}", ErrKind.IO_FAILURE, path) from e

        if not stat.S_ISREG(st.st_mode):
            raise StreamError("Not a regular file", ErrKind.NOT_FOUND, path)
        return st.st_size

    @staticmethod
    def _open(path: Path) -> IO:
        try:
            return open(path, "rb")
        except FileNotFoundError:
            raise StreamError("File not found", ErrKind.NOT_FOUND, path) from None
        except PermissionError as e:
            raise StreamError(f"File not readable: {e.strerror}", ErrKind.NOT_READABLE, path) from e
        except OSError as e:
            raise StreamError(f"Cannot open file: {e}", ErrKind.IO_FAILURE, path) from e

    @staticmethod
    def _redirect(path: Path, location: str, headers: ResponseHeaders, sink: ResponseSink) -> StreamOutcome:
        headers.remove("content-type")
        headers.remove("content-encoding")
        headers["location"] = location
        headers["content-length"] = "0"

        sink.send_head(HTTPStatus.TEMPORARY_REDIRECT, headers)
        logger.debug(f"{path.name} → {location}")
        return StreamOutcome(HTTPStatus.TEMPORARY_REDIRECT, headers, path, location=location)

    def _copy_window(self, fp: IO, path: Path, window: ByteWindow, sink: ResponseSink) -> Tuple[int, bool]:
        """
        Copy [window.start, window.end] from `fp` to `sink`.

        Returns:
            (bytes written, whether the whole window was written)
        """
        sent = 0
        position = window.start

        try:
            fp.seek(window.start)
            while position <= window.end:
                # Last chunk is clamped to the window end
                size = min(self.config.chunk_size, window.end - position + 1)
                chunk = fp.read(size)
                if not chunk:
                    raise StreamError(
                        f"File ended at byte {position}, expected {window.end + 1}",
                        ErrKind.IO_FAILURE,
                        path,
                    )

                sink.write(chunk)
                sink.flush()
                sent += len(chunk)
                position += len(chunk)
        except (OSError, StreamError) as e:
            self.observer.on_read_error(path, position, e)
            return sent, False

        return sent, True


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# RangeFileStreamer turns (path, request headers) into exactly one of:
#
#   200 / 206   headers + body window, chunked
#   304         cached copy still valid
#   307         better image format available
#   406         Accept excludes the content-type
#   416         Range outside the file
#   StreamError nothing sent
#
# The file is opened once, locked SHARED, and stat'ed through the open
# descriptor. Closing it at the end of the `with` block drops the lock.
# =============================================================================
