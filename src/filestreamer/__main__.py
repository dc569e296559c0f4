"""
=============================================================================
FILESTREAMER CLI ENTRY POINT
=============================================================================

Renders the response the streamer would send for a local file, with
request headers given on the command line.

=============================================================================
USAGE
=============================================================================

    # Whole file to stdout, head on stderr
    python -m filestreamer ./public/video.mp4 > out.mp4

    # Last 100 bytes, raw HTTP response (like curl -i)
    python -m filestreamer ./public/video.mp4 --range bytes=999900- -i

    # What would a browser get for this stylesheet?
    python -m filestreamer /css/site.css --root ./public \\
        --accept-encoding "gzip, deflate, br" -o site.css.out

    # Headers only
    python -m filestreamer ./public/photo.webp --accept image/avif --head

=============================================================================
"""

import argparse
import sys

from . import __version__
from .config import StreamerConfig
from .errors import StreamError
from .handlers import RangeFileStreamer, StaticFileHandler
from .http.request import RequestContext
from .http.response import WriterResponseSink
from .observers import LoggingObserver, configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="filestreamer",
        description="Render the HTTP response for a static file request",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m filestreamer video.mp4 --range bytes=0-1023 -i
  python -m filestreamer /index.html --root ./public --accept-encoding br
  python -m filestreamer photo.webp --accept "image/avif,*/*" --head
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # TARGET
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("path", help="File to stream, or URL path when --root is given")

    parser.add_argument(
        "--root", "-r",
        default=None,
        help="Document root; PATH is then resolved like a URL under it"
    )

    # ─────────────────────────────────────────────────────────────────────
    # REQUEST HEADERS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--range", default=None, help="Range header, e.g. bytes=0-499")
    parser.add_argument("--accept", default="", help="Accept header")
    parser.add_argument("--accept-encoding", default="", help="Accept-Encoding header")
    parser.add_argument("--if-modified-since", default=None, help="If-Modified-Since header")
    parser.add_argument("--url", default="", help="Public URL of the request (used for redirects)")
    parser.add_argument("--head", action="store_true", help="Send a HEAD request")

    # ─────────────────────────────────────────────────────────────────────
    # OUTPUT
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--include", "-i",
        action="store_true",
        help="Write the raw status line and headers before the body"
    )
    parser.add_argument("--output", "-o", default=None, help="Write to FILE instead of stdout")

    # ─────────────────────────────────────────────────────────────────────
    # TUNING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--chunk-size", type=int, default=None, help="Bytes per write (default: 8192)")
    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO)"
    )
    parser.add_argument("--version", "-v", action="version", version=f"filestreamer {__version__}")

    return parser


def build_context(args: argparse.Namespace) -> RequestContext:
    headers = {}
    if args.range:
        headers["Range"] = args.range
    if args.accept:
        headers["Accept"] = args.accept
    if args.accept_encoding:
        headers["Accept-Encoding"] = args.accept_encoding
    if args.if_modified_since:
        headers["If-Modified-Since"] = args.if_modified_since

    url = args.url or (args.path if args.root else "")
    return RequestContext(headers, method="HEAD" if args.head else "GET", url=url)


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    # =========================================================================
    # CONFIGURATION: environment first, command line wins
    # =========================================================================
    config = StreamerConfig.from_env()
    if args.chunk_size is not None:
        config.chunk_size = args.chunk_size
    if args.log_level is not None:
        config.log_level = args.log_level

    try:
        config.validate()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    configure_logging(config.log_level)

    streamer = RangeFileStreamer(config, observer=LoggingObserver(config.log_format))
    ctx = build_context(args)

    out = open(args.output, "wb") if args.output else sys.stdout.buffer
    sink = WriterResponseSink(out, include_head=args.include, head_stream=sys.stderr)

    try:
        if args.root:
            outcome = StaticFileHandler(args.root, streamer).handle(args.path, ctx, sink)
        else:
            outcome = streamer.stream(args.path, ctx, sink)
    except (StreamError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        if args.output:
            out.close()

    return 0 if outcome.complete else 1


# =============================================================================
# ENTRY POINT
# =============================================================================

if __name__ == "__main__":
    sys.exit(main())
