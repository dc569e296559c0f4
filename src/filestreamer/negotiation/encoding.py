"""
=============================================================================
CONTENT-ENCODING SUBSTITUTION
=============================================================================

Serves a precompressed sibling of a text file instead of the file itself.

=============================================================================
CONTENT NEGOTIATION
=============================================================================

The browser tells us what encoding it accepts:

    Request:
    ┌───────────────────────────────────────────────────────────────┐
    │ GET /css/site.css HTTP/1.1                                    │
    │ Accept-Encoding: gzip, deflate, br                            │
    └───────────────────────────────────────────────────────────────┘

We pick strictly by OUR preference, not the order the client lists:

    brotli (.br)  >  deflate (.zz)  >  gzip (.gz)  >  original

    Response:
    ┌───────────────────────────────────────────────────────────────┐
    │ HTTP/1.1 200 OK                                               │
    │ content-type: text/css; charset=utf-8                         │
    │ content-encoding: br                                          │
    │ vary: accept-encoding                                         │
    │ content-length: 1234    (compressed size)                     │
    └───────────────────────────────────────────────────────────────┘

=============================================================================
CACHE INVALIDATION
=============================================================================

    site.css.json records the source mtime the variants were built from.

    request ──► sidecar missing, unreadable, or mtime differs?
                    │
                    ├── yes ──► delete .br .zz .gz and the sidecar
                    │           write sidecar with the current mtime
                    │
                    └── no ───► keep existing variants

    Variants are then built lazily, one per encoding actually requested.

Two requests that miss at the same time may both build the same variant.
Each publishes with an atomic rename, so the last writer wins and no
reader ever sees a truncated variant.

=============================================================================
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Set

from ..core.files import (
    publish_file,
    read_locked,
    read_sidecar,
    remove_file,
    sidecar_path,
    source_mtime,
    write_sidecar,
)
from ..core.locking import FileLock
from ..errors import StreamError
from ..observers import StreamObserver
from ..transcoding import TranscodeError, Transcoder


logger = logging.getLogger(__name__)


# Strict preference order
ENCODING_PREFERENCE = ("br", "deflate", "gzip")

VARIANT_SUFFIXES = (".br", ".zz", ".gz")


def parse_accept_encoding(value: str) -> Set[str]:
    """
    Return the set of content-codings a client accepts.

    Parameters are stripped and codings with q=0 are treated as refused.
    A wildcard ("*") offers every preferred coding not explicitly refused.

    Examples:
        >>> sorted(parse_accept_encoding("gzip, br;q=1.0, deflate;q=0"))
        ['br', 'gzip']
    """
    accepted: Set[str] = set()
    refused: Set[str] = set()

    for token in value.split(","):
        parts = [p.strip() for p in token.split(";")]
        coding = parts[0].lower()
        if not coding:
            continue

        q = 1.0
        for param in parts[1:]:
            name, _, raw = param.partition("=")
            if name.strip().lower() == "q":
                try:
                    q = float(raw)
                except ValueError:
                    q = 0.0

        if q <= 0:
            refused.add(coding)
        else:
            accepted.add(coding)

    if "*" in accepted:
        accepted.update(c for c in ENCODING_PREFERENCE if c not in refused)
    return accepted - refused


@dataclass(frozen=True)
class EncodedVariant:
    """The file to serve and its content-encoding (None for the original)."""

    path: Path
    encoding: Optional[str] = None


class CompressedVariantCache:
    """
    Picks, and builds on demand, the compressed sibling of a text file.

    =========================================================================
    USAGE
    =========================================================================

        cache = CompressedVariantCache(transcoder, lock, observer)
        variant = cache.pick(Path("site.css"), "gzip, deflate, br")

        variant.path        # Path('site.css.br')
        variant.encoding    # 'br'

    =========================================================================
    """

    def __init__(self, transcoder: Transcoder, lock: FileLock, observer: StreamObserver):
        self.transcoder = transcoder
        self.lock = lock
        self.observer = observer

    def refresh(self, source: Path) -> bool:
        """
        Drop stale variants of `source`.

        Returns:
            True if the cache was invalidated and the sidecar rewritten.
        """
        mtime = source_mtime(source)
        recorded = read_sidecar(source, self.lock)
        if recorded is not None and recorded.get("filemtime") == mtime:
            return False

        for suffix in VARIANT_SUFFIXES:
            remove_file(source.with_name(source.name + suffix))
        remove_file(sidecar_path(source))
        write_sidecar(source, mtime, self.lock)

        logger.debug(f"Compressed variants of {source} invalidated (mtime {mtime})")
        return True

    def pick(self, source: Path, accept_encoding: str) -> EncodedVariant:
        """
        Choose the best variant of `source` for an Accept-Encoding header.

        Never raises for compression problems: any failure is reported to
        the observer and the next preference (finally the original) is used.
        """
        original = EncodedVariant(source)

        if not accept_encoding.strip():
            return original

        offered = parse_accept_encoding(accept_encoding)
        if not offered.intersection(ENCODING_PREFERENCE):
            return original

        try:
            self.refresh(source)
        except (OSError, StreamError) as e:
            self.observer.on_fallback(source, f"compressed cache unavailable: {e}")
            return original

        for encoding in ENCODING_PREFERENCE:
            if encoding not in offered:
                continue

            compressor = self.transcoder.compressor_for(encoding)
            if compressor is None:
                continue

            variant = source.with_name(source.name + compressor.suffix)
            if variant.is_file():
                return EncodedVariant(variant, encoding)

            if not compressor.available():
                continue

            try:
                publish_file(variant, compressor.compress(read_locked(source, self.lock)))
            except (TranscodeError, OSError, StreamError) as e:
                self.observer.on_fallback(source, f"{encoding} compression failed: {e}")
                continue

            return EncodedVariant(variant, encoding)

        return original
