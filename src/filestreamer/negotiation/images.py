"""
=============================================================================
IMAGE-FORMAT SUBSTITUTION
=============================================================================

Redirects image requests to a sibling in a format the client prefers,
transcoding it once on disk if it does not exist yet.

=============================================================================
DECISION
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │   png, svg, gif                →  never touched                     │
    │                                                                      │
    │   1. Accept has image/avif                                          │
    │      and file is not .avif     →  photo.avif exists?   307          │
    │                                   convert → avif ok?   307          │
    │                                   convert failed       original     │
    │                                   no converter         go to 2      │
    │                                                                      │
    │   2. file is .webp / .avif                                          │
    │      Accept lacks image/<ext>                                       │
    │      Accept has image/jpeg,                                         │
    │      */* or image/*            →  photo.jpg exists?    307          │
    │                                   convert → jpg ok?    307          │
    │                                   otherwise            original     │
    └─────────────────────────────────────────────────────────────────────┘

The redirect is a 307 with an empty body. The original bytes are never
sent on that path.

=============================================================================
"""

import logging
from pathlib import Path
from typing import Optional

from ..http.mime_types import base_type
from ..observers import StreamObserver
from ..transcoding import TranscodeError, Transcoder


logger = logging.getLogger(__name__)


EXEMPT_EXTENSIONS = {"png", "svg", "gif"}

MODERN_EXTENSIONS = {"webp", "avif"}

LEGACY_ACCEPT_MARKERS = ("image/jpeg", "*/*", "image/*")


def sibling_with_extension(path: Path, extension: str) -> Path:
    """photo.webp + 'jpg' → photo.jpg"""
    return path.with_suffix(f".{extension}")


def public_location(url: str, source: Path, extension: str) -> str:
    """
    Public URL of a sibling.

    Swaps the extension of the request URL; without a URL the sibling's
    file name is returned, which clients resolve relative to the request.
    """
    if url:
        slash = url.rfind("/")
        dot = url.rfind(".")
        if dot > slash:
            return f"{url[:dot]}.{extension}"
        return f"{url}.{extension}"
    return sibling_with_extension(source, extension).name


class ImageNegotiator:
    """
    Finds or creates a better-suited sibling of an image.

    negotiate() returns the redirect location, or None to serve the
    requested file unchanged.
    """

    def __init__(
        self,
        transcoder: Transcoder,
        observer: StreamObserver,
        avif_quality: int = 50,
        jpeg_quality: int = 80,
    ):
        self.transcoder = transcoder
        self.observer = observer
        self.avif_quality = avif_quality
        self.jpeg_quality = jpeg_quality

    @staticmethod
    def applies(content_type: str, extension: str) -> bool:
        return base_type(content_type).startswith("image/") and extension not in EXEMPT_EXTENSIONS

    def negotiate(self, source: Path, extension: str, accept: str, url: str = "") -> Optional[str]:
        # ─────────────────────────────────────────────────────────────────
        # 1. CLIENT CLAIMS AVIF SUPPORT
        # ─────────────────────────────────────────────────────────────────
        if "image/avif" in accept and extension != "avif":
            avif = sibling_with_extension(source, "avif")
            if avif.is_file():
                return public_location(url, source, "avif")

            if self.transcoder.can_convert(extension, "avif"):
                return self._convert(source, avif, url, "avif", self.avif_quality)

        # ─────────────────────────────────────────────────────────────────
        # 2. MODERN FORMAT THE CLIENT DOES NOT CLAIM
        # ─────────────────────────────────────────────────────────────────
        if extension in MODERN_EXTENSIONS and f"image/{extension}" not in accept:
            if any(marker in accept for marker in LEGACY_ACCEPT_MARKERS):
                jpg = sibling_with_extension(source, "jpg")
                if jpg.is_file():
                    return public_location(url, source, "jpg")

                if self.transcoder.can_convert(extension, "jpg"):
                    return self._convert(source, jpg, url, "jpg", self.jpeg_quality)

        return None

    def _convert(self, source: Path, target: Path, url: str, extension: str, quality: int) -> Optional[str]:
        try:
            self.transcoder.convert_image(source, target, quality)
        except TranscodeError as e:
            self.observer.on_fallback(source, f"conversion to {extension} failed: {e}")
            return None

        if not target.is_file():
            self.observer.on_fallback(source, f"conversion to {extension} produced no file")
            return None

        logger.info(f"Transcoded {source.name} → {target.name}")
        return public_location(url, source, extension)
