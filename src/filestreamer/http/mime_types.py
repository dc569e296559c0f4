"""
=============================================================================
MIME TYPE REGISTRY
=============================================================================

Maps file extensions to Content-Type and default Cache-Control headers.

=============================================================================
WHAT THE REGISTRY RETURNS
=============================================================================

For every extension the registry yields a small, ordered set of response
headers that the streamer starts from:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                  get_file_headers("mp4")                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   content-type:            video/mp4                                │
    │   cache-control:           max-age=604800, public                   │
    │   x-content-type-options:  nosniff                                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Unknown extensions are served as a download:

    content-type:   application/octet-stream
    cache-control:  max-age=84600, private

"public" responses may be shared by caching proxies, "private" ones are
for the requesting browser only.

=============================================================================
INTERVIEW INSIGHT
=============================================================================

Q: "What does X-Content-Type-Options: nosniff do?"
A: "It stops browsers from guessing a type different from the declared
   Content-Type. Without it a text file containing HTML could be sniffed
   and rendered as a page."

Q: "What's the default MIME type?"
A: "application/octet-stream - meaning 'unknown binary data'.
   Browsers typically download these files rather than display them."

=============================================================================
"""

import re
from pathlib import Path
from typing import Dict, Optional, Union

from .response import ResponseHeaders


DEFAULT_MIME_TYPE = "application/octet-stream"

# Extensions whose content is text even though the content-type may not
# start with "text/".
TEXT_EXTENSIONS = {"xml", "svg", "rss", "atom"}

TEXT_APPLICATION_TYPES = {
    "application/json",
    "application/javascript",
    "application/xml",
    "application/xhtml+xml",
    "application/rss+xml",
    "application/atom+xml",
    "image/svg+xml",
}

_EXTENSION_RE = re.compile(r"^.+\.([^.]{1,64})$")


def has_extension(path: Union[str, Path]) -> Optional[str]:
    """
    Return the lowercase extension of a path, or None if it has none.

    Examples:
        >>> has_extension("/var/www/video.MP4")
        'mp4'
        >>> has_extension("archive.tar.gz")
        'gz'
        >>> has_extension(".htaccess") is None
        True
    """
    match = _EXTENSION_RE.match(Path(path).name)
    return match.group(1).lower() if match else None


def base_type(content_type: str) -> str:
    """'text/html; charset=utf-8' -> 'text/html'"""
    return content_type.split(";")[0].strip().lower()


def is_text_like(content_type: str, extension: str) -> bool:
    """
    Check if a file should be offered as a compressed variant.

    Text content compresses well; images, video and archives are
    already compressed.
    """
    mime = base_type(content_type)
    if mime.startswith("text/"):
        return True
    return extension in TEXT_EXTENSIONS or mime in TEXT_APPLICATION_TYPES


class MimeRegistry:
    """
    Extension → headers lookup.

    =========================================================================
    USAGE
    =========================================================================

        registry = MimeRegistry(max_age_images=86400)
        headers = registry.get_file_headers("webp")
        headers["content-type"]     # 'image/webp'

        # Development: never let the browser cache anything
        registry = MimeRegistry(disable_caching=True)

    =========================================================================
    """

    SHARED_HEADERS = {
        "x-content-type-options": "nosniff",
    }

    def __init__(
        self,
        max_age_default: int = 84600,
        max_age_images: int = 2592000,
        max_age_av: int = 604800,
        disable_caching: bool = False,
    ):
        self.max_age_default = max_age_default
        self.max_age_images = max_age_images
        self.max_age_av = max_age_av
        self.disable_caching = disable_caching
        self._file_types = self._define_file_types()

    @classmethod
    def from_config(cls, config) -> "MimeRegistry":
        return cls(
            max_age_default=config.max_age_default,
            max_age_images=config.max_age_images,
            max_age_av=config.max_age_av,
            disable_caching=config.disable_caching,
        )

    def _define_file_types(self) -> Dict[str, Dict[str, str]]:
        text = f"max-age={self.max_age_default}, private"
        images_public = f"max-age={self.max_age_images}, public"
        images_private = f"max-age={self.max_age_images}, private"
        av = f"max-age={self.max_age_av}, public"
        downloads = f"max-age={self.max_age_default}, public"

        types = {
            # -----------------------------------------------------------------
            # TEXT TYPES
            # -----------------------------------------------------------------
            "txt": ("text/plain; charset=utf-8", text),
            "html": ("text/html; charset=utf-8", text),
            "htm": ("text/html; charset=utf-8", text),
            "css": ("text/css; charset=utf-8", text),
            "js": ("text/javascript; charset=utf-8", text),
            "mjs": ("text/javascript; charset=utf-8", text),
            "json": ("application/json; charset=utf-8", text),
            "csv": ("text/csv; charset=utf-8", text),
            "md": ("text/markdown; charset=utf-8", text),
            "rss": ("text/xml; charset=utf-8", text),
            "atom": ("application/atom+xml; charset=utf-8", text),
            "xml": ("application/xml; charset=utf-8", text),
            "xhtml": ("application/xhtml+xml; charset=utf-8", text),

            # -----------------------------------------------------------------
            # IMAGE TYPES
            # -----------------------------------------------------------------
            "jpg": ("image/jpeg", images_public),
            "jpeg": ("image/jpeg", images_public),
            "png": ("image/png", images_public),
            "avif": ("image/avif", images_public),
            "webp": ("image/webp", images_public),
            "ico": ("image/x-icon", images_public),
            "svg": ("image/svg+xml; charset=utf-8", images_private),
            "gif": ("image/gif", images_private),

            # -----------------------------------------------------------------
            # AUDIO / VIDEO TYPES
            # -----------------------------------------------------------------
            "mp3": ("audio/mpeg", av),
            "mp4": ("video/mp4", av),
            "webm": ("video/webm", av),
            "wav": ("audio/wav", av),
            "ogg": ("application/ogg", av),
            "flac": ("audio/flac", av),

            # -----------------------------------------------------------------
            # ARCHIVES AND DOCUMENTS
            # -----------------------------------------------------------------
            "7z": ("application/x-7z-compressed", downloads),
            "rar": ("application/x-rar-compressed", downloads),
            "zip": ("application/zip", downloads),
            "gz": ("application/x-gzip", downloads),
            "pdf": ("application/pdf", downloads),

            # -----------------------------------------------------------------
            # FONT TYPES
            # -----------------------------------------------------------------
            "woff": ("font/woff", downloads),
            "woff2": ("font/woff2", downloads),
            "ttf": ("font/ttf", downloads),
        }
        return {
            ext: {"content-type": content_type, "cache-control": cache_control}
            for ext, (content_type, cache_control) in types.items()
        }

    def get_file_headers(self, extension: str) -> ResponseHeaders:
        """
        Build the starting headers for a file with the given extension.

        Args:
            extension: File extension without the dot (any case).

        Returns:
            New ResponseHeaders with content-type, cache-control and the
            headers shared by every static asset.
        """
        entry = self._file_types.get(extension.lower())
        if entry is None:
            entry = {
                "content-type": DEFAULT_MIME_TYPE,
                "cache-control": f"max-age={self.max_age_default}, private",
            }

        headers = ResponseHeaders(entry)
        if self.disable_caching:
            headers["cache-control"] = "no-cache"
        headers.update(self.SHARED_HEADERS)
        return headers
