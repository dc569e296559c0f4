"""
=============================================================================
STREAMER CONFIGURATION
=============================================================================

Centralized configuration for the file streamer.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m filestreamer --chunk-size 65536 video.mp4       │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── FILESTREAMER_CHUNK_SIZE=65536                             │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import os
from dataclasses import dataclass


@dataclass
class StreamerConfig:
    """
    Configuration for RangeFileStreamer and its collaborators.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    STREAMING
    - chunk_size

    LOCKING
    - lock_max_attempts, lock_min_delay, lock_max_delay

    CONTENT NEGOTIATION
    - compress_min_size, compression_level, brotli_quality,
      avif_quality, jpeg_quality, brotli_command, convert_command

    CACHING HEADERS
    - max_age_default, max_age_images, max_age_av, disable_caching

    SECURITY / IDENTITY
    - prevent_php_access, server_name

    LOGGING
    - log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # STREAMING
    # ─────────────────────────────────────────────────────────────────────
    chunk_size: int = 8192
    """Bytes read and written per iteration of the output loop."""

    # ─────────────────────────────────────────────────────────────────────
    # LOCKING
    # ─────────────────────────────────────────────────────────────────────
    lock_max_attempts: int = 20
    """Lock attempts before giving up with LOCK_TIMEOUT."""

    lock_min_delay: float = 0.1
    lock_max_delay: float = 1.0
    """
    Bounds (seconds) of the random sleep between lock attempts.
    20 attempts at up to 1.0s each = at most ~20s of waiting.
    """

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT NEGOTIATION
    # ─────────────────────────────────────────────────────────────────────
    compress_min_size: int = 4096
    """Text files smaller than this are always served uncompressed."""

    compression_level: int = 9
    """zlib/gzip level for .zz and .gz variants."""

    brotli_quality: int = 11
    avif_quality: int = 50
    jpeg_quality: int = 80

    brotli_command: str = "brotli"
    convert_command: str = "convert"
    """External tools; looked up on PATH when first needed."""

    # ─────────────────────────────────────────────────────────────────────
    # CACHING HEADERS
    # ─────────────────────────────────────────────────────────────────────
    max_age_default: int = 84600
    max_age_images: int = 2592000   # 30 days
    max_age_av: int = 604800        # 7 days
    disable_caching: bool = False
    """When True every cache-control header becomes 'no-cache'."""

    # ─────────────────────────────────────────────────────────────────────
    # SECURITY / IDENTITY
    # ─────────────────────────────────────────────────────────────────────
    prevent_php_access: bool = True
    """Refuse to stream .php sources as if they did not exist."""

    server_name: str = "filestreamer/1.0"

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: str = "text"
    """Access log format: 'json' or 'text'."""

    @classmethod
    def from_env(cls) -> "StreamerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        FILESTREAMER_CHUNK_SIZE         Output chunk size (default: 8192)
        FILESTREAMER_LOCK_ATTEMPTS      Lock attempts (default: 20)
        FILESTREAMER_COMPRESS_MIN_SIZE  Compression threshold (default: 4096)
        FILESTREAMER_DISABLE_CACHING    "1"/"true" to send no-cache
        FILESTREAMER_BROTLI             brotli executable (default: brotli)
        FILESTREAMER_CONVERT            ImageMagick executable (default: convert)
        FILESTREAMER_LOG_LEVEL          Logging level (default: INFO)
        FILESTREAMER_LOG_FORMAT         text or json (default: text)

        =====================================================================
        """
        return cls(
            chunk_size=int(os.getenv("FILESTREAMER_CHUNK_SIZE", "8192")),
            lock_max_attempts=int(os.getenv("FILESTREAMER_LOCK_ATTEMPTS", "20")),
            compress_min_size=int(os.getenv("FILESTREAMER_COMPRESS_MIN_SIZE", "4096")),
            disable_caching=os.getenv("FILESTREAMER_DISABLE_CACHING", "").lower() in ("1", "true", "yes"),
            brotli_command=os.getenv("FILESTREAMER_BROTLI", "brotli"),
            convert_command=os.getenv("FILESTREAMER_CONVERT", "convert"),
            log_level=os.getenv("FILESTREAMER_LOG_LEVEL", "INFO"),
            log_format=os.getenv("FILESTREAMER_LOG_FORMAT", "text"),
        )

    def validate(self) -> None:
        """Validate configuration values. Raises ValueError on the first bad one."""
        if self.chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")

        if self.lock_max_attempts < 1:
            raise ValueError("lock_max_attempts must be >= 1")

        if not 0 <= self.lock_min_delay <= self.lock_max_delay:
            raise ValueError("lock delays must satisfy 0 <= lock_min_delay <= lock_max_delay")

        if not 0 <= self.compression_level <= 9:
            raise ValueError(f"Invalid compression_level: {self.compression_level}. Must be 0-9.")

        if not 0 <= self.brotli_quality <= 11:
            raise ValueError(f"Invalid brotli_quality: {self.brotli_quality}. Must be 0-11.")

        if self.log_format not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', got {self.log_format!r}")
