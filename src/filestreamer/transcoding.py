"""
=============================================================================
TRANSCODING CAPABILITIES
=============================================================================

Compression and image conversion backends, injected into the streamer
so the negotiation logic never spawns processes itself.

=============================================================================
CAPABILITIES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         TRANSCODER                                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   COMPRESSORS          available()            compress(bytes)       │
    │   ───────────          ───────────            ───────────────       │
    │   br       (.br)       `brotli` on PATH       brotli -q 11 -c       │
    │   deflate  (.zz)       always                 zlib.compress         │
    │   gzip     (.gz)       always                 gzip.compress         │
    │                                                                      │
    │   IMAGE CONVERTERS     available()            convert_image()       │
    │   ────────────────     ───────────            ───────────────       │
    │   ImageMagick          `convert` on PATH      any → avif, avif → jpg│
    │   Pillow               webp codec built in    webp → jpg            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Every capability answers available() first. An unavailable backend is
skipped silently and the caller falls through to its next preference.

A backend that IS available but fails raises TranscodeError. The
negotiation layer catches it and serves the original file.

=============================================================================
"""

import gzip
import io
import logging
import os
import shutil
import subprocess
import zlib
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, List, Optional

from PIL import Image, features

from .core.files import publish_file, read_locked, remove_file
from .core.locking import FileLock
from .errors import StreamError


logger = logging.getLogger(__name__)


class TranscodeError(Exception):
    """An available backend failed to produce its output."""


# =============================================================================
# COMPRESSORS
# =============================================================================

class Compressor(ABC):
    """One HTTP content-coding with the file suffix its variant uses."""

    encoding: str = ""
    suffix: str = ""

    def available(self) -> bool:
        return True

    @abstractmethod
    def compress(self, data: bytes) -> bytes:
        """Return `data` encoded with this content-coding."""


class BrotliCommandCompressor(Compressor):
    """
    Brotli through the external `brotli` tool.

    The binary is looked up on PATH on every check, so installing it
    takes effect without a restart.
    """

    encoding = "br"
    suffix = ".br"

    def __init__(self, command: str = "brotli", quality: int = 11, timeout: float = 60.0):
        self.command = command
        self.quality = quality
        self.timeout = timeout

    def available(self) -> bool:
        return shutil.which(self.command) is not None

    def compress(self, data: bytes) -> bytes:
        executable = shutil.which(self.command)
        if executable is None:
            raise TranscodeError(f"{self.command} is not installed or not in PATH.")

        try:
            result = subprocess.run(
                [executable, "-q", str(self.quality), "-c"],
                input=data,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=self.timeout,
                check=True,
            )
        except subprocess.CalledProcessError as e:
            stderr = e.stderr.decode("utf-8", "replace").strip()
            raise TranscodeError(f"brotli exited with {e.returncode}: {stderr}") from e
        except (subprocess.TimeoutExpired, OSError) as e:
            raise TranscodeError(f"brotli failed: {e}") from e

        return result.stdout


class DeflateCompressor(Compressor):
    """zlib-wrapped DEFLATE, the 'deflate' content-coding of RFC 9110."""

    encoding = "deflate"
    suffix = ".zz"

    def __init__(self, level: int = 9):
        self.level = level

    def compress(self, data: bytes) -> bytes:
        return zlib.compress(data, self.level)


class GzipCompressor(Compressor):
    encoding = "gzip"
    suffix = ".gz"

    def __init__(self, level: int = 9):
        self.level = level

    def compress(self, data: bytes) -> bytes:
        # mtime=0 keeps the output identical for identical input
        return gzip.compress(data, compresslevel=self.level, mtime=0)


# =============================================================================
# IMAGE CONVERTERS
# =============================================================================

class ImageConverter(ABC):
    """Writes a sibling image in another format."""

    def available(self) -> bool:
        return True

    @abstractmethod
    def supports(self, source_ext: str, target_ext: str) -> bool:
        """True if this converter can turn `source_ext` into `target_ext`."""

    @abstractmethod
    def convert_image(self, source: Path, target: Path, quality: Optional[int] = None) -> Path:
        """
        Convert `source` into `target` (format taken from target's suffix).

        Returns:
            The target path, which exists on success.

        Raises:
            TranscodeError: Conversion failed; `target` was not created.
        """


class ImageMagickConverter(ImageConverter):
    """
    ImageMagick's `convert` command.

    ImageMagick picks the output format from the file extension, so the
    temporary output keeps the target's suffix.
    """

    def __init__(self, command: str = "convert", timeout: float = 120.0):
        self.command = command
        self.timeout = timeout

    def available(self) -> bool:
        return shutil.which(self.command) is not None

    def supports(self, source_ext: str, target_ext: str) -> bool:
        return target_ext == "avif" or (source_ext == "avif" and target_ext in ("jpg", "jpeg"))

    def convert_image(self, source: Path, target: Path, quality: Optional[int] = None) -> Path:
        executable = shutil.which(self.command)
        if executable is None:
            raise TranscodeError(f"{self.command} is not installed or not in PATH.")

        tmp = target.with_name(f".{target.stem}.{os.getpid()}.tmp{target.suffix}")
        args = [executable, str(source)]
        if quality is not None:
            args += ["-quality", f"{quality}%"]
        args.append(str(tmp))

        try:
            subprocess.run(
                args,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=self.timeout,
                check=True,
            )
            if not tmp.is_file():
                raise TranscodeError(f"{self.command} produced no output for {source}")
            os.replace(tmp, target)
        except subprocess.CalledProcessError as e:
            remove_file(tmp)
            stderr = e.stderr.decode("utf-8", "replace").strip()
            raise TranscodeError(f"{self.command} exited with {e.returncode}: {stderr}") from e
        except (subprocess.TimeoutExpired, OSError) as e:
            remove_file(tmp)
            raise TranscodeError(f"{self.command} failed: {e}") from e

        return target


class PillowConverter(ImageConverter):
    """
    webp → jpeg with Pillow.

    The source is read under a shared lock, decoded, flattened to RGB and
    re-encoded as JPEG.
    """

    def __init__(self, lock: Optional[FileLock] = None):
        self.lock = lock or FileLock()

    def available(self) -> bool:
        return bool(features.check("webp"))

    def supports(self, source_ext: str, target_ext: str) -> bool:
        return source_ext == "webp" and target_ext in ("jpg", "jpeg")

    def convert_image(self, source: Path, target: Path, quality: Optional[int] = None) -> Path:
        try:
            data = read_locked(source, self.lock)
            with Image.open(io.BytesIO(data)) as img:
                rgb = img.convert("RGB")
                out = io.BytesIO()
                rgb.save(out, format="JPEG", quality=quality or 80)
            return publish_file(target, out.getvalue())
        except (OSError, StreamError) as e:
            raise TranscodeError(f"Pillow could not convert {source}: {e}") from e


# =============================================================================
# FACADE
# =============================================================================

class Transcoder:
    """
    The set of compressors and image converters a streamer may use.

    =========================================================================
    USAGE
    =========================================================================

        transcoder = Transcoder.from_config(config, lock)

        gz = transcoder.compressor_for("gzip")
        if gz and gz.available():
            body = gz.compress(body)

        if transcoder.can_convert("webp", "jpg"):
            transcoder.convert_image(Path("a.webp"), Path("a.jpg"), quality=80)

    =========================================================================
    """

    def __init__(
        self,
        compressors: Optional[Iterable[Compressor]] = None,
        converters: Optional[Iterable[ImageConverter]] = None,
    ):
        if compressors is None:
            compressors = [BrotliCommandCompressor(), DeflateCompressor(), GzipCompressor()]
        self.compressors = {c.encoding: c for c in compressors}
        self.converters: List[ImageConverter] = list(
            converters if converters is not None else [ImageMagickConverter(), PillowConverter()]
        )

    @classmethod
    def from_config(cls, config, lock: Optional[FileLock] = None) -> "Transcoder":
        return cls(
            compressors=[
                BrotliCommandCompressor(config.brotli_command, config.brotli_quality),
                DeflateCompressor(config.compression_level),
                GzipCompressor(config.compression_level),
            ],
            converters=[
                ImageMagickConverter(config.convert_command),
                PillowConverter(lock),
            ],
        )

    def compressor_for(self, encoding: str) -> Optional[Compressor]:
        return self.compressors.get(encoding)

    def _converters_for(self, source_ext: str, target_ext: str) -> List[ImageConverter]:
        return [
            c for c in self.converters
            if c.supports(source_ext, target_ext) and c.available()
        ]

    def can_convert(self, source_ext: str, target_ext: str) -> bool:
        return bool(self._converters_for(source_ext, target_ext))

    def convert_image(self, source: Path, target: Path, quality: Optional[int] = None) -> Path:
        """
        Convert with the first available converter that supports the pair.

        Raises:
            TranscodeError: No converter could produce `target`.
        """
        source_ext = source.suffix.lstrip(".").lower()
        target_ext = target.suffix.lstrip(".").lower()

        last_error: Optional[TranscodeError] = None
        for converter in self._converters_for(source_ext, target_ext):
            try:
                return converter.convert_image(source, target, quality)
            except TranscodeError as e:
                logger.debug(f"{type(converter).__name__} failed on {source}: {e}")
                last_error = e

        if last_error is not None:
            raise last_error
        raise TranscodeError(f"No converter available for {source_ext} → {target_ext}")
