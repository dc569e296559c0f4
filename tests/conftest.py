"""
pytest configuration and fixtures.
"""

import os
from pathlib import Path
from typing import List, Optional, Tuple

import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from filestreamer import RangeFileStreamer, StreamerConfig
from filestreamer.core.locking import FileLock
from filestreamer.observers import StreamObserver
from filestreamer.transcoding import Compressor, DeflateCompressor, GzipCompressor, Transcoder


# Fixed mtime: Sat, 15 Jun 2024 10:00:00 GMT
FIXED_MTIME = 1718445600
FIXED_LAST_MODIFIED = "Sat, 15 Jun 2024 10:00:00 GMT"


class RecordingObserver(StreamObserver):
    """Observer that keeps every event for assertions."""

    def __init__(self):
        self.read_errors: List[Tuple[Path, int, BaseException]] = []
        self.fallbacks: List[Tuple[Path, str]] = []
        self.completed = []

    def on_read_error(self, path, offset, error):
        self.read_errors.append((path, offset, error))

    def on_fallback(self, path, reason):
        self.fallbacks.append((path, reason))

    def on_complete(self, request, outcome):
        self.completed.append((request, outcome))


class FakeBrotli(Compressor):
    """Stands in for the external brotli binary."""

    encoding = "br"
    suffix = ".br"

    def __init__(self, available: bool = True, fail: bool = False):
        self._available = available
        self.fail = fail
        self.calls = 0

    def available(self) -> bool:
        return self._available

    def compress(self, data: bytes) -> bytes:
        from filestreamer.transcoding import TranscodeError

        self.calls += 1
        if self.fail:
            raise TranscodeError("brotli exited with 1")
        return b"BR:" + data[:16]


def set_mtime(path: Path, mtime: int = FIXED_MTIME) -> Path:
    os.utime(path, (mtime, mtime))
    return path


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def no_wait_lock() -> FileLock:
    """Lock with a short, sleepless retry loop."""
    return FileLock(max_attempts=3, sleep=lambda _: None)


@pytest.fixture
def fake_brotli() -> FakeBrotli:
    return FakeBrotli()


@pytest.fixture
def transcoder(fake_brotli: FakeBrotli) -> Transcoder:
    """Compressors only, no image converters."""
    return Transcoder(
        compressors=[fake_brotli, DeflateCompressor(), GzipCompressor()],
        converters=[],
    )


@pytest.fixture
def config() -> StreamerConfig:
    return StreamerConfig()


@pytest.fixture
def streamer(config, no_wait_lock, transcoder, observer) -> RangeFileStreamer:
    return RangeFileStreamer(
        config,
        lock=no_wait_lock,
        transcoder=transcoder,
        observer=observer,
    )


@pytest.fixture
def make_file(tmp_path: Path):
    """Create a file under tmp_path with a fixed mtime."""

    def _make(name: str, content: bytes = b"", mtime: Optional[int] = FIXED_MTIME) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        if mtime is not None:
            set_mtime(path, mtime)
        return path

    return _make


@pytest.fixture
def video(make_file) -> Path:
    """1,000,000-byte file whose byte i is i % 256."""
    data = bytes(i % 256 for i in range(1_000_000))
    return make_file("video.mp4", data)
