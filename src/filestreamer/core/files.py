"""
=============================================================================
FILE SNAPSHOTS, SIDECARS AND SAFE WRITES
=============================================================================

Filesystem plumbing shared by the streamer and the negotiation steps.

=============================================================================
ON-DISK LAYOUT
=============================================================================

    /var/www/css/site.css           source file
    /var/www/css/site.css.json      sidecar: {"filemtime":1718445600}
    /var/www/css/site.css.br        brotli variant
    /var/www/css/site.css.zz        deflate variant
    /var/www/css/site.css.gz        gzip variant

    /var/www/img/photo.webp         source image
    /var/www/img/photo.avif         transcoded sibling
    /var/www/img/photo.jpg          transcoded sibling

The sidecar JSON is compact ({"filemtime":N}, no spaces) so other tools
sharing the same cache directory read and write identical bytes.

=============================================================================
TWO WAYS TO WRITE
=============================================================================

    write_file()     open without truncating → EXCLUSIVE lock → truncate
                     → write. Readers holding a SHARED lock never see a
                     half-written file. Used for the sidecar.

    publish_file()   write a hidden temp sibling, then os.replace() it
                     over the target. The swap is atomic, so a reader
                     sees either the old file or the complete new one.
                     Used for compressed and transcoded variants.

=============================================================================
"""

import json
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Optional

from .locking import FileLock, LockMode
from ..http.response import format_http_date


@dataclass(frozen=True)
class FileMeta:
    """
    Stat snapshot of an open file.

    Taken from the file descriptor AFTER the lock is held, so size and
    mtime describe exactly the bytes about to be read.
    """

    size: int
    mtime: int
    extension: str

    @classmethod
    def snapshot(cls, fp: IO, extension: str) -> "FileMeta":
        st = os.fstat(fp.fileno())
        return cls(size=st.st_size, mtime=int(st.st_mtime), extension=extension)

    @property
    def last_modified(self) -> str:
        """RFC 1123 GMT string, e.g. 'Sat, 15 Jun 2024 10:00:00 GMT'."""
        return format_http_date(self.mtime)


def sidecar_path(path: Path) -> Path:
    return path.with_name(path.name + ".json")


def source_mtime(path: Path) -> int:
    return int(os.stat(path).st_mtime)


def read_locked(path: Path, lock: FileLock) -> bytes:
    """Read a whole file while holding a shared lock on it."""
    with open(path, "rb") as fp:
        lock.acquire(fp, path, LockMode.SHARED)
        return fp.read()


def write_file(path: Path, content: bytes, lock: FileLock, permissions: int = 0o664) -> None:
    """
    Replace a file's content in place under an exclusive lock.

    The file is opened without O_TRUNC and only truncated once the lock
    is held.
    """
    fd = os.open(path, os.O_WRONLY | os.O_CREAT, permissions)
    with os.fdopen(fd, "wb") as fp:
        lock.acquire(fp, path, LockMode.EXCLUSIVE)
        fp.truncate(0)
        fp.write(content)
        fp.flush()


def publish_file(path: Path, content: bytes) -> Path:
    """Atomically create or replace `path` with `content`."""
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as fp:
            fp.write(content)
        os.replace(tmp_name, path)
    except BaseException:
        remove_file(Path(tmp_name))
        raise
    return path


def remove_file(path: Path) -> bool:
    """Delete a file if it exists. Returns True if something was removed."""
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    return True


def read_sidecar(path: Path, lock: FileLock) -> Optional[dict]:
    """
    Load the sidecar of `path`.

    Returns None when it is missing or does not hold a JSON object.
    """
    sidecar = sidecar_path(path)
    try:
        raw = read_locked(sidecar, lock)
    except FileNotFoundError:
        return None

    try:
        data = json.loads(raw.decode("utf-8"))
    except (ValueError, UnicodeDecodeError):
        return None
    return data if isinstance(data, dict) else None


def write_sidecar(path: Path, mtime: int, lock: FileLock) -> None:
    payload = json.dumps({"filemtime": mtime}, separators=(",", ":"))
    write_file(sidecar_path(path), payload.encode("utf-8"), lock)
