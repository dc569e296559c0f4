"""
=============================================================================
CORE PACKAGE
=============================================================================

Low-level filesystem pieces the streamer is built on:

    locking.py   FileLock - advisory flock() with bounded randomized retry
    files.py     FileMeta snapshots, sidecar JSON, locked and atomic writes

=============================================================================
"""

from .locking import FileLock, LockMode
from .files import FileMeta, publish_file, read_sidecar, remove_file, write_sidecar

__all__ = [
    "FileLock",     # Shared/exclusive lock with retry
    "LockMode",     # SHARED or EXCLUSIVE
    "FileMeta",     # size/mtime/extension snapshot
    "publish_file",
    "read_sidecar",
    "remove_file",
    "write_sidecar",
]
