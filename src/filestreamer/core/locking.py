"""
=============================================================================
ADVISORY FILE LOCKING
=============================================================================

Readers take SHARED locks, writers take EXCLUSIVE locks. Both are
non-blocking and retried with a randomized backoff until a fixed
ceiling is reached.

=============================================================================
ADVISORY LOCKS
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       flock() COMPATIBILITY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │                     Held: none     Held: SHARED    Held: EXCLUSIVE  │
    │   Want SHARED       granted        granted         retry            │
    │   Want EXCLUSIVE    granted        retry           retry            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The OS does not stop an unaware process from reading or writing a
locked file. The lock only coordinates programs that ask for it.

=============================================================================
RETRY LOOP
=============================================================================

    attempt 1 ──► LOCK_NB fails ──► sleep random(0.1s, 1.0s)
    attempt 2 ──► LOCK_NB fails ──► sleep random(0.1s, 1.0s)
       ...
    attempt 20 ─► LOCK_NB fails ──► StreamError(LOCK_TIMEOUT)

Randomized sleeps keep two waiting processes from retrying in lockstep.

The lock is released by closing the file handle, so a `with open(...)`
block around acquire() is all a caller needs.

=============================================================================
"""

import fcntl
import logging
import random
import time
from enum import Enum
from pathlib import Path
from typing import Callable, IO, Union

from ..errors import ErrKind, StreamError


logger = logging.getLogger(__name__)


class LockMode(Enum):
    SHARED = fcntl.LOCK_SH
    EXCLUSIVE = fcntl.LOCK_EX


class FileLock:
    """
    Bounded-retry advisory lock on an open file.

    =========================================================================
    USAGE
    =========================================================================

        lock = FileLock(max_attempts=20, min_delay=0.1, max_delay=1.0)

        with open(path, "rb") as fp:
            lock.acquire(fp, path, LockMode.SHARED)
            data = fp.read()
        # closing the file released the lock

    `sleep` and `jitter` are injectable so tests can run the retry loop
    without waiting.

    =========================================================================
    """

    def __init__(
        self,
        max_attempts: int = 20,
        min_delay: float = 0.1,
        max_delay: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
        jitter: Callable[[float, float], float] = random.uniform,
    ):
        self.max_attempts = max_attempts
        self.min_delay = min_delay
        self.max_delay = max_delay
        self._sleep = sleep
        self._jitter = jitter

    @classmethod
    def from_config(cls, config) -> "FileLock":
        return cls(
            max_attempts=config.lock_max_attempts,
            min_delay=config.lock_min_delay,
            max_delay=config.lock_max_delay,
        )

    def acquire(self, fp: IO, path: Union[str, Path], mode: LockMode = LockMode.SHARED) -> int:
        """
        Acquire the lock, retrying while another process holds a conflicting one.

        Args:
            fp: Open file object (anything with fileno()).
            path: Path of the file, for error messages.
            mode: LockMode.SHARED for readers, LockMode.EXCLUSIVE for writers.

        Returns:
            Number of attempts it took.

        Raises:
            StreamError(LOCK_TIMEOUT): Still contended after max_attempts.
            StreamError(IO_FAILURE): flock() failed for a reason other
                than contention.
        """
        flags = mode.value | fcntl.LOCK_NB

        for attempt in range(1, self.max_attempts + 1):
            try:
                fcntl.flock(fp.fileno(), flags)
                return attempt
            except BlockingIOError:
                if attempt == self.max_attempts:
                    break
                delay = self._jitter(self.min_delay, self.max_delay)
                logger.debug(f"Lock busy on {path}, attempt {attempt}, retrying in {delay:.3f}s")
                self._sleep(delay)
            except OSError as e:
                raise StreamError(f"Unable to lock file: {e}", ErrKind.IO_FAILURE, path) from e

        raise StreamError(
            "Unable to obtain file lock (timeout reached)",
            ErrKind.LOCK_TIMEOUT,
            path,
        )
