# core/fulltext/locking.py
"""
Exclusive index lock.

The lock is a directory inside the index directory. os.mkdir() either
creates it or fails atomically, which makes it usable across processes
without any platform specific locking API. A thread lock guards the holder
inside one process, and the holder may re-enter the lock (identifier
assignment takes it again while add_entity already holds it).
"""
import logging
import os
import threading
import time
from contextlib import nullcontext
from pathlib import Path
from typing import Callable

from config import LOCK_DIR, LOCK_RETRY_INTERVAL
from .exceptions import IndexLockError

logger = logging.getLogger(__name__)


class IndexLock:
    """Process-spanning, re-entrant lock over one index directory."""

    def __init__(self, index_dir: Path, timeout: float = 5.0, stale_after: float = 300.0,
                 clock: Callable[[], float] = time.time, sleep: Callable[[float], None] = time.sleep):
        """
        Args:
            index_dir: Index directory the lock directory lives in
            timeout: Seconds to keep retrying before giving up
            stale_after: Age in seconds after which a lock is considered abandoned
            clock: Wall clock, injectable for tests
            sleep: Sleep function, injectable for tests
        """
        self.lock_path = Path(index_dir) / LOCK_DIR
        self.timeout = timeout
        self.stale_after = stale_after
        self._clock = clock
        self._sleep = sleep
        self._thread_lock = threading.RLock()
        self._depth = 0

    @property
    def held(self) -> bool:
        return self._depth > 0

    def acquire(self):
        """Block until the lock is held, raising IndexLockError after the timeout."""
        deadline = self._clock() + self.timeout
        if not self._thread_lock.acquire(timeout=max(self.timeout, 0)):
            raise IndexLockError(f"Index lock busy in this process: {self.lock_path}")

        if self._depth > 0:
            self._depth += 1
            return

        try:
            self._acquire_directory(deadline)
        except BaseException:
            self._thread_lock.release()
            raise
        self._depth = 1

    def _acquire_directory(self, deadline: float):
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        while True:
            try:
                os.mkdir(self.lock_path)
                logger.debug(f"Acquired {self.lock_path}")
                return
            except FileExistsError:
                self._break_if_stale()
            except OSError as e:
                raise IndexLockError(f"Cannot create lock {self.lock_path}: {e}") from e

            if self._clock() >= deadline:
                raise IndexLockError(
                    f"Timed out after {self.timeout:.1f}s waiting for {self.lock_path}"
                )
            self._sleep(LOCK_RETRY_INTERVAL)

    def _break_if_stale(self):
        try:
            age = self._clock() - self.lock_path.stat().st_mtime
        except FileNotFoundError:
            return  # released meanwhile, retry right away
        if age > self.stale_after:
            logger.warning(f"Removing stale index lock {self.lock_path} ({age:.0f}s old)")
            try:
                os.rmdir(self.lock_path)
            except FileNotFoundError:
                pass

    def release(self):
        if self._depth == 0:
            raise RuntimeError("Releasing an index lock that is not held")
        self._depth -= 1
        try:
            if self._depth == 0:
                try:
                    os.rmdir(self.lock_path)
                except FileNotFoundError:
                    logger.warning(f"Index lock {self.lock_path} vanished before release")
                logger.debug(f"Released {self.lock_path}")
        finally:
            self._thread_lock.release()

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()


def locked(lock: IndexLock, require_lock: bool = True):
    """Return a context manager that takes `lock` only when required."""
    return lock if require_lock else nullcontext(lock)
