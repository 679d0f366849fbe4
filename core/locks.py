"""
Per-part mutual exclusion for stock movements.

Every part id gets its own ``threading.Lock``, created the first time it is
asked for. Holding the lock for part 7 never blocks a movement on part 8.
"""
import logging
import threading
from contextlib import contextmanager
from typing import Dict, Hashable, Iterator, Optional

logger = logging.getLogger(__name__)


class LockAcquireTimeout(Exception):
    """Raised when a key's lock could not be taken within the timeout."""


class PartLockRegistry:
    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[Hashable, threading.Lock] = {}

    def lock_for(self, key: Hashable) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, key: Hashable, timeout: Optional[float] = None) -> Iterator[None]:
        """
        Hold the lock for ``key`` for the duration of the block.

        ``timeout=None`` waits forever; otherwise ``LockAcquireTimeout`` is
        raised once ``timeout`` seconds pass without getting the lock.
        """
        lock = self.lock_for(key)
        acquired = lock.acquire() if timeout is None else lock.acquire(timeout=timeout)
        if not acquired:
            logger.warning(f"Timed out after {timeout}s waiting for lock on {key!r}")
            raise LockAcquireTimeout(f"Failed to acquire lock for key={key!r} within timeout={timeout}s")
        try:
            yield
        finally:
            lock.release()

    def discard(self, key: Hashable) -> None:
        """Forget the lock for a key that will not be used again (a deleted part)."""
        with self._guard:
            self._locks.pop(key, None)

    def __contains__(self, key: Hashable) -> bool:
        with self._guard:
            return key in self._locks

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


# Shared by every StockLedgerService in the process
part_locks = PartLockRegistry()
