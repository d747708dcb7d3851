import threading
import uuid
from contextlib import contextmanager
from typing import Dict, Iterator, List

import structlog

from ..core.errors import StoreUnavailable

logger = structlog.get_logger(__name__)


class OwnerLockRegistry:
    """In-process mutual exclusion for writes to one owner's task list.

    Writes for different owners never wait on each other. Waiting is bounded:
    if the lock is not acquired within ``timeout`` seconds the caller gets
    ``StoreUnavailable`` instead of hanging. An owner's entry is dropped once
    nobody holds or waits on it, so the registry only grows with concurrent
    writers.
    """

    def __init__(self) -> None:
        # owner id -> [lock, number of callers holding or waiting]
        self._locks: Dict[uuid.UUID, List] = {}
        self._guard = threading.Lock()

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def _checkout(self, owner_id: uuid.UUID) -> threading.Lock:
        with self._guard:
            entry = self._locks.get(owner_id)
            if entry is None:
                entry = self._locks[owner_id] = [threading.Lock(), 0]
            entry[1] += 1
            return entry[0]

    def _checkin(self, owner_id: uuid.UUID) -> None:
        with self._guard:
            entry = self._locks[owner_id]
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[owner_id]

    @contextmanager
    def hold(self, owner_id: uuid.UUID, timeout: float) -> Iterator[None]:
        lock = self._checkout(owner_id)
        try:
            if not lock.acquire(timeout=timeout):
                logger.warning("owner lock timeout", owner_id=str(owner_id), timeout=timeout)
                raise StoreUnavailable("Timed out waiting for another change to this task list")
            try:
                yield
            finally:
                lock.release()
        finally:
            self._checkin(owner_id)


owner_locks = OwnerLockRegistry()
