"""Per-resource mutual exclusion for ledger writes."""

from __future__ import annotations

import threading
from contextlib import ExitStack, contextmanager
from typing import Iterator


class ResourceLocks:
    """Registry handing out one lock per resource id.

    ``hold`` takes several ids at once and always acquires in ascending
    order, so two writers touching the same pair of resources cannot
    deadlock.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[int, threading.RLock] = {}

    def _lock_for(self, resource_id: int) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(resource_id)
            if lock is None:
                lock = self._locks[resource_id] = threading.RLock()
            return lock

    @contextmanager
    def hold(self, *resource_ids: int) -> Iterator[None]:
        with ExitStack() as stack:
            for resource_id in sorted(set(resource_ids)):
                stack.enter_context(self._lock_for(resource_id))
            yield

    def forget(self, resource_id: int) -> None:
        """Drop the lock of a deleted resource."""

        with self._guard:
            self._locks.pop(resource_id, None)
