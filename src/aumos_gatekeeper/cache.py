"""Optional read-through cache for effective grants.

The cache is keyed by subject id. :class:`Gatekeeper` invalidates a
subject's entry synchronously inside every mutation that changes that
subject's roles, groups or direct grants. Evaluation is correct with no
cache at all, which is the default.

Thread-safety is achieved with a threading.Lock.
"""
from __future__ import annotations

import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Protocol, runtime_checkable

from aumos_gatekeeper.permissions.resolver import ConditionalGrant


@runtime_checkable
class PermissionCache(Protocol):
    """Cache of effective grant lists keyed by subject id."""

    def get(self, subject_id: str) -> list[ConditionalGrant] | None: ...

    def set(self, subject_id: str, grants: list[ConditionalGrant]) -> None: ...

    def invalidate(self, subject_id: str) -> None: ...

    def clear(self) -> None: ...


class TTLPermissionCache:
    """Bounded time-to-live cache.

    Parameters
    ----------
    ttl_seconds:
        Lifetime of an entry. Must be positive.
    max_entries:
        Upper bound on stored subjects; the oldest entry is evicted first.
    clock:
        Monotonic clock, injectable for tests.
    """

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        max_entries: int = 1024,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive; got {ttl_seconds!r}.")
        if max_entries < 1:
            raise ValueError(f"max_entries must be at least 1; got {max_entries!r}.")
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, list[ConditionalGrant]]] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, subject_id: str) -> list[ConditionalGrant] | None:
        with self._lock:
            entry = self._entries.get(subject_id)
            if entry is None:
                return None
            expires_at, grants = entry
            if self._clock() >= expires_at:
                del self._entries[subject_id]
                return None
            return list(grants)

    def set(self, subject_id: str, grants: list[ConditionalGrant]) -> None:
        with self._lock:
            self._entries.pop(subject_id, None)
            self._entries[subject_id] = (self._clock() + self._ttl, list(grants))
            while len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)

    def invalidate(self, subject_id: str) -> None:
        with self._lock:
            self._entries.pop(subject_id, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def ttl_seconds(self) -> float:
        return self._ttl
