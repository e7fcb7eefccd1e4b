"""Per-snapshot memoization of structural metrics.

Entries are keyed by snapshot id and stay valid while two things hold: the
entry is younger than the TTL, and the caller's call-edge hash matches the
one the entry was computed from.  Any mismatch is a miss and the stale entry
is dropped.

Thread-safe: a store-wide lock guards the entry map, and ``get_or_compute``
takes a per-snapshot lock so concurrent misses for one snapshot compute once.
"""

from __future__ import annotations

import hashlib
import logging
import threading
import time
from typing import Any, Callable, Iterable

from structura.defaults import CACHE_TTL_SECONDS
from structura.models import CacheEntry, CallEdge, StructuralMetrics
from structura.observability import record_cache_hit, record_cache_miss

log = logging.getLogger("structura.cache")


def hash_call_edges(edges: Iterable[CallEdge]) -> str:
    """Order-independent SHA-256 of sorted ``caller->callee`` lines."""
    h = hashlib.sha256()
    for line in sorted(f"{e.caller_id}->{e.callee_id or ''}" for e in edges):
        h.update(line.encode())
        h.update(b"\n")
    return h.hexdigest()


class StructuralCache:
    """TTL cache of StructuralMetrics keyed by snapshot id.

    Parameters
    ----------
    ttl_seconds:
        Age at which an entry is treated as absent.
    clock:
        Monotonic time source; injectable for tests.
    """

    def __init__(
        self,
        ttl_seconds: float = CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        # snapshot id -> (compute lock, callers currently holding or waiting on it)
        self._key_locks: dict[str, tuple[threading.Lock, int]] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.created_at >= self.ttl_seconds

    def get(self, snapshot_id: str, edges_hash: str) -> StructuralMetrics | None:
        """Cached metrics, or None on absence, expiry or hash mismatch."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(snapshot_id)
            if entry is not None and (self._expired(entry, now) or entry.edges_hash != edges_hash):
                del self._entries[snapshot_id]
                entry = None
        if entry is None:
            record_cache_miss()
            log.debug("Structural cache miss for %s", snapshot_id,
                      extra={"snapshot_id": snapshot_id})
            return None
        record_cache_hit()
        log.debug("Structural cache hit for %s", snapshot_id,
                  extra={"snapshot_id": snapshot_id})
        return entry.metrics

    def put(self, snapshot_id: str, edges_hash: str, metrics: StructuralMetrics) -> None:
        """Store an entry and sweep out everything that has expired."""
        now = self._clock()
        with self._lock:
            self._entries[snapshot_id] = CacheEntry(
                metrics=metrics, created_at=now, edges_hash=edges_hash)
            stale = [k for k, e in self._entries.items() if self._expired(e, now)]
            for k in stale:
                del self._entries[k]
        if stale:
            log.debug("Evicted %d expired structural cache entries", len(stale))

    def get_or_compute(
        self,
        snapshot_id: str,
        edges_hash: str,
        compute: Callable[[], StructuralMetrics],
    ) -> StructuralMetrics:
        """Return cached metrics or run ``compute`` once per snapshot.

        Failed analyses (``analysis_error`` set) are returned but not cached.
        """
        key_lock = self._acquire_key_lock(snapshot_id)
        try:
            with key_lock:
                cached = self.get(snapshot_id, edges_hash)
                if cached is not None:
                    return cached
                metrics = compute()
                if metrics.analysis_error is None:
                    self.put(snapshot_id, edges_hash, metrics)
                return metrics
        finally:
            self._release_key_lock(snapshot_id)

    def _acquire_key_lock(self, snapshot_id: str) -> threading.Lock:
        with self._lock:
            key_lock, users = self._key_locks.get(snapshot_id, (None, 0))
            if key_lock is None:
                key_lock = threading.Lock()
            self._key_locks[snapshot_id] = (key_lock, users + 1)
            return key_lock

    def _release_key_lock(self, snapshot_id: str) -> None:
        with self._lock:
            key_lock, users = self._key_locks[snapshot_id]
            if users <= 1:
                del self._key_locks[snapshot_id]
            else:
                self._key_locks[snapshot_id] = (key_lock, users - 1)

    def invalidate(self, snapshot_id: str) -> bool:
        with self._lock:
            return self._entries.pop(snapshot_id, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> dict[str, Any]:
        now = self._clock()
        with self._lock:
            return {
                "size": len(self._entries),
                "entries": [
                    {"snapshot_id": k, "age": now - e.created_at}
                    for k, e in self._entries.items()
                ],
            }
