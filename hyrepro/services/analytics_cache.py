"""
Analytics Response Cache
Bounded TTL cache with single-flight loading: concurrent misses for the
same key wait on one loader call instead of each hitting the database
"""
import logging
import threading
import time
from collections import OrderedDict
from concurrent.futures import Future
from typing import Any, Callable, Dict, Hashable, Optional

logger = logging.getLogger(__name__)


class AnalyticsCache:
    """
    - entries expire `ttl` seconds after they were loaded
    - at most `max_entries` live entries, least recently used evicted first
    - a failed load is raised to every waiter and leaves nothing cached
    """

    def __init__(self, ttl: float = 300.0, max_entries: int = 256, clock: Callable[[], float] = time.monotonic):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.ttl = ttl
        self.max_entries = max_entries
        self.clock = clock
        self._entries: "OrderedDict[Hashable, tuple]" = OrderedDict()
        self._inflight: Dict[Hashable, Future] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0
        self.loads = 0

    def _live_value(self, key: Hashable, now: float):
        entry = self._entries.get(key)
        if entry is None:
            return False, None
        value, loaded_at = entry
        if now - loaded_at >= self.ttl:
            del self._entries[key]
            return False, None
        self._entries.move_to_end(key)
        return True, value

    def get(self, key: Hashable) -> Optional[Any]:
        with self._lock:
            found, value = self._live_value(key, self.clock())
            return value if found else None

    def get_or_load(self, key: Hashable, loader: Callable[[], Any]) -> Any:
        with self._lock:
            found, value = self._live_value(key, self.clock())
            if found:
                self.hits += 1
                return value

            self.misses += 1
            future = self._inflight.get(key)
            leader = future is None
            if leader:
                future = Future()
                self._inflight[key] = future

        if not leader:
            logger.debug("Waiting on in-flight load for %s", key)
            return future.result()

        try:
            value = loader()
        except BaseException as e:
            with self._lock:
                if self._inflight.get(key) is future:
                    del self._inflight[key]
            future.set_exception(e)
            raise

        with self._lock:
            self.loads += 1
            # An invalidate() during the load drops the in-flight marker; don't cache then
            if self._inflight.get(key) is future:
                del self._inflight[key]
                self._store(key, value)
        future.set_result(value)
        return value

    def _store(self, key: Hashable, value: Any):
        self._entries[key] = (value, self.clock())
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Evicted analytics cache entry %s", evicted)

    def invalidate(self, key: Hashable):
        with self._lock:
            self._entries.pop(key, None)
            self._inflight.pop(key, None)

    def invalidate_prefix(self, prefix: str) -> int:
        with self._lock:
            keys = [k for k in self._entries if isinstance(k, str) and k.startswith(prefix)]
            for k in keys:
                del self._entries[k]
            for k in [k for k in self._inflight if isinstance(k, str) and k.startswith(prefix)]:
                del self._inflight[k]
            return len(keys)

    def clear(self):
        with self._lock:
            self._entries.clear()
            self._inflight.clear()

    def __len__(self):
        with self._lock:
            return len(self._entries)

    def stats(self) -> dict:
        with self._lock:
            return {
                "entries": len(self._entries),
                "max_entries": self.max_entries,
                "ttl_seconds": self.ttl,
                "hits": self.hits,
                "misses": self.misses,
                "loads": self.loads,
                "in_flight": len(self._inflight),
            }
