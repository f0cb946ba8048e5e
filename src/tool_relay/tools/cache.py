"""Result caching for tool executions to avoid redundant calls."""

from __future__ import annotations

import hashlib
import json
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

__all__ = ["ToolCache", "cache_key"]


@dataclass(slots=True)
class _CacheEntry:
    result: Any
    error: Optional[BaseException]
    timestamp: float


def cache_key(name: str, arguments: dict[str, Any]) -> str:
    """
    Deterministic key for a (tool name, arguments) pair.

    Arguments are serialised with sorted keys, so maps that differ only in
    insertion order produce the same key.

    Raises:
        TypeError: The arguments are not JSON serialisable.
        ValueError: The arguments contain circular references or NaN-like
            values that JSON cannot represent.
    """
    canonical = json.dumps(
        arguments, sort_keys=True, separators=(",", ":"), ensure_ascii=False, allow_nan=False
    )
    digest = hashlib.sha256()
    digest.update(name.encode("utf-8"))
    digest.update(b"\x00")
    digest.update(canonical.encode("utf-8"))
    return digest.hexdigest()


class ToolCache:
    """
    TTL cache of tool outcomes (result or error), bounded by entry count.

    Expired entries count as misses but are only removed when they become the
    oldest entry at eviction time. Lookups update the hit/miss counters, so
    every operation holds the same lock.
    """

    def __init__(
        self,
        ttl: float,
        max_size: int,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self.ttl = ttl
        self.max_size = max_size
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, _CacheEntry] = {}
        self._hits = 0
        self._misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, name: str, arguments: dict[str, Any]) -> tuple[Any, Optional[BaseException], bool]:
        """Return ``(result, error, found)`` for a cached, unexpired call."""
        try:
            key = cache_key(name, arguments)
        except (TypeError, ValueError):
            return None, None, False

        with self._lock:
            entry = self._entries.get(key)
            if entry is None or self._clock() - entry.timestamp > self.ttl:
                self._misses += 1
                return None, None, False
            self._hits += 1
            return entry.result, entry.error, True

    def set(
        self,
        name: str,
        arguments: dict[str, Any],
        result: Any,
        error: Optional[BaseException] = None,
    ) -> None:
        """Store the outcome of a call, evicting the oldest entry when full."""
        try:
            key = cache_key(name, arguments)
        except (TypeError, ValueError):
            return  # uncacheable arguments

        with self._lock:
            if key not in self._entries and len(self._entries) >= self.max_size:
                oldest = min(self._entries, key=lambda k: self._entries[k].timestamp)
                del self._entries[oldest]
            self._entries[key] = _CacheEntry(result, error, self._clock())

    def stats(self) -> tuple[int, int]:
        """Return ``(hits, misses)``."""
        with self._lock:
            return self._hits, self._misses

    def clear(self) -> None:
        """Drop all entries and reset the statistics."""
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0
