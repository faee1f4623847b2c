"""In-process key/value store with per-entry expiry."""

from __future__ import annotations

import time
from dataclasses import dataclass
from threading import RLock
from typing import Any, Callable

from .keys import CacheKey

Clock = Callable[[], float]

_MISSING = object()


def _as_key(key: str | CacheKey) -> str:
    return key if isinstance(key, str) else key.to_key()


@dataclass(slots=True)
class CacheEntry:
    data: Any
    written_at: float
    ttl: float

    def expired(self, now: float) -> bool:
        return now - self.written_at > self.ttl


@dataclass(slots=True)
class CacheStats:
    total_entries: int
    keys: list[str]


class TTLCache:
    """Map string keys to values that expire ``ttl`` seconds after being written.

    Reads never return an expired entry: an expired entry found on ``get`` is
    removed before returning ``None``. No operation performs I/O.
    """

    def __init__(self, default_ttl: float = 300.0, clock: Clock | None = None) -> None:
        self.default_ttl = default_ttl
        self._clock = clock or time.monotonic
        self._entries: dict[str, CacheEntry] = {}
        self._lock = RLock()

    def set(self, key: str | CacheKey, value: Any, ttl: float | None = None) -> None:
        entry = CacheEntry(value, self._clock(), self.default_ttl if ttl is None else ttl)
        with self._lock:
            self._entries[_as_key(key)] = entry

    def get(self, key: str | CacheKey, default: Any = None) -> Any:
        name = _as_key(key)
        with self._lock:
            entry = self._entries.get(name)
            if entry is None:
                return default
            if entry.expired(self._clock()):
                del self._entries[name]
                return default
            return entry.data

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, (str, CacheKey)):
            return False
        return self.get(key, _MISSING) is not _MISSING

    def delete(self, key: str | CacheKey) -> None:
        with self._lock:
            self._entries.pop(_as_key(key), None)

    def invalidate(self, pattern: str | None = None) -> int:
        """Drop every key containing ``pattern``; everything when no pattern is given."""

        with self._lock:
            if not pattern:
                removed = len(self._entries)
                self._entries.clear()
                return removed
            doomed = [name for name in self._entries if pattern in name]
            for name in doomed:
                del self._entries[name]
            return len(doomed)

    def invalidate_prefix(self, prefix: str) -> int:
        """Drop every key that starts with ``prefix``."""

        with self._lock:
            doomed = [name for name in self._entries if name.startswith(prefix)]
            for name in doomed:
                del self._entries[name]
            return len(doomed)

    def sweep_expired(self) -> int:
        now = self._clock()
        with self._lock:
            doomed = [name for name, entry in self._entries.items() if entry.expired(now)]
            for name in doomed:
                del self._entries[name]
        return len(doomed)

    def clear(self) -> None:
        self.invalidate()

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(total_entries=len(self._entries), keys=list(self._entries))

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


__all__ = ["CacheEntry", "CacheStats", "Clock", "TTLCache"]
