"""In-memory LRU cache with per-entry expiry."""

from __future__ import annotations

import hashlib
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any

DEFAULT_MAX_ENTRIES = 100
DEFAULT_TTL = 3600.0


@dataclass
class CacheEntry:
    """A cached value and the monotonic time at which it expires."""

    value: Any
    expires_at: float

    def is_expired(self) -> bool:
        return time.monotonic() > self.expires_at


class LRUCache:
    """Thread-safe LRU cache; TTLs are in seconds."""

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES, default_ttl: float = DEFAULT_TTL) -> None:
        self._max_entries = max_entries if max_entries > 0 else DEFAULT_MAX_ENTRIES
        self._default_ttl = default_ttl if default_ttl > 0 else DEFAULT_TTL
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        """Return the live value for key, or default if absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            if entry.is_expired():
                del self._entries[key]
                return default
            self._entries.move_to_end(key)
            return entry.value

    def set(self, key: str, value: Any, ttl: float = 0) -> None:
        """Store value; a ttl of 0 or less uses the default TTL."""
        if ttl <= 0:
            ttl = self._default_ttl
        entry = CacheEntry(value, time.monotonic() + ttl)
        with self._lock:
            if key in self._entries:
                self._entries[key] = entry
                self._entries.move_to_end(key)
                return
            if len(self._entries) >= self._max_entries and self._entries:
                self._entries.popitem(last=False)
            self._entries[key] = entry

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clean_expired(self) -> int:
        """Drop every expired entry and return how many were removed."""
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.is_expired()]
            for key in expired:
                del self._entries[key]
            return len(expired)


def generate_cache_key(diff: str, provider: str, model: str, prompt: str) -> str:
    """SHA-256 hex digest identifying a generation request."""
    data = f"{diff}|{provider}|{model}|{prompt}"
    return hashlib.sha256(data.encode("utf-8")).hexdigest()