"""Time-to-live cache for market data lookups.

Entries are stored as ``(value, expiry)`` pairs against an injectable clock,
so tests can advance time without sleeping.
"""

import time
from typing import Any, Callable, Hashable, Optional


class TtlCache:
    """In-memory key/value store whose entries expire after *ttl_seconds*.

    Args:
        ttl_seconds: Lifetime of an entry. ``0`` disables caching.
        now: Clock returning seconds; defaults to ``time.monotonic``.
    """

    def __init__(
        self,
        ttl_seconds: float = 60.0,
        now: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._now = now
        self._entries: dict[Hashable, tuple[Any, float]] = {}

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def lookup(self, key: Hashable) -> Optional[tuple[Any, float]]:
        """Return ``(value, expiry)`` for a live entry, else ``None``.

        Expired entries are evicted on access.
        """
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._now() >= entry[1]:
            del self._entries[key]
            return None
        return entry

    def get(self, key: Hashable) -> Any:
        """Return the cached value for *key*, or ``None`` if absent/expired."""
        entry = self.lookup(key)
        return entry[0] if entry is not None else None

    def set(self, key: Hashable, value: Any) -> None:
        if self._ttl <= 0:
            return
        self._entries[key] = (value, self._now() + self._ttl)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
