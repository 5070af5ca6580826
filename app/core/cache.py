import time
from collections import OrderedDict
from typing import Any, Callable, Hashable, Optional, Tuple


class TTLCache:
    """
    Bounded in-memory cache with least-recently-used eviction.

    Every entry expires `ttl_seconds` after it was stored, whether or not it is
    read in the meantime. Reads refresh recency only. Lives for the process
    lifetime; nothing is persisted.
    """

    def __init__(
        self,
        max_entries: int = 500,
        ttl_seconds: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")

        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        # key -> (expires_at, value), oldest access first
        self._entries: "OrderedDict[Hashable, Tuple[float, Any]]" = OrderedDict()

    def get(self, key: Hashable) -> Optional[Any]:
        item = self._entries.get(key)
        if item is None:
            return None

        expires_at, value = item
        if expires_at <= self._clock():
            del self._entries[key]
            return None

        # refresh LRU
        self._entries.move_to_end(key)
        return value

    def set(self, key: Hashable, value: Any) -> None:
        self._entries[key] = (self._clock() + self.ttl_seconds, value)
        self._entries.move_to_end(key)

        # trim
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: Hashable) -> bool:
        item = self._entries.get(key)
        return item is not None and item[0] > self._clock()

    def __len__(self) -> int:
        return len(self._entries)
