"""
Conversion Cache — memoized conversion results
===============================================

Keyed by every field of the request. Eviction is insertion-order (FIFO):
a hit does not refresh an entry.
"""

from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Optional

from urcodec.ur_types import DEFAULT_CACHE_CAPACITY


@dataclass(frozen=True)
class CacheKey:
    raw_input: str
    source_format: str
    target_format: str
    type_override: str = ""
    input_style: str = ""
    output_style: str = ""
    fountain: Any = None     # FountainParams (frozen, hashable) or None


class ConversionCache:
    """
    Usage:
        cache = ConversionCache(capacity=120)
        cache.put(key, result)
        cache.get(key)   # -> result, or None on a miss
    """

    def __init__(self, capacity: int = DEFAULT_CACHE_CAPACITY):
        if capacity < 1:
            raise ValueError("Cache capacity must be at least 1")
        self.capacity = capacity
        self._entries: "OrderedDict[CacheKey, Any]" = OrderedDict()
        self.hits = 0
        self.misses = 0

    def get(self, key: CacheKey) -> Optional[Any]:
        if key in self._entries:
            self.hits += 1
            return self._entries[key]
        self.misses += 1
        return None

    def put(self, key: CacheKey, value: Any):
        if key in self._entries:
            # Overwrite in place, keeping the original insertion slot
            self._entries[key] = value
            return
        self._entries[key] = value
        while len(self._entries) > self.capacity:
            self._entries.popitem(last=False)

    def clear(self):
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
