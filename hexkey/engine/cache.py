from collections import OrderedDict
from typing import Hashable, Optional, Tuple


class LRUCache:
    """简单 LRU 缓存（也用作有上限的会话表）"""
    def __init__(self, capacity: int = 256):
        self.capacity = capacity
        self.cache = OrderedDict()
        self.hits = 0
        self.misses = 0

    def get(self, key: Hashable):
        if key in self.cache:
            self.hits += 1
            self.cache.move_to_end(key)
            return self.cache[key]
        self.misses += 1
        return None

    def put(self, key: Hashable, value) -> Optional[Tuple[Hashable, object]]:
        """写入，返回被挤出的 (key, value)；没有挤出时返回 None"""
        if self.capacity <= 0:
            return None
        evicted = None
        if key in self.cache:
            self.cache.move_to_end(key)
        elif len(self.cache) >= self.capacity:
            evicted = self.cache.popitem(last=False)
        self.cache[key] = value
        return evicted

    def pop(self, key: Hashable, default=None):
        return self.cache.pop(key, default)

    def values(self):
        return list(self.cache.values())

    def clear(self):
        self.cache.clear()

    def __contains__(self, key: Hashable) -> bool:
        return key in self.cache

    def __len__(self):
        return len(self.cache)

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0
