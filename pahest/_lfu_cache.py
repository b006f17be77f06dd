from collections import OrderedDict, defaultdict
from typing import DefaultDict, Dict, Generic, Iterator, Tuple, TypeVar

K = TypeVar("K")
V = TypeVar("V")

__all__ = ["LFUCache"]


class LFUCache(Generic[K, V]):
    """
    Least-frequently-used cache bounded by the total size of its values.

    Every value is put with a size; when a new value does not fit, the least
    frequently used keys are evicted (oldest first among equals) until it does.
    """

    def __init__(self, capacity: int):
        if capacity <= 0:
            raise ValueError("Capacity must be positive")

        self.capacity = capacity
        self.size = 0
        self.cache: Dict[K, Tuple[V, int, int]] = {}  # key -> (value, frequency, size)
        self.freq_count: DefaultDict[int, "OrderedDict[K, None]"] = defaultdict(OrderedDict)
        self.min_freq = 0

    def _touch(self, key: K) -> None:
        value, freq, size = self.cache[key]
        self._unlink(key, freq)
        freq += 1
        self.freq_count[freq][key] = None
        self.cache[key] = (value, freq, size)

    def _unlink(self, key: K, freq: int) -> None:
        self.freq_count[freq].pop(key)
        if not self.freq_count[freq]:
            del self.freq_count[freq]
        self.min_freq = min(self.freq_count) if self.freq_count else 0

    def get(self, key: K) -> V:
        if key in self.cache:
            self._touch(key)
            return self.cache[key][0]
        raise KeyError(f"Key {key} not found")

    def put(self, key: K, value: V, size: int = 1) -> None:
        if size > self.capacity:
            raise ValueError(f"Size {size} exceeds the capacity of {self.capacity}")

        if key in self.cache:
            _, freq, old_size = self.cache[key]
            self.cache[key] = (value, freq, size)
            self.size += size - old_size
            self._touch(key)
        else:
            self.size += size
            self.cache[key] = (value, 1, size)
            self.freq_count[1][key] = None
            self.min_freq = 1

        while self.size > self.capacity:
            self._evict(protect=key)

    def _evict(self, protect: K) -> None:
        for freq in sorted(self.freq_count):
            for candidate in self.freq_count[freq]:
                if candidate != protect:
                    self.remove_key(candidate)
                    return
        raise RuntimeError("Nothing left to evict")  # pragma: nocover

    def remove_key(self, key: K) -> None:
        if key in self.cache:
            _, freq, size = self.cache.pop(key)
            self.size -= size
            self._unlink(key, freq)

    def __contains__(self, key: object) -> bool:
        return key in self.cache

    def __len__(self) -> int:
        return len(self.cache)

    def __iter__(self) -> Iterator[K]:
        yield from self.cache
