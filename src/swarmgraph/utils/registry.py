"""Bounded in-memory registry with least-recently-used eviction."""

from collections import OrderedDict
from typing import Callable, Dict, Generic, Iterator, List, Optional, TypeVar

from .helpers import setup_logging

logger = setup_logging(__name__)

T = TypeVar("T")


class BoundedRegistry(Generic[T]):
    """
    Keyed store with an explicit capacity.

    Entries are kept in access order. Registering a new key while the
    registry is full evicts the least recently used entry; ``on_evict`` is
    called with the evicted key and value. Entries can also be dropped
    explicitly with :meth:`remove` or :meth:`clear`.
    """

    def __init__(
        self,
        name: str,
        capacity: int,
        on_evict: Optional[Callable[[str, T], None]] = None,
    ):
        if capacity < 1:
            raise ValueError(f"Registry capacity must be at least 1, got {capacity}")

        self.name = name
        self.capacity = capacity
        self._on_evict = on_evict
        self._entries: "OrderedDict[str, T]" = OrderedDict()
        self.evictions = 0

    def register(self, key: str, value: T) -> None:
        if key in self._entries:
            self._entries.move_to_end(key)
        self._entries[key] = value

        while len(self._entries) > self.capacity:
            old_key, old_value = self._entries.popitem(last=False)
            self.evictions += 1
            logger.warning(f"{self.name} registry full ({self.capacity}), evicted {old_key}")
            if self._on_evict:
                self._on_evict(old_key, old_value)

    def get(self, key: str) -> Optional[T]:
        value = self._entries.get(key)
        if value is not None:
            self._entries.move_to_end(key)
        return value

    def remove(self, key: str) -> Optional[T]:
        return self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def values(self) -> List[T]:
        return list(self._entries.values())

    def as_dict(self) -> Dict[str, T]:
        return dict(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))
