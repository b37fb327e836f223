"""Abstract keyed-collection contract that callers program against."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Generic, List, NamedTuple, Optional, TypeVar

K = TypeVar("K")
V = TypeVar("V")


class Lookup(NamedTuple):
    """Result of an exact lookup; ``value`` is ``None`` when nothing matched."""

    found: bool
    value: Optional[Any] = None


MISSING = Lookup(False, None)


class KeyedCollection(ABC, Generic[K, V]):
    """Operation set shared by keyed collections.

    Keys need a hash (consumed by hashed implementations), equality, and an
    ordering usable through ``<=``/``>=`` for range queries and sorting.
    Implementations may hold several entries under equal keys.
    """

    __slots__ = ()

    @abstractmethod
    def add(self, key: K, value: V) -> None:
        """Insert a key/value pair. Never replaces an existing entry."""

    @abstractmethod
    def remove(self, key: K) -> int:
        """Remove every entry stored under ``key``; return how many were removed."""

    @abstractmethod
    def find(self, key: K) -> Lookup:
        """Return the value stored under ``key`` wrapped in a :class:`Lookup`."""

    @abstractmethod
    def find_range(self, low: K, high: K) -> List[V]:
        """Return values whose keys satisfy ``low <= key <= high``."""

    @abstractmethod
    def keys(self) -> List[K]:
        """Return every key, one per stored entry."""

    @abstractmethod
    def sorted_keys(self) -> List[K]:
        """Return every key, one per stored entry, in ascending order."""

    @abstractmethod
    def size(self) -> int:
        """Return the number of stored entries."""

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, key: object) -> bool:
        return self.find(key).found  # type: ignore[arg-type]

    def get(self, key: K, default: Optional[V] = None) -> Optional[V]:
        found, value = self.find(key)
        return value if found else default


__all__ = ["K", "V", "KeyedCollection", "Lookup", "MISSING"]
