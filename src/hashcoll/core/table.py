from __future__ import annotations

import copy
import logging
from typing import Any, Callable, Dict, Iterator, List, Tuple

from hashcoll.contracts.collection import MISSING, KeyedCollection, Lookup
from hashcoll.core.chain import BucketChain, _Entry

logger = logging.getLogger("hashcoll")

DEFAULT_CAPACITY = 16
DEFAULT_LOAD_FACTOR_THRESHOLD = 0.75
DEFAULT_LARGE_TABLE_WARN_THRESHOLD = 1_000_000


class HashTableCollection(KeyedCollection[Any, Any]):
    """Separate-chaining hash table with multimap semantics.

    ``add`` never looks for an existing key, so equal keys may coexist.
    ``find`` returns the most recently added of them, ``remove`` drops all
    of them. The table doubles its slot array whenever the load factor
    would pass ``load_factor_threshold`` and never shrinks.
    """

    __slots__ = (
        "_chains",
        "_cap",
        "_initial_cap",
        "_size",
        "_threshold",
        "_hash_fn",
        "_resizes",
        "_large_warn",
    )

    def __init__(
        self,
        initial_capacity: int = DEFAULT_CAPACITY,
        load_factor_threshold: float = DEFAULT_LOAD_FACTOR_THRESHOLD,
        hash_fn: Callable[[Any], int] = hash,
        *,
        large_table_warn_threshold: int = DEFAULT_LARGE_TABLE_WARN_THRESHOLD,
    ) -> None:
        if initial_capacity < 1:
            raise ValueError("initial_capacity must be >= 1")
        if not load_factor_threshold > 0.0:
            raise ValueError("load_factor_threshold must be > 0")
        if not callable(hash_fn):
            raise TypeError("hash_fn must be callable")
        self._cap = int(initial_capacity)
        self._initial_cap = self._cap
        self._threshold = float(load_factor_threshold)
        self._hash_fn = hash_fn
        self._large_warn = large_table_warn_threshold
        self._chains: List[BucketChain] = [BucketChain() for _ in range(self._cap)]
        self._size = 0
        self._resizes = 0

    # ------------------------------------------------------------------
    # table core
    # ------------------------------------------------------------------
    @property
    def capacity(self) -> int:
        return self._cap

    @property
    def load_factor_threshold(self) -> float:
        return self._threshold

    @property
    def hash_fn(self) -> Callable[[Any], int]:
        return self._hash_fn

    @property
    def resizes(self) -> int:
        """Number of resize-and-rehash passes since construction."""

        return self._resizes

    def size(self) -> int:
        return self._size

    def load_factor(self) -> float:
        return self._size / self._cap

    def slot_for(self, key: Any) -> int:
        return self._slot_index(key, self._cap)

    def _slot_index(self, key: Any, capacity: int) -> int:
        # Python's modulo keeps negative hashes inside [0, capacity).
        return self._hash_fn(key) % capacity

    def _new_empty(self) -> "HashTableCollection":
        return HashTableCollection(
            initial_capacity=self._initial_cap,
            load_factor_threshold=self._threshold,
            hash_fn=self._hash_fn,
            large_table_warn_threshold=self._large_warn,
        )

    # ------------------------------------------------------------------
    # entry operations
    # ------------------------------------------------------------------
    def add(self, key: Any, value: Any) -> None:
        if (self._size + 1) / self._cap > self._threshold:
            self._resize_and_rehash()
        self._chains[self._slot_index(key, self._cap)].prepend(_Entry(key, value))
        self._size += 1

    def remove(self, key: Any) -> int:
        removed = self._chains[self._slot_index(key, self._cap)].remove_all(key)
        self._size -= removed
        return removed

    def find(self, key: Any) -> Lookup:
        entry = self._chains[self._slot_index(key, self._cap)].first(key)
        if entry is None:
            return MISSING
        return Lookup(True, entry.value)

    def find_range(self, low: Any, high: Any) -> List[Any]:
        if high < low:
            return []
        values: List[Any] = []
        for chain in self._chains:
            for entry in chain:
                if entry.key >= low and entry.key <= high:
                    values.append(entry.value)
        return values

    def keys(self) -> List[Any]:
        return [entry.key for chain in self._chains for entry in chain]

    def sorted_keys(self) -> List[Any]:
        all_keys = self.keys()
        all_keys.sort()
        return all_keys

    def items(self) -> Iterator[Tuple[Any, Any]]:
        for chain in self._chains:
            yield from chain.pairs()

    def __iter__(self) -> Iterator[Any]:
        for chain in self._chains:
            for entry in chain:
                yield entry.key

    def iter_slots(self) -> Iterator[Tuple[int, List[Tuple[Any, Any]]]]:
        """Yield ``(slot_index, [(key, value), ...])`` for every slot, chain order."""

        for idx, chain in enumerate(self._chains):
            yield idx, list(chain.pairs())

    def chain_lengths(self) -> List[int]:
        return [len(chain) for chain in self._chains]

    # ------------------------------------------------------------------
    # growth engine
    # ------------------------------------------------------------------
    def _resize_and_rehash(self) -> None:
        old_cap = self._cap
        new_cap = old_cap * 2
        if self._size >= self._large_warn:
            logger.warning("Large table rehash starting (size=%d, capacity=%d)", self._size, new_cap)
        new_chains = [BucketChain() for _ in range(new_cap)]
        for chain in self._chains:
            # Oldest first so equal keys keep newest-first order after prepending.
            for entry in reversed(list(chain)):
                new_chains[self._slot_index(entry.key, new_cap)].prepend(entry)
        self._chains = new_chains
        self._cap = new_cap
        self._resizes += 1
        logger.debug("Resized table %d -> %d (size=%d)", old_cap, new_cap, self._size)

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------
    def clear(self) -> None:
        """Drop every entry; capacity is kept."""

        for chain in self._chains:
            chain.clear()
        self._size = 0

    def assign(self, other: "HashTableCollection") -> "HashTableCollection":
        """Replace this table's contents with an independent copy of ``other``."""

        if other is self:
            return self
        self.clear()
        for chain in other._chains:
            for entry in reversed(list(chain)):
                self.add(entry.key, entry.value)
        return self

    def copy(self) -> "HashTableCollection":
        return self._new_empty().assign(self)

    def __copy__(self) -> "HashTableCollection":
        return self.copy()

    def __deepcopy__(self, memo: Dict[int, Any]) -> "HashTableCollection":
        clone = self._new_empty()
        memo[id(self)] = clone
        for chain in self._chains:
            for entry in reversed(list(chain)):
                clone.add(copy.deepcopy(entry.key, memo), copy.deepcopy(entry.value, memo))
        return clone

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(size={self._size}, capacity={self._cap}, "
            f"load_factor_threshold={self._threshold})"
        )


__all__ = [
    "DEFAULT_CAPACITY",
    "DEFAULT_LARGE_TABLE_WARN_THRESHOLD",
    "DEFAULT_LOAD_FACTOR_THRESHOLD",
    "HashTableCollection",
]
