from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Iterator, Optional, Tuple


@dataclass(slots=True)
class _Entry:
    key: Any
    value: Any


class BucketChain:
    """Entries sharing one hash slot, most recently inserted first."""

    __slots__ = ("_entries",)

    def __init__(self) -> None:
        self._entries: Deque[_Entry] = deque()

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __iter__(self) -> Iterator[_Entry]:
        return iter(self._entries)

    def prepend(self, entry: _Entry) -> None:
        self._entries.appendleft(entry)

    def first(self, key: Any) -> Optional[_Entry]:
        for entry in self._entries:
            if entry.key == key:
                return entry
        return None

    def remove_all(self, key: Any) -> int:
        """Drop every entry whose key equals ``key``; return how many were dropped."""

        before = len(self._entries)
        if not before:
            return 0
        kept = [entry for entry in self._entries if entry.key != key]
        removed = before - len(kept)
        if removed:
            self._entries = deque(kept)
        return removed

    def clear(self) -> None:
        self._entries.clear()

    def pairs(self) -> Iterator[Tuple[Any, Any]]:
        for entry in self._entries:
            yield entry.key, entry.value


__all__ = ["BucketChain"]
