from __future__ import annotations

from collections import defaultdict
from typing import Any, Dict, List, Tuple

from hashcoll.core.table import HashTableCollection


def chain_length_histogram(table: HashTableCollection) -> List[List[int]]:
    histogram: Dict[int, int] = defaultdict(int)
    for length in table.chain_lengths():
        histogram[length] += 1
    return [[length, slots] for length, slots in sorted(histogram.items())]


def table_stats(table: HashTableCollection) -> Dict[str, Any]:
    lengths = table.chain_lengths()
    return {
        "size": table.size(),
        "capacity": table.capacity,
        "load_factor": table.load_factor(),
        "load_factor_threshold": table.load_factor_threshold,
        "resizes": table.resizes,
        "empty_slots": sum(1 for length in lengths if length == 0),
        "longest_chain": max(lengths) if lengths else 0,
    }


def verify_table(table: HashTableCollection, verbose: bool = False) -> Tuple[bool, List[str]]:
    """Check the structural invariants of ``table``.

    Returns ``(ok, messages)``; messages describe each violation and, when
    ``verbose`` is set, a one-line summary of the table.
    """

    msgs: List[str] = []
    ok = True
    if table.capacity < 1:
        ok = False
        msgs.append(f"Capacity must be >= 1, got {table.capacity}")

    total = 0
    misplaced = 0
    for idx, pairs in table.iter_slots():
        total += len(pairs)
        for key, _value in pairs:
            expected = table.slot_for(key)
            if expected != idx:
                misplaced += 1
                if misplaced <= 10:
                    msgs.append(f"Key {key!r} stored in slot {idx}, expected {expected}")
    if misplaced:
        ok = False
        msgs.append(f"Misplaced entries: {misplaced}")
    if total != table.size():
        ok = False
        msgs.append(f"Size mismatch: size={table.size()}, summed={total}")

    if verbose:
        stats = table_stats(table)
        msgs.append(
            f"Capacity={stats['capacity']}, Size={stats['size']}, "
            f"LF={stats['load_factor']:.3f}, LongestChain={stats['longest_chain']}, "
            f"Resizes={stats['resizes']}"
        )
    return ok, msgs


__all__ = ["chain_length_histogram", "table_stats", "verify_table"]
