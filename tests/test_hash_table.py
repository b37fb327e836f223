from __future__ import annotations

import copy
import logging
from collections import Counter

import pytest

from hashcoll import HashTableCollection, KeyedCollection, Lookup
from hashcoll.core.diagnostics import verify_table


def _table(*pairs: tuple[object, object], **kwargs: object) -> HashTableCollection:
    table = HashTableCollection(**kwargs)  # type: ignore[arg-type]
    for key, value in pairs:
        table.add(key, value)
    return table


def test_new_table_is_empty_with_default_capacity() -> None:
    table = HashTableCollection()
    assert table.size() == 0
    assert len(table) == 0
    assert table.capacity == 16
    assert table.load_factor_threshold == pytest.approx(0.75)
    assert table.keys() == []
    assert table.sorted_keys() == []
    assert table.find("anything") == Lookup(False, None)
    assert isinstance(table, KeyedCollection)


@pytest.mark.parametrize(
    "kwargs,exc",
    [
        ({"initial_capacity": 0}, ValueError),
        ({"initial_capacity": -4}, ValueError),
        ({"load_factor_threshold": 0.0}, ValueError),
        ({"load_factor_threshold": -0.5}, ValueError),
        ({"hash_fn": 42}, TypeError),
    ],
)
def test_constructor_rejects_bad_arguments(kwargs: dict[str, object], exc: type[Exception]) -> None:
    with pytest.raises(exc):
        HashTableCollection(**kwargs)  # type: ignore[arg-type]


def test_add_and_find() -> None:
    table = _table(("a", 1), ("b", 2))
    assert table.find("a") == (True, 1)
    assert table.find("b") == Lookup(True, 2)
    found, value = table.find("c")
    assert found is False and value is None
    assert "a" in table
    assert "c" not in table
    assert table.get("b") == 2
    assert table.get("c", "fallback") == "fallback"


def test_find_distinguishes_stored_none_from_missing() -> None:
    table = _table(("k", None))
    assert table.find("k") == (True, None)
    assert "k" in table


def test_duplicates_are_kept_and_find_returns_most_recent() -> None:
    table = _table(("k", 1), ("k", 2), ("k", 3))
    assert table.size() == 3
    assert table.find("k") == (True, 3)
    assert table.keys() == ["k", "k", "k"]


def test_remove_drops_every_match() -> None:
    table = _table(("k", 1), ("x", 9), ("k", 2))
    assert table.remove("k") == 2
    assert table.size() == 1
    assert table.find("k").found is False
    assert table.find("x") == (True, 9)


def test_remove_missing_key_is_a_noop() -> None:
    table = _table(("a", 1))
    assert table.remove("zzz") == 0
    assert table.size() == 1
    empty = HashTableCollection()
    assert empty.remove("zzz") == 0
    assert empty.size() == 0


def test_remove_within_colliding_chain() -> None:
    table = HashTableCollection(hash_fn=lambda _key: 7)
    for key in ["first", "second", "third", "fourth"]:
        table.add(key, key.upper())
    # chain order is fourth, third, second, first
    assert table.remove("fourth") == 1  # head
    assert table.remove("second") == 1  # interior
    assert table.remove("first") == 1  # tail
    assert table.keys() == ["third"]
    assert table.remove("third") == 1
    assert table.size() == 0
    assert table.chain_lengths()[7 % table.capacity] == 0


def test_find_range_inclusive_and_unsorted_contract() -> None:
    table = _table(*((i, f"v{i}") for i in range(20)))
    values = table.find_range(5, 9)
    assert Counter(values) == Counter(f"v{i}" for i in range(5, 10))
    assert table.find_range(5, 5) == ["v5"]
    assert table.find_range(100, 200) == []


def test_find_range_with_reversed_bounds_is_empty() -> None:
    table = _table(*((i, i) for i in range(10)))
    assert table.find_range(8, 2) == []


def test_find_range_includes_duplicates() -> None:
    table = _table(("b", 1), ("b", 2), ("a", 3), ("d", 4))
    assert sorted(table.find_range("a", "c")) == [1, 2, 3]


def test_find_range_follows_slot_then_chain_order() -> None:
    table = HashTableCollection(hash_fn=lambda key: key // 10)
    for key in [11, 1, 12, 2]:
        table.add(key, key)
    # slot 0 holds 2, 1 (newest first); slot 1 holds 12, 11
    assert table.find_range(0, 100) == [2, 1, 12, 11]
    assert table.keys() == [2, 1, 12, 11]


def test_keys_and_sorted_keys_are_the_same_multiset() -> None:
    pairs = [(k, k * 10) for k in [5, 3, 9, 3, 1, 7, 5]]
    table = _table(*pairs)
    keys = table.keys()
    assert len(keys) == table.size()
    assert Counter(keys) == Counter(k for k, _ in pairs)
    assert table.sorted_keys() == sorted(k for k, _ in pairs)
    assert list(table) == keys
    assert sorted(table.items()) == sorted(pairs)


def test_growth_doubles_capacity_after_threshold() -> None:
    table = HashTableCollection()
    for key in range(12):
        table.add(key, key * 100)
    assert table.capacity == 16
    assert table.resizes == 0

    table.add(12, 1200)
    assert table.capacity == 32
    assert table.resizes == 1
    assert table.size() == 13
    for key in range(13):
        assert table.find(key) == (True, key * 100)
    ok, messages = verify_table(table)
    assert ok, messages


def test_growth_preserves_every_pair_across_several_resizes() -> None:
    table = HashTableCollection(initial_capacity=1)
    for key in range(500):
        table.add(f"k{key}", key)
    assert table.size() == 500
    assert table.capacity >= 500 / 0.75
    assert table.capacity & (table.capacity - 1) == 0
    assert sorted(table.items(), key=lambda kv: kv[1]) == [(f"k{i}", i) for i in range(500)]
    ok, messages = verify_table(table)
    assert ok, messages


def test_growth_keeps_newest_duplicate_first() -> None:
    table = HashTableCollection(initial_capacity=2)
    table.add("dup", "old")
    table.add("dup", "new")
    for i in range(50):
        table.add(i, i)
    assert table.resizes > 0
    assert table.find("dup") == (True, "new")


def test_failed_rehash_leaves_table_intact() -> None:
    failing = {"on": False}

    def flaky_hash(key: int) -> int:
        if failing["on"] and key == 1:
            raise RuntimeError("hash unavailable")
        return key

    table = HashTableCollection(initial_capacity=4, hash_fn=flaky_hash)
    for key in range(3):
        table.add(key, f"v{key}")
    failing["on"] = True
    with pytest.raises(RuntimeError):
        table.add(3, "v3")
    failing["on"] = False

    assert table.capacity == 4
    assert table.resizes == 0
    assert table.size() == 3
    assert [table.find(key) for key in range(3)] == [(True, "v0"), (True, "v1"), (True, "v2")]
    ok, messages = verify_table(table)
    assert ok, messages


def test_capacity_never_shrinks() -> None:
    table = _table(*((i, i) for i in range(40)))
    grown = table.capacity
    for i in range(40):
        table.remove(i)
    assert table.size() == 0
    assert table.capacity == grown
    table.clear()
    assert table.capacity == grown


def test_negative_hashes_index_inside_the_table() -> None:
    table = HashTableCollection(hash_fn=lambda key: -key)
    for key in range(1, 30):
        table.add(key, key)
        assert 0 <= table.slot_for(key) < table.capacity
    assert all(table.find(key) == (True, key) for key in range(1, 30))


def test_custom_hash_function_is_used_for_indexing() -> None:
    table = HashTableCollection(hash_fn=lambda _key: 3)
    table.add("a", 1)
    table.add("b", 2)
    lengths = table.chain_lengths()
    assert lengths[3] == 2
    assert sum(lengths) == 2


def test_clear_is_idempotent() -> None:
    table = _table(("a", 1), ("b", 2))
    table.clear()
    table.clear()
    assert table.size() == 0
    assert table.keys() == []
    table.add("c", 3)
    assert table.find("c") == (True, 3)


def test_copy_is_independent_of_source() -> None:
    source = _table(("a", 1), ("b", 2))
    clone = source.copy()
    source.remove("a")
    assert clone.find("a") == (True, 1)
    assert clone.size() == 2
    assert source.size() == 1

    clone.add("c", 3)
    assert "c" not in source


def test_copy_module_shallow_and_deep() -> None:
    payload = {"nested": [1, 2]}
    source = _table(("a", payload), ("a", "second"))
    shallow = copy.copy(source)
    deep = copy.deepcopy(source)

    assert shallow is not source and deep is not source
    assert shallow.find("a") == (True, "second")
    assert deep.find("a") == (True, "second")
    assert shallow.size() == deep.size() == 2

    source.remove("a")
    assert shallow.size() == 2
    payload["nested"].append(3)
    shallow_values = [v for k, v in shallow.items() if isinstance(v, dict)]
    deep_values = [v for k, v in deep.items() if isinstance(v, dict)]
    assert shallow_values[0]["nested"] == [1, 2, 3]
    assert deep_values[0]["nested"] == [1, 2]


def test_copy_keeps_configuration() -> None:
    source = HashTableCollection(initial_capacity=4, load_factor_threshold=2.0, hash_fn=lambda k: 1)
    source.add("a", 1)
    clone = source.copy()
    assert clone.load_factor_threshold == pytest.approx(2.0)
    assert clone.hash_fn is source.hash_fn
    assert clone.capacity == 4


def test_assign_replaces_contents() -> None:
    target = _table(("x", 0), ("y", 0))
    source = _table(("a", 1), ("b", 2))
    result = target.assign(source)
    assert result is target
    assert sorted(target.items()) == [("a", 1), ("b", 2)]
    source.remove("a")
    assert target.find("a") == (True, 1)


def test_self_assignment_is_a_noop() -> None:
    table = _table(("a", 1), ("a", 2), ("b", 3))
    before = (table.size(), table.capacity, list(table.items()))
    assert table.assign(table) is table
    assert (table.size(), table.capacity, list(table.items())) == before


def test_large_rehash_logs_warning(hashcoll_caplog: pytest.LogCaptureFixture) -> None:
    table = HashTableCollection(initial_capacity=4, large_table_warn_threshold=3)
    for key in range(4):
        table.add(key, key)
    messages = [record.getMessage() for record in hashcoll_caplog.records]
    assert any("Large table rehash" in msg for msg in messages)
    assert any(
        record.levelno == logging.DEBUG and "Resized table 4 -> 8" in record.getMessage()
        for record in hashcoll_caplog.records
    )


def test_repr_mentions_size_and_capacity() -> None:
    text = repr(_table(("a", 1)))
    assert "size=1" in text
    assert "capacity=16" in text
