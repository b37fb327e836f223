from .chain import BucketChain
from .diagnostics import chain_length_histogram, table_stats, verify_table
from .table import (
    DEFAULT_CAPACITY,
    DEFAULT_LARGE_TABLE_WARN_THRESHOLD,
    DEFAULT_LOAD_FACTOR_THRESHOLD,
    HashTableCollection,
)

__all__ = [
    "BucketChain",
    "HashTableCollection",
    "DEFAULT_CAPACITY",
    "DEFAULT_LOAD_FACTOR_THRESHOLD",
    "DEFAULT_LARGE_TABLE_WARN_THRESHOLD",
    "chain_length_histogram",
    "table_stats",
    "verify_table",
]
