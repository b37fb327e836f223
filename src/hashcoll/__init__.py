"""In-memory hash table collection with multimap semantics."""

from . import contracts, core
from .contracts.collection import KeyedCollection, Lookup
from .core.table import HashTableCollection

__version__ = "0.1.0"

__all__ = [
    "HashTableCollection",
    "KeyedCollection",
    "Lookup",
    "contracts",
    "core",
    "__version__",
]
