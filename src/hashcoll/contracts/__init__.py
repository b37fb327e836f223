"""Contracts shared by the hashcoll library and command line."""

from .collection import MISSING, KeyedCollection, Lookup
from .error import (
    BadInputError,
    EnvelopeError,
    ErrorEnvelope,
    Exit,
    InvariantError,
    IOErrorEnvelope,
    PolicyError,
    die,
    guard_cli,
)

SUMMARY_SCHEMA = "hashcoll.summary.v1"

__all__ = [
    "KeyedCollection",
    "Lookup",
    "MISSING",
    "SUMMARY_SCHEMA",
    "Exit",
    "ErrorEnvelope",
    "EnvelopeError",
    "BadInputError",
    "InvariantError",
    "PolicyError",
    "IOErrorEnvelope",
    "guard_cli",
    "die",
]
