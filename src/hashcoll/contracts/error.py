"""Error envelopes and exit codes for the hashcoll command line.

Every failure a subcommand reports is an :class:`EnvelopeError` subclass.
The class decides the process exit code and the ``error`` label written to
stderr, so handlers only choose which class to raise::

    {"error": "BadInput", "detail": "ADD missing value at line 4", "hint": "..."}
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Callable
from dataclasses import dataclass
from enum import IntEnum
from functools import wraps
from typing import Any, ClassVar, NoReturn, TypeVar

logger = logging.getLogger(__name__)
T = TypeVar("T")


class Exit(IntEnum):
    """Exit codes returned by every hashcoll subcommand."""

    OK = 0
    BAD_INPUT = 2
    INVARIANT = 3
    POLICY = 4
    IO = 5


@dataclass(slots=True)
class ErrorEnvelope:
    error: str
    detail: str
    hint: str | None = None

    def to_json(self) -> str:
        payload = {"error": self.error, "detail": self.detail}
        if self.hint:
            payload["hint"] = self.hint
        return json.dumps(payload, ensure_ascii=False)


def die(code: Exit, kind: str, detail: str, hint: str | None = None) -> NoReturn:
    """Write a JSON error envelope to stderr and exit with ``code``."""

    sys.stderr.write(ErrorEnvelope(error=kind, detail=detail, hint=hint).to_json() + "\n")
    try:
        sys.stderr.flush()
    finally:
        sys.exit(int(code))


class EnvelopeError(Exception):
    """Failure reported to the user through an error envelope."""

    exit_code: ClassVar[Exit] = Exit.POLICY
    kind: ClassVar[str] = "Policy"

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint

    def envelope(self) -> ErrorEnvelope:
        return ErrorEnvelope(error=self.kind, detail=str(self), hint=self.hint)


class BadInputError(EnvelopeError):
    """Malformed workload rows, seeds, keys, flags or config values."""

    exit_code = Exit.BAD_INPUT
    kind = "BadInput"


class InvariantError(EnvelopeError):
    """A replayed table failed ``verify_table``."""

    exit_code = Exit.INVARIANT
    kind = "Invariant"


class PolicyError(EnvelopeError):
    """Unsupported command."""


class IOErrorEnvelope(EnvelopeError):  # noqa: N818 - matches the other envelope names
    """Workload, summary or log files that cannot be read or written."""

    exit_code = Exit.IO
    kind = "IO"


def guard_cli(fn: Callable[..., T]) -> Callable[..., T]:
    """Turn envelope errors raised by a subcommand handler into an exit.

    ``MemoryError`` is not translated: running out of memory while adding
    or growing a table is fatal and propagates unchanged.
    """

    @wraps(fn)
    def _wrapped(*args: Any, **kwargs: Any) -> T:
        try:
            return fn(*args, **kwargs)
        except MemoryError:
            raise
        except EnvelopeError as exc:
            env = exc.envelope()
            die(exc.exit_code, env.error, env.detail, hint=env.hint)
        except FileNotFoundError as exc:
            die(Exit.IO, "FileNotFound", str(exc))
        except Exception as exc:  # pragma: no cover - last-resort envelope
            logger.exception("Unhandled CLI exception")
            die(Exit.POLICY, "Unhandled", f"{type(exc).__name__}: {exc}")

    return _wrapped


__all__ = [
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
