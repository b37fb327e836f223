"""Typed configuration loader for hashcoll."""

from __future__ import annotations

import os
import tomllib
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from .contracts.error import BadInputError
from .core.table import (
    DEFAULT_CAPACITY,
    DEFAULT_LARGE_TABLE_WARN_THRESHOLD,
    DEFAULT_LOAD_FACTOR_THRESHOLD,
    HashTableCollection,
)

DEFAULT_CSV_MAX_ROWS = 5_000_000
DEFAULT_CSV_MAX_BYTES = 500 * 1024 * 1024

KEY_TYPES: dict[str, Callable[[str], Any]] = {
    "str": str,
    "int": int,
    "float": float,
}


def _require_int(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise BadInputError(f"{name} must be an integer")


@dataclass
class TablePolicy:
    initial_capacity: int = DEFAULT_CAPACITY
    load_factor_threshold: float = DEFAULT_LOAD_FACTOR_THRESHOLD
    large_table_warn_threshold: int = DEFAULT_LARGE_TABLE_WARN_THRESHOLD

    def validate(self) -> None:
        _require_int("table.initial_capacity", self.initial_capacity)
        if self.initial_capacity < 1:
            raise BadInputError("table.initial_capacity must be >= 1")
        if not isinstance(self.load_factor_threshold, (int, float)) or isinstance(
            self.load_factor_threshold, bool
        ):
            raise BadInputError("table.load_factor_threshold must be a number")
        if not self.load_factor_threshold > 0.0:
            raise BadInputError("table.load_factor_threshold must be > 0")
        _require_int("table.large_table_warn_threshold", self.large_table_warn_threshold)
        if self.large_table_warn_threshold < 0:
            raise BadInputError("table.large_table_warn_threshold must be >= 0")

    def build(self) -> HashTableCollection:
        return HashTableCollection(
            initial_capacity=self.initial_capacity,
            load_factor_threshold=float(self.load_factor_threshold),
            large_table_warn_threshold=self.large_table_warn_threshold,
        )


@dataclass
class RunnerPolicy:
    key_type: str = "str"
    csv_max_rows: int = DEFAULT_CSV_MAX_ROWS
    csv_max_bytes: int = DEFAULT_CSV_MAX_BYTES

    def validate(self) -> None:
        if not isinstance(self.key_type, str) or self.key_type not in KEY_TYPES:
            raise BadInputError(
                f"runner.key_type must be one of {', '.join(sorted(KEY_TYPES))}"
            )
        _require_int("runner.csv_max_rows", self.csv_max_rows)
        _require_int("runner.csv_max_bytes", self.csv_max_bytes)
        if self.csv_max_rows < 0:
            raise BadInputError("runner.csv_max_rows must be >= 0")
        if self.csv_max_bytes < 0:
            raise BadInputError("runner.csv_max_bytes must be >= 0")

    def key_parser(self) -> Callable[[str], Any]:
        return KEY_TYPES[self.key_type]


def _section(data: dict[str, Any], name: str, cls: type) -> Any:
    raw = data.get(name, {})
    if not isinstance(raw, dict):
        raise BadInputError(f"[{name}] section must be a table")
    known = {f.name for f in fields(cls)}
    unknown = set(raw) - known
    if unknown:
        raise BadInputError(f"Unknown key(s) in [{name}]: {', '.join(sorted(unknown))}")
    return cls(**raw)


@dataclass
class AppConfig:
    table: TablePolicy = field(default_factory=TablePolicy)
    runner: RunnerPolicy = field(default_factory=RunnerPolicy)

    @classmethod
    def load(cls, path: Path | None) -> AppConfig:
        if path is None:
            cfg = cls()
        else:
            try:
                data = tomllib.loads(path.read_text(encoding="utf-8"))
            except FileNotFoundError as exc:
                raise BadInputError(f"Config file not found: {path}") from exc
            except tomllib.TOMLDecodeError as exc:
                raise BadInputError(f"Invalid TOML: {exc}") from exc
            cfg = cls.from_dict(data)
        cfg.apply_env_overrides(os.environ)
        cfg.validate()
        return cfg

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AppConfig:
        unknown = set(data) - {"table", "runner"}
        if unknown:
            raise BadInputError(f"Unknown config section(s): {', '.join(sorted(unknown))}")
        return cls(
            table=_section(data, "table", TablePolicy),
            runner=_section(data, "runner", RunnerPolicy),
        )

    def apply_env_overrides(self, env: Mapping[str, str]) -> None:
        mapping: dict[str, tuple[Any, str, Callable[[str], Any]]] = {
            "HASHCOLL_INITIAL_CAPACITY": (self.table, "initial_capacity", int),
            "HASHCOLL_LOAD_FACTOR_THRESHOLD": (self.table, "load_factor_threshold", float),
            "HASHCOLL_LARGE_WARN_THRESHOLD": (self.table, "large_table_warn_threshold", int),
            "HASHCOLL_KEY_TYPE": (self.runner, "key_type", str),
            "HASHCOLL_CSV_MAX_ROWS": (self.runner, "csv_max_rows", int),
            "HASHCOLL_CSV_MAX_BYTES": (self.runner, "csv_max_bytes", int),
        }
        for key, (target, attr, caster) in mapping.items():
            raw_value = env.get(key)
            if raw_value is None:
                continue
            try:
                value = caster(raw_value.strip())
            except ValueError as exc:
                raise BadInputError(f"Invalid env override {key}={raw_value!r}") from exc
            setattr(target, attr, value)

    def validate(self) -> None:
        self.table.validate()
        self.runner.validate()


def load_app_config(path: str | None) -> AppConfig:
    config_path = Path(path) if path else None
    return AppConfig.load(config_path)


__all__ = [
    "AppConfig",
    "DEFAULT_CSV_MAX_BYTES",
    "DEFAULT_CSV_MAX_ROWS",
    "KEY_TYPES",
    "RunnerPolicy",
    "TablePolicy",
    "load_app_config",
]
