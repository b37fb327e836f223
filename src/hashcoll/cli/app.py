"""
app.py

Command-line front end for the hashcoll hash table:
- single-shot table operations (add/find/remove/range/keys) on a seeded table
- CSV workload replay with validation, row/byte limits and a JSON summary
- invariant verification after replay
- JSON Schema validation of saved summaries
- plain or JSON logging with an optional rotating log file
"""

from __future__ import annotations

import argparse
import contextlib
import csv
import json
import logging
import os
import sys
import time
from collections import Counter
from collections.abc import Callable, Iterator
from importlib import resources
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, NamedTuple

from jsonschema import Draft202012Validator

from hashcoll.cli.commands import CLIContext, register_subcommands
from hashcoll.config import AppConfig, load_app_config
from hashcoll.contracts import SUMMARY_SCHEMA
from hashcoll.contracts.collection import Lookup
from hashcoll.contracts.error import (
    BadInputError,
    InvariantError,
    IOErrorEnvelope,
    PolicyError,
    guard_cli,
)
from hashcoll.core.diagnostics import chain_length_histogram, table_stats, verify_table
from hashcoll.core.table import HashTableCollection

# --------------------------------------------------------------------
# Logging
# --------------------------------------------------------------------
logger = logging.getLogger("hashcoll")
logger.setLevel(logging.INFO)
logger.propagate = False

DEFAULT_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DEFAULT_LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S"
DEFAULT_LOG_MAX_BYTES = 5_000_000
DEFAULT_LOG_BACKUP_COUNT = 5

WORKLOAD_OPS = ("add", "remove", "find", "range", "keys", "sort", "size")
CSV_HINT = "Expected header op,key,value with ops: " + ", ".join(WORKLOAD_OPS)


class JsonFormatter(logging.Formatter):
    """Render log records as JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record, DEFAULT_LOG_DATEFMT),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = self.formatStack(record.stack_info)
        return json.dumps(payload, ensure_ascii=False)


def configure_logging(
    use_json: bool = False,
    log_file: str | None = None,
    *,
    max_bytes: int = DEFAULT_LOG_MAX_BYTES,
    backup_count: int = DEFAULT_LOG_BACKUP_COUNT,
) -> None:
    """Install a stderr handler (and optionally a rotating file handler)."""

    formatter: logging.Formatter
    if use_json:
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(DEFAULT_LOG_FORMAT, DEFAULT_LOG_DATEFMT)

    for handler in list(logger.handlers):
        with contextlib.suppress(Exception):
            handler.close()
        logger.removeHandler(handler)

    stream = logging.StreamHandler()
    stream.setFormatter(formatter)
    logger.addHandler(stream)

    if log_file:
        file_handler = RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)


configure_logging()

APP_CONFIG: AppConfig = AppConfig()
OUTPUT_JSON: bool = False


def set_app_config(cfg: AppConfig) -> None:
    global APP_CONFIG
    APP_CONFIG = cfg


def emit_success(
    command: str, *, text: str | None = None, data: dict[str, Any] | None = None
) -> None:
    if OUTPUT_JSON:
        payload: dict[str, Any] = {"ok": True, "command": command}
        if data:
            payload.update(data)
        if text is not None and "result" not in payload:
            payload["result"] = text
        print(json.dumps(payload, ensure_ascii=False))
    else:
        if text is not None:
            print(text)


# --------------------------------------------------------------------
# Tables and single operations
# --------------------------------------------------------------------
def parse_key(raw: str) -> Any:
    key_type = APP_CONFIG.runner.key_type
    try:
        return APP_CONFIG.runner.key_parser()(raw.strip())
    except ValueError as exc:
        raise BadInputError(
            f"Key {raw!r} is not a valid {key_type}",
            hint="Adjust --key-type or runner.key_type",
        ) from exc


def build_table(seeds: list[str] | None = None) -> HashTableCollection:
    """Create a table from the active config and add ``KEY=VALUE`` seeds in order."""

    table = APP_CONFIG.table.build()
    for raw in seeds or []:
        key, sep, value = raw.partition("=")
        if not sep or not key.strip():
            raise BadInputError(f"Seed {raw!r} must look like KEY=VALUE")
        table.add(parse_key(key), value)
    return table


def run_op(table: HashTableCollection, op: str, key: Any = None, value: Any = None) -> Any:
    if op == "add":
        if key is None or value is None:
            raise ValueError("ADD operations require both key and value")
        table.add(key, value)
        return "OK"
    if op == "remove":
        if key is None:
            raise ValueError("REMOVE operations require a key")
        return table.remove(key)
    if op == "find":
        if key is None:
            raise ValueError("FIND operations require a key")
        return table.find(key)
    if op == "range":
        if key is None or value is None:
            raise ValueError("RANGE operations require low and high bounds")
        return table.find_range(key, value)
    if op == "keys":
        return table.keys()
    if op == "sort":
        return table.sorted_keys()
    if op == "size":
        return table.size()
    raise ValueError(f"unknown op: {op}")


def _jsonable_result(result: Any) -> Any:
    if isinstance(result, Lookup):
        return {"found": result.found, "value": result.value}
    return result


# --------------------------------------------------------------------
# CSV workload replay
# --------------------------------------------------------------------
class WorkloadRow(NamedTuple):
    line: int
    op: str
    key: Any
    value: Any


def _iter_workload(
    path: str, key_parser: Callable[[str], Any], csv_max_rows: int
) -> Iterator[WorkloadRow]:
    rows = 0
    try:
        with open(path, newline="", encoding="utf-8") as f:
            reader = csv.DictReader(f)
            header = {fn.strip() for fn in reader.fieldnames or []}
            required = {"op", "key", "value"}
            missing = required - header
            if missing:
                raise BadInputError(
                    f"Missing header columns: {', '.join(sorted(missing))}", hint=CSV_HINT
                )
            unexpected = header - required
            if unexpected:
                raise BadInputError(
                    f"Unexpected column(s) in header: {', '.join(sorted(unexpected))}",
                    hint=CSV_HINT,
                )
            for row in reader:
                rows += 1
                if csv_max_rows and rows > csv_max_rows:
                    raise BadInputError(
                        f"CSV row limit exceeded ({rows} > {csv_max_rows})", hint=CSV_HINT
                    )
                line_no = reader.line_num
                op = (row.get("op") or "").strip().lower()
                raw_key = (row.get("key") or "").strip()
                raw_value = (row.get("value") or "").strip()
                if not op:
                    raise BadInputError(f"Missing op at line {line_no}", hint=CSV_HINT)
                if op not in WORKLOAD_OPS:
                    raise BadInputError(f"Unknown op '{op}' at line {line_no}", hint=CSV_HINT)

                key: Any = None
                value: Any = None
                if op in {"add", "remove", "find", "range"}:
                    if not raw_key:
                        raise BadInputError(f"Missing key at line {line_no}", hint=CSV_HINT)
                    key = _parse_row_key(key_parser, raw_key, line_no)
                if op == "add":
                    if not raw_value:
                        raise BadInputError(f"ADD missing value at line {line_no}", hint=CSV_HINT)
                    value = raw_value
                elif op == "range":
                    if not raw_value:
                        raise BadInputError(
                            f"RANGE missing high bound at line {line_no}", hint=CSV_HINT
                        )
                    value = _parse_row_key(key_parser, raw_value, line_no)
                yield WorkloadRow(line_no, op, key, value)
    except FileNotFoundError as exc:
        raise IOErrorEnvelope(str(exc)) from exc
    except OSError as exc:
        raise IOErrorEnvelope(str(exc)) from exc
    except (csv.Error, UnicodeDecodeError) as exc:
        raise BadInputError(str(exc), hint=CSV_HINT) from exc


def _parse_row_key(key_parser: Callable[[str], Any], raw: str, line_no: int) -> Any:
    try:
        return key_parser(raw)
    except ValueError as exc:
        raise BadInputError(
            f"Invalid key {raw!r} at line {line_no} for key type {APP_CONFIG.runner.key_type}",
            hint=CSV_HINT,
        ) from exc


def _check_csv_size(path: str, csv_max_bytes: int) -> int:
    try:
        size_bytes = Path(path).stat().st_size
    except FileNotFoundError as exc:
        raise IOErrorEnvelope(str(exc)) from exc
    if csv_max_bytes and size_bytes > csv_max_bytes:
        raise BadInputError(
            f"CSV file is {size_bytes} bytes which exceeds limit {csv_max_bytes}",
            hint=CSV_HINT,
        )
    return size_bytes


def replay_workload(
    path: str, table: HashTableCollection, *, csv_max_rows: int, capture_results: bool = False
) -> tuple[Counter[str], list[dict[str, Any]]]:
    counts: Counter[str] = Counter()
    results: list[dict[str, Any]] = []
    for row in _iter_workload(path, APP_CONFIG.runner.key_parser(), csv_max_rows):
        out = run_op(table, row.op, row.key, row.value)
        counts[row.op] += 1
        if capture_results and row.op != "add":
            results.append({"line": row.line, "op": row.op, "result": _jsonable_result(out)})
    return counts, results


def run_csv(
    path: str,
    *,
    dry_run: bool = False,
    csv_max_rows: int | None = None,
    csv_max_bytes: int | None = None,
    json_summary_out: str | None = None,
    capture_results: bool = False,
) -> dict[str, Any]:
    """Replay a CSV workload against a fresh table and return a summary.

    ``dry_run`` validates every row without touching a table. Row and byte
    limits default to the ``[runner]`` config section; 0 disables a limit.
    """

    runner = APP_CONFIG.runner
    max_rows = runner.csv_max_rows if csv_max_rows is None else csv_max_rows
    max_bytes = runner.csv_max_bytes if csv_max_bytes is None else csv_max_bytes
    size_bytes = _check_csv_size(path, max_bytes)

    if dry_run:
        rows = sum(1 for _ in _iter_workload(path, runner.key_parser(), max_rows))
        size_mib = size_bytes / (1024 * 1024)
        logger.info("CSV validation successful (%d rows, %.2f MiB): %s", rows, size_mib, path)
        return {
            "status": "validated",
            "csv": str(path),
            "rows": rows,
            "size_bytes": size_bytes,
            "size_mib": size_mib,
        }

    table = APP_CONFIG.table.build()
    start = time.perf_counter()
    counts, results = replay_workload(
        path, table, csv_max_rows=max_rows, capture_results=capture_results
    )
    elapsed = time.perf_counter() - start
    total_ops = sum(counts.values())

    summary: dict[str, Any] = {
        "schema": SUMMARY_SCHEMA,
        "status": "completed",
        "csv": str(path),
        "key_type": runner.key_type,
        "ops": total_ops,
        "ops_by_type": dict(counts),
        "elapsed_seconds": elapsed,
        "ops_per_second": (total_ops / elapsed) if elapsed > 0 else 0.0,
        "size": table.size(),
        "capacity": table.capacity,
        "resizes": table.resizes,
        "stats": table_stats(table),
        "chain_length_histogram": chain_length_histogram(table),
    }
    if capture_results:
        summary["results"] = results
    logger.info(
        "Replayed %d ops from %s in %.3f s (size=%d, capacity=%d, resizes=%d)",
        total_ops,
        path,
        elapsed,
        table.size(),
        table.capacity,
        table.resizes,
    )

    if json_summary_out:
        out_path = Path(json_summary_out)
        try:
            out_path.parent.mkdir(parents=True, exist_ok=True)
            out_path.write_text(json.dumps(summary, indent=2), encoding="utf-8")
        except OSError as exc:
            raise IOErrorEnvelope(f"Failed to write summary: {exc}") from exc
        logger.info("Wrote JSON summary: %s", out_path)
    return summary


def verify_workload(path: str, *, verbose: bool = False) -> dict[str, Any]:
    """Replay ``path`` and check the resulting table's invariants."""

    runner = APP_CONFIG.runner
    _check_csv_size(path, runner.csv_max_bytes)
    table = APP_CONFIG.table.build()
    counts, _ = replay_workload(path, table, csv_max_rows=runner.csv_max_rows)
    ok, messages = verify_table(table, verbose=verbose)
    if not ok:
        for msg in messages:
            logger.error("%s", msg)
        raise InvariantError("Table verification failed: " + "; ".join(messages))
    return {
        "csv": str(path),
        "ops": sum(counts.values()),
        "size": table.size(),
        "capacity": table.capacity,
        "messages": messages,
    }


# --------------------------------------------------------------------
# Summary schema validation
# --------------------------------------------------------------------
def _default_schema_text() -> str:
    schema_resource = resources.files("hashcoll.contracts") / "summary_schema.json"
    with schema_resource.open(encoding="utf-8") as stream:
        return stream.read()


def validate_summary(path: str) -> dict[str, Any]:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise IOErrorEnvelope(str(exc)) from exc
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise BadInputError(f"Summary is not valid JSON: {exc}") from exc

    validator = Draft202012Validator(json.loads(_default_schema_text()))
    errors = sorted(validator.iter_errors(document), key=lambda err: list(err.path))
    if errors:
        details = "; ".join(f"{err.message} @ {list(err.path)}" for err in errors)
        raise BadInputError(f"Summary does not match {SUMMARY_SCHEMA}: {details}")
    return {"summary": str(path), "schema": SUMMARY_SCHEMA, "valid": True}


# --------------------------------------------------------------------
# CLI
# --------------------------------------------------------------------
def main(argv: list[str]) -> int:
    p = argparse.ArgumentParser(
        description="In-memory hash table collection: single operations, CSV replay, verification."
    )
    p.add_argument("--log-json", action="store_true", help="Emit logs in JSON format")
    p.add_argument(
        "--log-file",
        default=None,
        help="Optional log file path (rotates at 5MB, keeps 5 backups by default)",
    )
    p.add_argument(
        "--log-max-bytes",
        type=int,
        default=DEFAULT_LOG_MAX_BYTES,
        help="Max bytes per log file before rotation (default: %(default)s)",
    )
    p.add_argument(
        "--log-backup-count",
        type=int,
        default=DEFAULT_LOG_BACKUP_COUNT,
        help="Number of rotated log files to keep (default: %(default)s)",
    )
    p.add_argument(
        "--json", action="store_true", help="Emit machine-readable success output to stdout"
    )
    p.add_argument(
        "--config",
        default=None,
        help="Path to TOML config file (env: HASHCOLL_CONFIG)",
    )
    p.add_argument(
        "--key-type",
        choices=["str", "int", "float"],
        default=None,
        help="Parse keys as this type (overrides runner.key_type)",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    ctx = CLIContext(
        emit_success=emit_success,
        build_table=build_table,
        parse_key=parse_key,
        run_op=run_op,
        run_csv=run_csv,
        verify_workload=verify_workload,
        validate_summary=validate_summary,
        logger=logger,
        json_enabled=lambda: OUTPUT_JSON,
        guard=guard_cli,
    )

    handlers = register_subcommands(sub, ctx)

    args = p.parse_args(argv)

    global OUTPUT_JSON
    OUTPUT_JSON = bool(args.json)

    configure_logging(
        args.log_json,
        args.log_file,
        max_bytes=args.log_max_bytes,
        backup_count=args.log_backup_count,
    )

    cfg_path = args.config or os.getenv("HASHCOLL_CONFIG")
    cfg = guard_cli(load_app_config)(cfg_path)
    if args.key_type:
        cfg.runner.key_type = args.key_type
    set_app_config(cfg)
    if cfg_path:
        logger.info("Loaded config from %s", cfg_path)

    handler = handlers.get(args.cmd)
    if handler is None:
        raise PolicyError(f"Unknown command {args.cmd}")
    return handler(args)


def console_main() -> None:
    """Entry point for console_scripts."""

    try:
        raise SystemExit(main(sys.argv[1:]))
    except SystemExit:
        raise
    except Exception as e:  # noqa: BLE001
        logger.exception("Fatal error: %s", e)
        raise SystemExit(2) from e


if __name__ == "__main__":
    console_main()
