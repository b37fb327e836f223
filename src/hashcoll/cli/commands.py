"""CLI command registration and handlers for hashcoll."""

from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from hashcoll.contracts.error import Exit


@dataclass(frozen=True)
class CLIContext:
    """Runtime hooks supplied by the top-level CLI entrypoint."""

    emit_success: Callable[..., None]
    build_table: Callable[[Optional[List[str]]], Any]
    parse_key: Callable[[str], Any]
    run_op: Callable[..., Any]
    run_csv: Callable[..., Dict[str, Any]]
    verify_workload: Callable[..., Dict[str, Any]]
    validate_summary: Callable[[str], Dict[str, Any]]
    logger: logging.Logger
    json_enabled: Callable[[], bool]
    guard: Callable[[Callable[[argparse.Namespace], int]], Callable[[argparse.Namespace], int]]


def register_subcommands(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
    ctx: CLIContext,
) -> Dict[str, Callable[[argparse.Namespace], int]]:
    """Define CLI subcommands and return their handlers."""

    handlers: Dict[str, Callable[[argparse.Namespace], int]] = {}

    def _register(
        name: str,
        help_text: Optional[str],
        configure: Callable[[argparse.ArgumentParser], Callable[[argparse.Namespace], int]],
    ) -> None:
        parser = subparsers.add_parser(name, help=help_text)
        handler = configure(parser)
        handlers[name] = ctx.guard(handler)

    _register("add", "Add KEY VALUE to a seeded table.", lambda parser: _configure_add(parser, ctx))
    _register("find", "Exact lookup of KEY.", lambda parser: _configure_find(parser, ctx))
    _register(
        "remove", "Remove every entry under KEY.", lambda parser: _configure_remove(parser, ctx)
    )
    _register(
        "range",
        "Values whose keys fall in [LOW, HIGH].",
        lambda parser: _configure_range(parser, ctx),
    )
    _register("keys", "List every key (optionally sorted).", lambda parser: _configure_keys(parser, ctx))
    _register(
        "run-csv",
        "Replay a CSV workload and report a JSON-ready summary.",
        lambda parser: _configure_run_csv(parser, ctx),
    )
    _register(
        "verify",
        "Replay a CSV workload and check table invariants.",
        lambda parser: _configure_verify(parser, ctx),
    )
    _register(
        "validate-summary",
        "Validate a run-csv JSON summary against the bundled schema.",
        lambda parser: _configure_validate_summary(parser, ctx),
    )

    return handlers


def _add_seed_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--seed",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Pre-populate the table (repeatable, applied in order)",
    )


def _configure_add(
    parser: argparse.ArgumentParser, ctx: CLIContext
) -> Callable[[argparse.Namespace], int]:
    parser.add_argument("key")
    parser.add_argument("value")
    _add_seed_argument(parser)

    def handler(args: argparse.Namespace) -> int:
        table = ctx.build_table(args.seed)
        out = ctx.run_op(table, "add", ctx.parse_key(args.key), args.value)
        data = {
            "key": args.key,
            "value": args.value,
            "size": table.size(),
            "capacity": table.capacity,
        }
        ctx.emit_success("add", text=out, data=data)
        return int(Exit.OK)

    return handler


def _configure_find(
    parser: argparse.ArgumentParser, ctx: CLIContext
) -> Callable[[argparse.Namespace], int]:
    parser.add_argument("key")
    _add_seed_argument(parser)

    def handler(args: argparse.Namespace) -> int:
        table = ctx.build_table(args.seed)
        found, value = ctx.run_op(table, "find", ctx.parse_key(args.key))
        data = {"key": args.key, "found": found, "value": value}
        ctx.emit_success("find", text=value if found else "", data=data)
        return int(Exit.OK)

    return handler


def _configure_remove(
    parser: argparse.ArgumentParser, ctx: CLIContext
) -> Callable[[argparse.Namespace], int]:
    parser.add_argument("key")
    _add_seed_argument(parser)

    def handler(args: argparse.Namespace) -> int:
        table = ctx.build_table(args.seed)
        removed = ctx.run_op(table, "remove", ctx.parse_key(args.key))
        data = {"key": args.key, "removed": removed, "size": table.size()}
        ctx.emit_success("remove", text=str(removed), data=data)
        return int(Exit.OK)

    return handler


def _configure_range(
    parser: argparse.ArgumentParser, ctx: CLIContext
) -> Callable[[argparse.Namespace], int]:
    parser.add_argument("low")
    parser.add_argument("high")
    _add_seed_argument(parser)

    def handler(args: argparse.Namespace) -> int:
        table = ctx.build_table(args.seed)
        values = ctx.run_op(table, "range", ctx.parse_key(args.low), ctx.parse_key(args.high))
        data = {"low": args.low, "high": args.high, "count": len(values), "values": values}
        ctx.emit_success("range", text="\n".join(str(v) for v in values), data=data)
        return int(Exit.OK)

    return handler


def _configure_keys(
    parser: argparse.ArgumentParser, ctx: CLIContext
) -> Callable[[argparse.Namespace], int]:
    parser.add_argument("--sorted", action="store_true", help="Ascending key order")
    _add_seed_argument(parser)

    def handler(args: argparse.Namespace) -> int:
        table = ctx.build_table(args.seed)
        keys = ctx.run_op(table, "sort" if args.sorted else "keys")
        data = {"sorted": bool(args.sorted), "count": len(keys), "keys": keys}
        ctx.emit_success("keys", text="\n".join(str(k) for k in keys), data=data)
        return int(Exit.OK)

    return handler


def _configure_run_csv(
    parser: argparse.ArgumentParser, ctx: CLIContext
) -> Callable[[argparse.Namespace], int]:
    parser.add_argument("--csv", required=True)
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate the CSV workload and exit without executing it",
    )
    parser.add_argument(
        "--csv-max-rows",
        type=int,
        default=None,
        help="Abort if CSV rows exceed this count (0 disables check; default from config)",
    )
    parser.add_argument(
        "--csv-max-bytes",
        type=int,
        default=None,
        help="Abort if CSV file size exceeds this many bytes (0 disables check; default from config)",
    )
    parser.add_argument(
        "--json-summary-out", type=str, default=None, help="Write the run summary to JSON"
    )
    parser.add_argument(
        "--show-results",
        action="store_true",
        help="Include per-row query results in the summary",
    )

    def handler(args: argparse.Namespace) -> int:
        result = ctx.run_csv(
            args.csv,
            dry_run=args.dry_run,
            csv_max_rows=args.csv_max_rows,
            csv_max_bytes=args.csv_max_bytes,
            json_summary_out=args.json_summary_out,
            capture_results=args.show_results,
        )
        if result.get("status") == "validated":
            text = f"validated {result['rows']} rows"
        else:
            text = (
                f"ops={result['ops']} size={result['size']} "
                f"capacity={result['capacity']} resizes={result['resizes']}"
            )
        ctx.emit_success("run-csv", text=text, data=result)
        if args.show_results and not ctx.json_enabled():
            for row in result.get("results", []):
                print(f"{row['line']}\t{row['op']}\t{_format_result(row['result'])}")
        return int(Exit.OK)

    return handler


def _configure_verify(
    parser: argparse.ArgumentParser, ctx: CLIContext
) -> Callable[[argparse.Namespace], int]:
    parser.add_argument("--csv", required=True)
    parser.add_argument("--verbose", action="store_true")

    def handler(args: argparse.Namespace) -> int:
        result = ctx.verify_workload(args.csv, verbose=args.verbose)
        lines = ["OK: table verified", *result["messages"]]
        ctx.emit_success("verify", text="\n".join(lines), data=result)
        return int(Exit.OK)

    return handler


def _configure_validate_summary(
    parser: argparse.ArgumentParser, ctx: CLIContext
) -> Callable[[argparse.Namespace], int]:
    parser.add_argument("summary", help="Path to a run-csv JSON summary")

    def handler(args: argparse.Namespace) -> int:
        result = ctx.validate_summary(args.summary)
        ctx.emit_success("validate-summary", text="Validation finished: summary valid", data=result)
        return int(Exit.OK)

    return handler


def _format_result(result: Any) -> str:
    if isinstance(result, dict) and "found" in result:
        return str(result["value"]) if result["found"] else "<missing>"
    if isinstance(result, list):
        return ",".join(str(item) for item in result)
    return str(result)


__all__ = ["CLIContext", "register_subcommands"]
