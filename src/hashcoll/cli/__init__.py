"""hashcoll command-line package: ``main`` plus the subcommand registry."""

from .app import (
    JsonFormatter,
    configure_logging,
    console_main,
    emit_success,
    main,
    run_csv,
    validate_summary,
    verify_workload,
)
from .commands import CLIContext, register_subcommands

__all__ = [
    "CLIContext",
    "JsonFormatter",
    "configure_logging",
    "console_main",
    "emit_success",
    "main",
    "register_subcommands",
    "run_csv",
    "validate_summary",
    "verify_workload",
]
