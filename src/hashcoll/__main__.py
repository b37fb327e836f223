"""Module entry-point for `python -m hashcoll`."""

from __future__ import annotations

from hashcoll.cli.app import console_main

if __name__ == "__main__":  # pragma: no cover - CLI entry point
    console_main()
