"""Console helpers for tapsync."""

from __future__ import annotations

import sys

_VERBOSE = False


def configure_console(*, verbose: bool = False) -> None:
    global _VERBOSE
    if verbose:
        _VERBOSE = True


def log(message: str) -> None:
    print(f"[tapsync] {message}", file=sys.stdout)


def debug(message: str) -> None:
    if not _VERBOSE:
        return
    print(f"[tapsync] debug: {message}", file=sys.stderr)


def log_error(message: str) -> None:
    print(f"[tapsync] {message}", file=sys.stderr)
