"""Console messages tagged with a process or thread id."""

from __future__ import annotations


def format_with_id(message: str, ident: int) -> str:
    """Return ``message`` prefixed with ``[ident]: ``."""
    return f"[{ident}]: {message}"


def print_with_id(message: str, ident: int) -> None:
    """Print ``message`` prefixed with its id on standard output."""
    print(format_with_id(message, ident), flush=True)