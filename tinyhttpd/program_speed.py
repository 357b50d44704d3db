"""Monotonic timing of request handling."""

from __future__ import annotations

import time
from dataclasses import dataclass


def capture() -> int:
    """Return the current monotonic clock reading in nanoseconds."""
    return time.monotonic_ns()


def format_point_in_time(ns: int) -> str:
    """Describe a single clock reading."""
    return f"Time: {ns} ns ({ns / 1e6:.3f} ms)"


def format_elapsed(ns: int) -> str:
    """Describe an elapsed duration."""
    return f"Elapsed: {ns} ns ({ns / 1e6:.3f} ms)"


@dataclass
class ProgramSpeed:
    """Start and end readings of a timed span; zero means not recorded."""

    start: int = 0
    end: int = 0

    def mark_start(self) -> None:
        self.start = capture()

    def mark_end(self) -> None:
        self.end = capture()

    def elapsed_ns(self) -> int:
        return self.end - self.start

    def describe(self) -> str:
        return format_elapsed(self.elapsed_ns())