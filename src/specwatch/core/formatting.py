"""Summary formatting utilities for consistent terminal output."""

from __future__ import annotations


def pluralize(count: int, singular: str, plural: str | None = None) -> str:
    """Return grammatically correct singular/plural form.

    Examples:
        pluralize(1, "spec") -> "1 spec"
        pluralize(3, "failure") -> "3 failures"
    """
    if plural is None:
        plural = singular + "s"
    word = singular if count == 1 else plural
    return f"{count} {word}"


def format_seconds(seconds: float) -> str:
    """Format elapsed seconds with two decimals ("0.50")."""
    return f"{seconds:0.2f}"


def indent(message: str, level: int) -> str:
    """Prefix message with level spaces."""
    return (" " * level) + message


def format_target_list(targets: list[str]) -> str:
    """Join targets for a one-line start message.

    Examples:
        ["a_spec.js"] -> "suite a_spec.js"
        ["a_spec.js", "b_spec.js"] -> "suites a_spec.js b_spec.js"
    """
    noun = "suite" if len(targets) == 1 else "suites"
    return f"{noun} {' '.join(targets)}"
