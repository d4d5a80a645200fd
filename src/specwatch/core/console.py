"""User-facing console output and notifications.

Design principles:
- One shared rich Console on stdout for spec reports
- Styled one-line helpers mirror the result states (passed, failed, pending)
- Notifications go through a replaceable Notifier so hosts can route them
  to a desktop notification daemon

Usage::

    from specwatch.core import console

    console.info("Run all Jasmine suites")
    console.success("3 specs, 0 failures")
    console.notify("1 failure", title="Jasmine suite failed", image="failed", priority=2)
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal, Protocol

from rich.console import Console
from rich.panel import Panel

if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger

NotifyImage = Literal["success", "failed", "pending"]

_console = Console(highlight=False)

_suppress_console_logs = threading.local()


def is_console_suppressed() -> bool:
    """Check if console logging is currently suppressed."""
    return getattr(_suppress_console_logs, "active", False)


@contextmanager
def suppress_console_logs() -> Iterator[None]:
    """Keep structlog console output from interleaving with a spec report."""
    _suppress_console_logs.active = True
    try:
        yield
    finally:
        _suppress_console_logs.active = False


def _get_logger() -> BoundLogger:
    from specwatch.core.logging import get_logger

    return get_logger("console")


def set_console(console: Console) -> Console:
    """Replace the shared console, returning the previous one."""
    global _console
    previous = _console
    _console = console
    return previous


def _print(message: str, style: str | None, *, reset: bool = False) -> None:
    if reset:
        _console.print()
    _console.print(message, style=style, markup=False, highlight=False)


def info(message: str, *, reset: bool = False) -> None:
    _print(message, None, reset=reset)


def success(message: str) -> None:
    _print(message, "green")


def error(message: str) -> None:
    _print(message, "red")


def warning(message: str) -> None:
    _print(message, "yellow")


def suite_name(message: str) -> None:
    _print(message, "bold")


def spec_failed(message: str) -> None:
    _print(message, "red")


def spec_pending(message: str) -> None:
    _print(message, "yellow")


def raw(line: str) -> None:
    """Print a tool output line verbatim."""
    _console.print(line, markup=False, highlight=False, soft_wrap=True)


# =============================================================================
# Notifications
# =============================================================================


@dataclass(frozen=True, slots=True)
class Notification:
    message: str
    title: str
    image: NotifyImage = "success"
    priority: int = 0


class Notifier(Protocol):
    def __call__(self, notification: Notification) -> None: ...


def _panel_notifier(notification: Notification) -> None:
    style = {"success": "green", "failed": "red", "pending": "yellow"}[notification.image]
    _console.print(
        Panel(notification.message, title=notification.title, border_style=style, expand=False),
        highlight=False,
    )


_notifier: Notifier = _panel_notifier


def set_notifier(notifier: Notifier | None) -> Notifier:
    """Install a notifier (None restores the console panel), returning the previous one."""
    global _notifier
    previous = _notifier
    _notifier = notifier or _panel_notifier
    return previous


def notify(
    message: str,
    *,
    title: str,
    image: NotifyImage = "success",
    priority: int = 0,
) -> None:
    notification = Notification(message=message, title=title, image=image, priority=priority)
    _get_logger().debug("notify", title=title, image=image, priority=priority)
    _notifier(notification)
