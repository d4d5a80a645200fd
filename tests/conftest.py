"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages,
and keeps console output and notifications out of the way of tests.
"""

import io
import sys
from collections.abc import Generator
from pathlib import Path

import pytest

# Insert local src directory at the beginning of sys.path
# This ensures that the local specwatch package is used, not any installed one
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

# Force reimport of specwatch modules if already imported
for module_name in list(sys.modules.keys()):
    if module_name.startswith("specwatch"):
        del sys.modules[module_name]

from rich.console import Console  # noqa: E402

from specwatch.core import console  # noqa: E402
from specwatch.core.console import Notification  # noqa: E402


class RecordingNotifier:
    """Collects notifications instead of showing them."""

    def __init__(self) -> None:
        self.notifications: list[Notification] = []

    def __call__(self, notification: Notification) -> None:
        self.notifications.append(notification)

    @property
    def titles(self) -> list[str]:
        return [n.title for n in self.notifications]


@pytest.fixture
def notifier() -> Generator[RecordingNotifier, None, None]:
    recorder = RecordingNotifier()
    previous = console.set_notifier(recorder)
    yield recorder
    console.set_notifier(previous)


@pytest.fixture
def captured_console() -> Generator[Console, None, None]:
    """Swap the shared console for one that records plain text."""
    recording = Console(
        file=io.StringIO(), record=True, width=200, color_system=None, highlight=False
    )
    previous = console.set_console(recording)
    yield recording
    console.set_console(previous)
