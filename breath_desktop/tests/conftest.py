import os

import pytest

# run widgets without a display
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PySide6.QtWidgets import QApplication  # noqa: E402


class FakeClock:
    """Monotonic clock whose time only moves when a test says so."""

    def __init__(self, now: float = 100.0):
        self.start = now
        self.now = now

    def __call__(self) -> float:
        return self.now

    def at(self, elapsed: float):
        """Set the clock to `elapsed` seconds after its starting instant."""
        self.now = self.start + elapsed


@pytest.fixture(scope="session")
def qapp():
    app = QApplication.instance() or QApplication([])
    yield app


@pytest.fixture
def clock():
    return FakeClock()
