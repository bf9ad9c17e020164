"""
Progress display for long-running transfers and extractions.

A progress sink receives byte-count increments against a fixed total. The
default ProgressBar renders a single updating line on stderr when attached
to a terminal and stays silent otherwise.
"""

import logging
import sys
from enum import Enum
from typing import Callable, Optional, TextIO

logger = logging.getLogger(__name__)

BAR_WIDTH = 40


class Action(Enum):
    """What the progress bar is tracking."""

    FETCHING = "Fetching"
    INSTALLING = "Installing"


class ProgressBar:
    """
    Byte-count progress bar.

    Example:
        >>> bar = ProgressBar(Action.FETCHING, "v1.9.4", total=1024)
        >>> bar.inc(512)
        >>> bar.finish_and_clear()
    """

    def __init__(
        self,
        action: Action,
        label: str,
        total: int,
        stream: Optional[TextIO] = None,
        enabled: Optional[bool] = None,
    ):
        self.action = action
        self.label = label
        self.total = max(total, 0)
        self.position = 0
        self.stream = stream or sys.stderr
        if enabled is None:
            enabled = bool(getattr(self.stream, "isatty", lambda: False)())
        self.enabled = enabled
        self._last_percent = -1

        logger.debug(f"{action.value} {label}: {self.total} bytes expected")

    @property
    def percentage(self) -> float:
        if self.total <= 0:
            return 0.0
        return min(self.position / self.total * 100, 100.0)

    def inc(self, delta: int) -> None:
        """Advance the bar by delta bytes."""
        self.position += delta
        if not self.enabled:
            return

        percent = int(self.percentage)
        if percent != self._last_percent:
            self._last_percent = percent
            self._draw()

    def _draw(self) -> None:
        filled = int(BAR_WIDTH * self.percentage / 100)
        bar = "#" * filled + "-" * (BAR_WIDTH - filled)
        self.stream.write(
            f"\r{self.action.value:>10} {self.label} [{bar}] {self.percentage:5.1f}%"
        )
        self.stream.flush()

    def finish_and_clear(self) -> None:
        """Erase the bar line."""
        if self.enabled:
            width = BAR_WIDTH + len(self.label) + 22
            self.stream.write("\r" + " " * width + "\r")
            self.stream.flush()
        logger.debug(f"{self.action.value} {self.label}: {self.position} bytes done")


ProgressFactory = Callable[[Action, str, int], ProgressBar]


def progress_bar(action: Action, label: str, total: int) -> ProgressBar:
    """Default progress sink factory."""
    return ProgressBar(action, label, total)


def silent_progress(action: Action, label: str, total: int) -> ProgressBar:
    """Progress sink factory that never renders."""
    return ProgressBar(action, label, total, enabled=False)


class TransferProgress:
    """
    Adapts cumulative (bytes_done, total) callbacks to a progress sink.

    The sink is created on the first callback, once the total is known.
    """

    def __init__(self, factory: ProgressFactory, action: Action, label: str):
        self._factory = factory
        self._action = action
        self._label = label
        self.bar: Optional[ProgressBar] = None

    def __call__(self, done: int, total: int) -> None:
        if self.bar is None:
            self.bar = self._factory(self._action, self._label, total)
        self.bar.inc(done - self.bar.position)

    def finish(self) -> None:
        if self.bar is not None:
            self.bar.finish_and_clear()
