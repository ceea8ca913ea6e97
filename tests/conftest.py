"""Shared pytest fixtures for the perception test suite.

Provides a simulated clock and a serial scheduler driven by it, an
in-memory window source, and a scripted tile classifier, so the
acquisition / capture state machines can be exercised deterministically
without a display, pywin32 or a trained model.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

import numpy as np
import pytest

from src.capture.scheduler import SerialScheduler
from src.capture.window_source import WindowMetadata, WindowSource
from src.perception.geometry import GameGeometry
from src.perception.tiles import TileType

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Simulated time
# ---------------------------------------------------------------------------


class FakeClock:
    """Monotonic clock whose ``sleep`` advances time instantly."""

    def __init__(self, start: float = 1000.0) -> None:
        self.t = start
        self.slept: list[float] = []

    def time(self) -> float:
        return self.t

    def sleep(self, seconds: float) -> None:
        self.slept.append(seconds)
        self.t += seconds

    def advance(self, seconds: float) -> None:
        self.t += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scheduler(clock: FakeClock) -> SerialScheduler:
    return SerialScheduler(clock=clock.time, sleep=clock.sleep)


# ---------------------------------------------------------------------------
# Window source
# ---------------------------------------------------------------------------


class FakeWindowSource(WindowSource):
    """In-memory window source.

    ``windows`` may be a list (returned on every poll) or a callable
    receiving the poll index.  ``frames`` maps a capture index to an
    image or ``None`` (capture miss); by default every capture returns
    ``frame``.
    """

    def __init__(
        self,
        windows: Sequence[WindowMetadata] | Callable[[int], Sequence[WindowMetadata]] = (),
        frame: Optional[np.ndarray] = None,
        scale: float = 2.0,
    ) -> None:
        self.windows = windows
        self.frame = frame
        self.scale = scale
        self.fail_captures: set[int] = set()
        self.list_calls = 0
        self.capture_calls: list[int] = []

    def list_windows(self) -> list[WindowMetadata]:
        index = self.list_calls
        self.list_calls += 1
        if callable(self.windows):
            return list(self.windows(index))
        return list(self.windows)

    def capture(self, window_id: int) -> Optional[np.ndarray]:
        index = len(self.capture_calls)
        self.capture_calls.append(window_id)
        if index in self.fail_captures or self.frame is None:
            return None
        return self.frame.copy()

    def scale_factor(self, window_id: int) -> float:
        return self.scale


@pytest.fixture
def pacman_window() -> WindowMetadata:
    return WindowMetadata(
        application="Pacman",
        title="Pac-Man",
        window_id=4242,
        bounds=(100, 100, 600, 500),
    )


@pytest.fixture
def other_windows() -> list[WindowMetadata]:
    return [
        WindowMetadata("Finder", "Downloads", 1),
        WindowMetadata("Pacman", "Preferences", 2),
        WindowMetadata("Terminal", "Pac-Man", 3),
    ]


@pytest.fixture
def window_frame() -> np.ndarray:
    """A 1200x1000 BGR window capture at scale factor 2."""
    frame = np.zeros((1000, 1200, 3), dtype=np.uint8)
    frame[:, :, 0] = 40
    return frame


# ---------------------------------------------------------------------------
# Classifier
# ---------------------------------------------------------------------------


class ScriptedClassifier:
    """Classifier stand-in that answers from a function of the patch."""

    def __init__(self, rule: Callable[[np.ndarray], TileType] | None = None) -> None:
        self.rule = rule or (lambda _patch: TileType.BLANK)
        self.patches_seen = 0
        self.batches = 0
        self.loaded = True
        self.load_result = True

    def load(self) -> bool:
        self.loaded = self.load_result
        return self.load_result

    def is_loaded(self) -> bool:
        return self.loaded

    def classify(self, patch: np.ndarray) -> TileType:
        return self.classify_batch([patch])[0]

    def classify_batch(self, patches: Sequence[np.ndarray]) -> list[TileType]:
        self.batches += 1
        self.patches_seen += len(patches)
        return [self.rule(p) for p in patches]


@pytest.fixture
def geometry() -> GameGeometry:
    return GameGeometry()


@pytest.fixture
def classifier() -> ScriptedClassifier:
    return ScriptedClassifier()
