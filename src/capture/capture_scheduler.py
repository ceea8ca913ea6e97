"""Periodic capture of the acquired window.

Once the :class:`~src.capture.acquisition.AcquisitionStateMachine` has
found the target window, :class:`CaptureScheduler` captures it about
11 times per second, preprocesses each bitmap into a
:class:`~src.perception.CanonicalFrame` and hands it to
``listener.on_frame(frame)``.

A tick that cannot capture the window (minimised, occluded, closed)
delivers nothing and raises nothing; the next tick tries again.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from src.perception.preprocessor import (
    CapturedFrame,
    FramePreprocessor,
    FrameTooSmallError,
)

from .acquisition import AcquisitionStateMachine, AcquisitionStatus
from .listener import ListenerRef
from .scheduler import SerialScheduler, TimerHandle
from .window_source import WindowSource

logger = logging.getLogger(__name__)

DEFAULT_CAPTURE_FPS = 11.0


class TickScope:
    """Holds the buffers of one capture tick and drops them on exit.

    Everything passed through :meth:`hold` is released when the ``with``
    block ends, whichever way it ends, so peak memory stays at about one
    frame's worth of buffers no matter how many ticks have run.
    """

    def __init__(self) -> None:
        self._held: list[Any] = []

    def hold(self, obj: Any) -> Any:
        self._held.append(obj)
        return obj

    @property
    def held(self) -> int:
        return len(self._held)

    def release(self) -> None:
        for obj in self._held:
            # Drop the pixel data even if a caller kept the wrapper.
            if hasattr(obj, "image"):
                obj.image = None
        self._held.clear()

    def __enter__(self) -> "TickScope":
        return self

    def __exit__(self, *_: object) -> None:
        self.release()


class CaptureScheduler:
    """Captures the acquired window on a fixed cadence.

    Parameters
    ----------
    source : WindowSource
        Capture backend.
    acquisition : AcquisitionStateMachine
        Provides the acquired window; capture only starts once it is
        ``ACQUIRED``.
    preprocessor : FramePreprocessor
        Crops and resizes each capture.
    scheduler : SerialScheduler
        Serial execution context the ticks run on.
    fps : float
        Capture rate.  Default 11.
    listener : object, optional
        Receives ``on_frame(CanonicalFrame)``.  Held weakly.
    """

    def __init__(
        self,
        source: WindowSource,
        acquisition: AcquisitionStateMachine,
        preprocessor: FramePreprocessor,
        scheduler: SerialScheduler,
        fps: float = DEFAULT_CAPTURE_FPS,
        listener: Any = None,
    ) -> None:
        if fps <= 0:
            raise ValueError(f"Capture rate must be positive, got {fps}")
        self.source = source
        self.acquisition = acquisition
        self.preprocessor = preprocessor
        self.scheduler = scheduler
        self.interval_s = 1.0 / fps
        self.listener = ListenerRef(listener)

        self._tick_timer: Optional[TimerHandle] = None
        self._window_id: Optional[int] = None

    @property
    def capturing(self) -> bool:
        return self._tick_timer is not None

    def start_capture(self) -> bool:
        """Start ticking.  Returns ``False`` unless a window is acquired."""
        state = self.acquisition.state
        if state.status is not AcquisitionStatus.ACQUIRED or state.metadata is None:
            logger.debug("start_capture() ignored: acquisition is %s", state.status.value)
            return False

        self.stop_capture()
        self._window_id = state.metadata.window_id
        self._tick_timer = self.scheduler.call_every(self.interval_s, self._tick)
        logger.info(
            "Capturing window id %s every %.0fms",
            self._window_id,
            self.interval_s * 1000,
        )
        return True

    def stop_capture(self) -> None:
        """Stop ticking.  Safe to call repeatedly or before starting."""
        if self._tick_timer is not None:
            self._tick_timer.cancel()
            self._tick_timer = None
            logger.debug("Capture stopped")
        self._window_id = None

    def _tick(self) -> None:
        window_id = self._window_id
        if window_id is None:
            return

        with TickScope() as scope:
            image = self.source.capture(window_id)
            if image is None:
                logger.debug("No frame from window id %s this tick", window_id)
                return
            captured = scope.hold(CapturedFrame(image=image, timestamp=self.scheduler.now()))
            scale = self.source.scale_factor(window_id)
            try:
                canonical = scope.hold(self.preprocessor.preprocess(captured, scale))
            except FrameTooSmallError as exc:
                logger.debug("Skipping frame: %s", exc)
                return
            self.listener.notify("on_frame", canonical)
