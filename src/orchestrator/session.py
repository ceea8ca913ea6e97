"""Perception session -- wires acquisition, capture and board assembly.

:class:`PerceptionSession` owns one serial scheduler and the whole
perception pipeline::

    AcquisitionStateMachine --acquired--> CaptureScheduler
        --frame--> BoardAssembler --board--> listener

Outbound notifications go to a single listener object, held weakly,
which may implement any of:

- ``on_window_acquired(metadata)``
- ``on_acquisition_failed(timeout_s)``
- ``on_board(board)``

Typical usage::

    from src.capture import WindowCapture
    from src.orchestrator import PerceptionSession, load_session_config

    config = load_session_config("pacman")
    with PerceptionSession.from_config(config, WindowCapture(), listener=agent) as session:
        if session.start():
            session.run(timeout_s=60)
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Iterable, Optional

from games import load_game_plugin
from src.capture.acquisition import (
    AcquisitionState,
    AcquisitionStateMachine,
    AcquisitionStatus,
)
from src.capture.capture_scheduler import CaptureScheduler
from src.capture.listener import ListenerRef
from src.capture.scheduler import SerialScheduler
from src.capture.window_source import WindowMetadata, WindowSource
from src.perception.board import Board, BoardAssembler, CellRegion
from src.perception.geometry import GameGeometry
from src.perception.preprocessor import CanonicalFrame, FramePreprocessor
from src.perception.tile_classifier import TileClassifier

from .config import SessionConfig

logger = logging.getLogger(__name__)


class PerceptionListener:
    """No-op base class for session listeners.

    Subclass and override the callbacks you need.  Plain objects with
    any subset of these methods work as well.
    """

    def on_window_acquired(self, metadata: WindowMetadata) -> None:
        """The target window was found."""

    def on_acquisition_failed(self, timeout_s: float) -> None:
        """The target window did not appear within ``timeout_s``."""

    def on_board(self, board: Board) -> None:
        """A board was produced for the latest captured frame."""


class PerceptionSession:
    """Runs the perception pipeline against one target window.

    Parameters
    ----------
    source : WindowSource
        Window enumeration and capture backend.
    classifier : TileClassifier
        Tile classifier; loaded by :meth:`start` if not yet loaded.
    target_application : str
        Application (process) name owning the game window.
    target_window : str
        Exact title of the game window.
    geometry : GameGeometry
        Game geometry and window chrome.
    ignore_regions : iterable of CellRegion
        HUD cells never classified.
    scheduler : SerialScheduler, optional
        Serial execution context; a real-time one is created if omitted.
    poll_interval_s, acquisition_timeout_s, capture_fps : float
        Timing of acquisition polls and capture ticks.
    listener : object, optional
        Receives session notifications.  Held weakly.
    """

    def __init__(
        self,
        source: WindowSource,
        classifier: TileClassifier,
        target_application: str,
        target_window: str,
        geometry: GameGeometry | None = None,
        ignore_regions: Iterable[CellRegion] = (),
        scheduler: Optional[SerialScheduler] = None,
        poll_interval_s: float = 0.25,
        acquisition_timeout_s: float = 10.0,
        capture_fps: float = 11.0,
        listener: Any = None,
    ) -> None:
        self.scheduler = scheduler or SerialScheduler()
        self.classifier = classifier
        self.geometry = geometry or GameGeometry()
        self.listener = ListenerRef(listener)

        self.acquisition = AcquisitionStateMachine(
            source,
            self.scheduler,
            target_application=target_application,
            target_window=target_window,
            poll_interval_s=poll_interval_s,
            timeout_s=acquisition_timeout_s,
            listener=self,
        )
        self.capture = CaptureScheduler(
            source,
            self.acquisition,
            FramePreprocessor(self.geometry),
            self.scheduler,
            fps=capture_fps,
            listener=self,
        )
        self.assembler = BoardAssembler(classifier, self.geometry, ignore_regions)

    @classmethod
    def from_config(
        cls,
        config: SessionConfig,
        source: WindowSource,
        scheduler: Optional[SerialScheduler] = None,
        listener: Any = None,
    ) -> "PerceptionSession":
        """Build a session from a :class:`SessionConfig` and its game plugin.

        The plugin supplies geometry, ignore regions, the expected
        classifier class names, and the weights path when the config
        leaves ``weights_path`` unset.
        """
        plugin = load_game_plugin(config.game)
        geometry = dataclasses.replace(
            plugin.geometry,
            top_border_pt=config.top_border_pt,
            bottom_border_pt=config.bottom_border_pt,
        )
        weights = (
            config.weights_path if config.weights_path is not None else plugin.default_weights
        )
        classifier = TileClassifier(
            weights_path=weights,
            device=config.device,
            confidence_threshold=config.confidence_threshold,
            img_size=config.img_size,
            class_names=plugin.class_names,
        )
        return cls(
            source,
            classifier,
            target_application=config.target_application,
            target_window=config.target_window,
            geometry=geometry,
            ignore_regions=plugin.ignore_regions,
            scheduler=scheduler,
            poll_interval_s=config.poll_interval_s,
            acquisition_timeout_s=config.acquisition_timeout_s,
            capture_fps=config.capture_fps,
            listener=listener,
        )

    # -- Lifecycle -----------------------------------------------------

    @property
    def state(self) -> AcquisitionState:
        return self.acquisition.state

    def start(self) -> bool:
        """Load the classifier and begin acquiring the target window.

        Returns
        -------
        bool
            ``False`` if the classifier could not be loaded; nothing is
            started in that case.
        """
        if not self.classifier.is_loaded() and not self.classifier.load():
            logger.error("Tile classifier failed to load; not starting acquisition")
            return False
        self.capture.stop_capture()
        self.acquisition.start()
        return True

    def stop(self) -> None:
        """Cancel acquisition and capture.  Idempotent."""
        self.acquisition.cancel()
        self.capture.stop_capture()

    def run(self, timeout_s: Optional[float] = None) -> None:
        """Drive the scheduler until stopped, idle, or ``timeout_s`` elapses."""
        self.scheduler.run(timeout=timeout_s)

    def close(self) -> None:
        self.stop()
        self.scheduler.stop()

    def __enter__(self) -> "PerceptionSession":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    # -- Pipeline callbacks --------------------------------------------

    def on_window_acquired(self, metadata: WindowMetadata) -> None:
        self.listener.notify("on_window_acquired", metadata)
        # The listener may have stopped or restarted the session.
        if self.acquisition.state.status is AcquisitionStatus.ACQUIRED:
            self.capture.start_capture()

    def on_acquisition_failed(self, timeout_s: float) -> None:
        self.listener.notify("on_acquisition_failed", timeout_s)

    def on_frame(self, frame: CanonicalFrame) -> None:
        board = self.assembler.assemble(frame)
        self.listener.notify("on_board", board)
