"""Target window acquisition.

:class:`AcquisitionStateMachine` polls the window source every 250 ms
until a window with the configured application name and title shows
up, or until the acquisition timeout (10 s) elapses.  Exactly one
terminal notification is delivered per attempt:

- ``listener.on_window_acquired(metadata)`` when the window is found;
- ``listener.on_acquisition_failed(timeout_s)`` on timeout.

States::

    IDLE --start()--> ACQUIRING --match--> ACQUIRED(metadata)
                          |
                          +--timeout--> FAILED(timeout_s)

``start()`` may be called from any state and always begins a fresh
attempt with a fresh timeout clock.  ``cancel()`` abandons a pending
attempt and returns to ``IDLE``.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Optional

from .listener import ListenerRef
from .scheduler import SerialScheduler, TimerHandle
from .window_source import WindowMetadata, WindowSource

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_S = 0.25
DEFAULT_ACQUISITION_TIMEOUT_S = 10.0


class AcquisitionStatus(enum.Enum):
    IDLE = "idle"
    ACQUIRING = "acquiring"
    ACQUIRED = "acquired"
    FAILED = "failed"


@dataclass(frozen=True)
class AcquisitionState:
    """Current acquisition status and its payload.

    ``metadata`` is set only when ``ACQUIRED``; ``timeout_s`` only when
    ``FAILED``.
    """

    status: AcquisitionStatus
    metadata: Optional[WindowMetadata] = None
    timeout_s: Optional[float] = None

    @classmethod
    def idle(cls) -> "AcquisitionState":
        return cls(AcquisitionStatus.IDLE)

    @classmethod
    def acquiring(cls) -> "AcquisitionState":
        return cls(AcquisitionStatus.ACQUIRING)

    @classmethod
    def acquired(cls, metadata: WindowMetadata) -> "AcquisitionState":
        return cls(AcquisitionStatus.ACQUIRED, metadata=metadata)

    @classmethod
    def failed(cls, timeout_s: float) -> "AcquisitionState":
        return cls(AcquisitionStatus.FAILED, timeout_s=timeout_s)


class AcquisitionStateMachine:
    """Finds the target window by exact application name and title.

    Parameters
    ----------
    source : WindowSource
        Window enumeration backend.
    scheduler : SerialScheduler
        Serial execution context the polls run on.
    target_application : str
        Application (process) name the window must belong to.
    target_window : str
        Exact window title.
    poll_interval_s : float
        Seconds between polls.  Default 0.25.
    timeout_s : float
        Seconds after :meth:`start` before the attempt fails.  Default 10.
    listener : object, optional
        Receives ``on_window_acquired`` / ``on_acquisition_failed``.
        Held weakly.
    """

    def __init__(
        self,
        source: WindowSource,
        scheduler: SerialScheduler,
        target_application: str,
        target_window: str,
        poll_interval_s: float = DEFAULT_POLL_INTERVAL_S,
        timeout_s: float = DEFAULT_ACQUISITION_TIMEOUT_S,
        listener: Any = None,
    ) -> None:
        self.source = source
        self.scheduler = scheduler
        self.target_application = target_application
        self.target_window = target_window
        self.poll_interval_s = poll_interval_s
        self.timeout_s = timeout_s
        self.listener = ListenerRef(listener)

        self._state = AcquisitionState.idle()
        self._poll_timer: Optional[TimerHandle] = None
        self._started_at: float = 0.0
        self.polls: int = 0

    @property
    def state(self) -> AcquisitionState:
        return self._state

    @property
    def metadata(self) -> Optional[WindowMetadata]:
        """Metadata of the acquired window, or ``None``."""
        return self._state.metadata

    def start(self) -> None:
        """Begin (or restart) acquisition with a fresh timeout clock."""
        if self._poll_timer is not None:
            logger.debug("Restarting acquisition; cancelling previous poll")
        self._cancel_poll()

        self._started_at = self.scheduler.now()
        self.polls = 0
        self._state = AcquisitionState.acquiring()
        self._poll_timer = self.scheduler.call_every(self.poll_interval_s, self._poll)
        logger.info(
            "Acquiring window '%s' of '%s' (timeout %.1fs)",
            self.target_window,
            self.target_application,
            self.timeout_s,
        )

    def cancel(self) -> None:
        """Abandon a pending attempt.  Safe to call at any time."""
        self._cancel_poll()
        if self._state.status is AcquisitionStatus.ACQUIRING:
            self._state = AcquisitionState.idle()

    def _cancel_poll(self) -> None:
        if self._poll_timer is not None:
            self._poll_timer.cancel()
            self._poll_timer = None

    def _find_target(self) -> Optional[WindowMetadata]:
        try:
            windows = self.source.list_windows()
        except Exception as exc:
            logger.warning("Window enumeration failed: %s", exc)
            return None
        for window in windows:
            if window.matches(self.target_application, self.target_window):
                return window
        return None

    def _poll(self) -> None:
        if self._state.status is not AcquisitionStatus.ACQUIRING:
            return
        self.polls += 1

        target = self._find_target()
        if target is not None:
            self._cancel_poll()
            self._state = AcquisitionState.acquired(target)
            logger.info(
                "Acquired window '%s' (id %s) after %d polls",
                target.title,
                target.window_id,
                self.polls,
            )
            self.listener.notify("on_window_acquired", target)
            return

        elapsed = self.scheduler.now() - self._started_at
        if elapsed > self.timeout_s:
            self._cancel_poll()
            self._state = AcquisitionState.failed(self.timeout_s)
            logger.warning(
                "Window '%s' of '%s' not found within %.1fs",
                self.target_window,
                self.target_application,
                self.timeout_s,
            )
            self.listener.notify("on_acquisition_failed", self.timeout_s)
