"""Window source interface: on-screen window enumeration and capture.

The perception core only ever *reads* from the operating environment.
A :class:`WindowSource` lists the windows currently on screen and
captures the bitmap of one of them.  :class:`~src.capture.WindowCapture`
is the Windows (GDI) implementation; tests use in-memory fakes.
"""

from __future__ import annotations

import abc
from dataclasses import dataclass
from typing import Optional

import numpy as np


@dataclass(frozen=True)
class WindowMetadata:
    """Identifies one on-screen window.

    Parameters
    ----------
    application : str
        Name of the owning application (process name without extension).
    title : str
        Window title.
    window_id : int
        Opaque platform window identifier (HWND on Windows).
    bounds : tuple[int, int, int, int]
        ``(left, top, width, height)`` in screen pixels.
    """

    application: str
    title: str
    window_id: int
    bounds: tuple[int, int, int, int] = (0, 0, 0, 0)

    def matches(self, application: str, title: str) -> bool:
        """Exact match on application name and window title."""
        return self.application == application and self.title == title


class WindowSource(abc.ABC):
    """Read-only access to on-screen windows."""

    @abc.abstractmethod
    def list_windows(self) -> list[WindowMetadata]:
        """Return metadata for every window currently on screen."""

    @abc.abstractmethod
    def capture(self, window_id: int) -> Optional[np.ndarray]:
        """Capture one window.

        Returns
        -------
        np.ndarray or None
            BGR ``(H, W, 3)`` uint8 image, or ``None`` if the window
            could not be captured right now (closed, minimised,
            occluded, ...).
        """

    def scale_factor(self, window_id: int) -> float:
        """Backing scale factor (pixels per point) of the window's display."""
        return 1.0
