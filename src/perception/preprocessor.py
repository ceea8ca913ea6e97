"""Frame preprocessing: crop a captured window to the playfield and
resize it to the game's canonical resolution.

A captured window image contains the window chrome (title bar at the
top, a thin border at the bottom) around a letter-boxed playfield.
:class:`FramePreprocessor` removes the chrome, cuts the playfield out
at the game's aspect ratio and scales it down to the native game
resolution.  On a high-density display a 1000+ px tall window shrinks
to 288 px, so the tile classifier sees small, consistent 8x8 patches
instead of raw high-DPI pixels.

Border sizes are expressed in logical points and converted to pixels
with the display's backing scale factor, so the crop stays correct on
both standard and Retina/HiDPI displays.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import cv2
import numpy as np

from .geometry import GameGeometry

logger = logging.getLogger(__name__)


class FrameTooSmallError(ValueError):
    """Raised when a frame cannot contain a playfield after cropping."""


@dataclass(frozen=True)
class CropRect:
    """Playfield rectangle in captured-frame pixel coordinates.

    Coordinates are floats; :meth:`FramePreprocessor.crop` converts them
    to whole pixels when slicing.
    """

    x: float
    y: float
    width: float
    height: float

    @property
    def aspect(self) -> float:
        """Width/height ratio."""
        return self.width / self.height


@dataclass
class CapturedFrame:
    """Raw window bitmap and the scheduler time it was captured at.

    Parameters
    ----------
    image : np.ndarray
        BGR image as ``(H, W, 3)`` uint8 array.
    timestamp : float
        Capture time in scheduler clock seconds.
    """

    image: np.ndarray
    timestamp: float


@dataclass
class CanonicalFrame:
    """Cropped and resized frame at the canonical game resolution.

    Parameters
    ----------
    image : np.ndarray
        BGR image as ``(game_height, game_width, 3)`` uint8 array.
    timestamp : float
        Timestamp of the :class:`CapturedFrame` this was built from.
    scale_factor : float
        Backing scale factor used to preprocess the frame.
    """

    image: np.ndarray
    timestamp: float
    scale_factor: float


def _check_scale(scale_factor: float) -> None:
    if not scale_factor > 0 or not math.isfinite(scale_factor):
        raise ValueError(f"Scale factor must be a positive number, got {scale_factor}")


class FramePreprocessor:
    """Crops and resizes captured frames.

    All methods are pure functions of their arguments and the (frozen)
    geometry; a single instance can be shared freely.

    Parameters
    ----------
    geometry : GameGeometry
        Game dimensions and window border sizes.
    """

    def __init__(self, geometry: GameGeometry | None = None) -> None:
        self.geometry = geometry or GameGeometry()

    @property
    def canonical_size(self) -> tuple[int, int]:
        """``(width, height)`` of every resized frame in pixels."""
        return self.geometry.game_width, self.geometry.game_height

    def crop_rect(self, width: int, height: int, scale_factor: float) -> CropRect:
        """Compute the playfield rectangle for a ``width`` x ``height`` frame.

        Parameters
        ----------
        width : int
            Captured frame width in pixels.
        height : int
            Captured frame height in pixels.
        scale_factor : float
            Display backing scale factor (pixels per point).

        Returns
        -------
        CropRect
            Rectangle starting below the top border, spanning the frame
            height minus both borders, with width/height equal to
            :attr:`GameGeometry.playfield_aspect`, centred horizontally.

        Raises
        ------
        ValueError
            If ``scale_factor`` is not positive.
        FrameTooSmallError
            If the borders leave no room for a playfield.
        """
        _check_scale(scale_factor)
        top = self.geometry.top_border_pt * scale_factor
        bottom = self.geometry.bottom_border_pt * scale_factor
        crop_height = height - top - bottom
        if crop_height <= 0:
            raise FrameTooSmallError(
                f"Frame height {height}px leaves no playfield after "
                f"{top + bottom:.0f}px of borders"
            )
        crop_width = crop_height * self.geometry.playfield_aspect
        if crop_width > width:
            raise FrameTooSmallError(
                f"Frame width {width}px is narrower than the playfield "
                f"({crop_width:.1f}px)"
            )
        return CropRect(
            x=(width - crop_width) / 2.0,
            y=top,
            width=crop_width,
            height=crop_height,
        )

    def crop(self, image: np.ndarray, scale_factor: float) -> np.ndarray:
        """Cut the playfield out of a captured window image.

        Returns a view into ``image``; the caller must not write to it.
        """
        rect = self.crop_rect(image.shape[1], image.shape[0], scale_factor)
        x0 = int(round(rect.x))
        y0 = int(round(rect.y))
        w = int(math.floor(rect.width))
        h = int(round(rect.height))
        if w <= 0 or h <= 0:
            raise FrameTooSmallError(f"Playfield crop is empty ({w}x{h}px)")
        return image[y0 : y0 + h, x0 : x0 + w]

    def resize(self, image: np.ndarray, scale_factor: float) -> np.ndarray:
        """Resize a cropped playfield to the canonical game resolution.

        The game is drawn at ``game_size / scale_factor`` points, which
        the backing store renders at ``game_size`` pixels, so the target
        is :attr:`canonical_size` for every scale factor.  The scale
        factor is only validated here.  The output always has shape
        ``(game_height, game_width, ...)`` whatever the input size.
        """
        _check_scale(scale_factor)
        if image.size == 0:
            raise FrameTooSmallError("Cannot resize an empty image")
        return cv2.resize(image, self.canonical_size, interpolation=cv2.INTER_AREA)

    def preprocess(self, frame: CapturedFrame, scale_factor: float) -> CanonicalFrame:
        """Crop and resize one captured frame."""
        cropped = self.crop(frame.image, scale_factor)
        resized = self.resize(cropped, scale_factor)
        return CanonicalFrame(
            image=resized,
            timestamp=frame.timestamp,
            scale_factor=scale_factor,
        )
