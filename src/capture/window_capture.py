"""Window enumeration and frame capture using Windows GDI via pywin32.

Lists visible top-level windows (title, owning process, bounds) and
captures a window by HWND, returning BGR numpy arrays ready for the
frame preprocessor.

Uses ``PrintWindow`` with ``PW_RENDERFULLCONTENT`` (flag 2) to capture
hardware-accelerated / composited windows that return black frames
with plain BitBlt.  The full window (including its title bar) is
captured; the preprocessor crops the chrome away.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

import numpy as np
import psutil

from .window_source import WindowMetadata, WindowSource

try:
    import win32con
    import win32gui
    import win32process
    import win32ui

    _PYWIN32_AVAILABLE = True
except ImportError:
    _PYWIN32_AVAILABLE = False

logger = logging.getLogger(__name__)

# PW_RENDERFULLCONTENT -- render hardware-accelerated layers into the DC.
_PW_RENDERFULLCONTENT = 2

# Windows' baseline DPI; GetDpiForWindow / 96 is the backing scale factor.
_BASE_DPI = 96.0


def _process_name(pid: int) -> str:
    """Return the executable name of ``pid`` without its extension."""
    try:
        name = psutil.Process(pid).name()
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return ""
    return os.path.splitext(name)[0]


class WindowCapture(WindowSource):
    """Lists and captures Windows application windows using GDI.

    Raises
    ------
    RuntimeError
        If pywin32 is not installed.
    """

    def __init__(self) -> None:
        if not _PYWIN32_AVAILABLE:
            raise RuntimeError(
                "pywin32 is required for WindowCapture. "
                "Install it with: pip install pywin32"
            )

    # -- Enumeration ---------------------------------------------------

    def list_windows(self) -> list[WindowMetadata]:
        """Return metadata for every visible, titled top-level window."""
        windows: list[WindowMetadata] = []

        def _enum_cb(hwnd: int, _extra: object) -> bool:
            if not win32gui.IsWindowVisible(hwnd):
                return True
            title = win32gui.GetWindowText(hwnd)
            if not title:
                return True
            try:
                windows.append(self._describe(hwnd, title))
            except Exception as exc:
                # Windows can disappear between EnumWindows and the lookup.
                logger.debug("Skipping HWND %s (%s): %s", hwnd, title, exc)
            return True

        win32gui.EnumWindows(_enum_cb, None)
        return windows

    def _describe(self, hwnd: int, title: str) -> WindowMetadata:
        left, top, right, bottom = win32gui.GetWindowRect(hwnd)
        _thread_id, pid = win32process.GetWindowThreadProcessId(hwnd)
        return WindowMetadata(
            application=_process_name(pid),
            title=title,
            window_id=int(hwnd),
            bounds=(left, top, right - left, bottom - top),
        )

    # -- Capture -------------------------------------------------------

    def scale_factor(self, window_id: int) -> float:
        """Backing scale factor from the window's DPI (1.0 if unknown)."""
        try:
            import ctypes

            dpi = ctypes.windll.user32.GetDpiForWindow(int(window_id))
        except (AttributeError, OSError, ValueError):
            return 1.0
        return dpi / _BASE_DPI if dpi else 1.0

    def capture(self, window_id: int) -> Optional[np.ndarray]:
        """Capture a single frame of the window ``window_id``.

        Returns
        -------
        np.ndarray or None
            BGR image as a ``(height, width, 3)`` uint8 array, or
            ``None`` if the window is gone, minimised or the GDI
            capture fails.
        """
        try:
            left, top, right, bottom = win32gui.GetWindowRect(window_id)
        except Exception as exc:
            logger.debug("No window rect for HWND %s: %s", window_id, exc)
            return None
        width = right - left
        height = bottom - top
        if width <= 0 or height <= 0:
            logger.debug("HWND %s has zero size (%dx%d)", window_id, width, height)
            return None

        hwnd_dc = None
        mfc_dc = None
        save_dc = None
        bitmap = None
        try:
            hwnd_dc = win32gui.GetWindowDC(window_id)
            mfc_dc = win32ui.CreateDCFromHandle(hwnd_dc)
            save_dc = mfc_dc.CreateCompatibleDC()

            bitmap = win32ui.CreateBitmap()
            bitmap.CreateCompatibleBitmap(mfc_dc, width, height)
            save_dc.SelectObject(bitmap)

            captured = False
            try:
                import ctypes

                result = ctypes.windll.user32.PrintWindow(
                    int(window_id),
                    int(save_dc.GetSafeHdc()),
                    _PW_RENDERFULLCONTENT,
                )
                captured = bool(result)
            except (TypeError, ValueError, OSError, AttributeError):
                captured = False

            if not captured:
                # Plain BitBlt works for software-rendered windows.
                save_dc.BitBlt(
                    (0, 0),
                    (width, height),
                    mfc_dc,
                    (0, 0),
                    win32con.SRCCOPY,
                )

            bmpstr = bitmap.GetBitmapBits(True)
            img = np.frombuffer(bmpstr, dtype=np.uint8)
            img = img.reshape((height, width, 4))  # BGRA
            img = img[:, :, :3].copy()  # Drop alpha -> BGR
        except Exception as exc:
            logger.debug("Frame capture failed for HWND %s: %s", window_id, exc)
            return None
        finally:
            # Always clean up GDI resources.
            if bitmap is not None:
                win32gui.DeleteObject(bitmap.GetHandle())
            if save_dc is not None:
                save_dc.DeleteDC()
            if mfc_dc is not None:
                mfc_dc.DeleteDC()
            if hwnd_dc is not None:
                win32gui.ReleaseDC(window_id, hwnd_dc)

        return img
