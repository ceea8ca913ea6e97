"""Tests for WindowCapture (pywin32 GDI backend).

Tests cover:

- pywin32 availability guard
- list_windows() enumeration: visible titled windows only, process
  name lookup via psutil, bounds from the window rect
- capture() via BitBlt (mocked GDI pipeline), BGRA -> BGR
- capture() returns None for missing / zero-size windows and GDI errors
- GDI resources released on success and failure
- scale_factor() from the window DPI
"""

from __future__ import annotations

import importlib
import sys
import types
from unittest import mock

import numpy as np
import psutil
import pytest

# ── Helpers ─────────────────────────────────────────────────────────


def _make_mock_pywin32(windows=None):
    """Create mock win32gui/win32ui/win32con/win32process modules.

    ``windows`` maps HWND -> (title, visible, rect, pid).
    """
    windows = windows or {}
    win32gui = mock.MagicMock(name="win32gui")
    win32ui = mock.MagicMock(name="win32ui")
    win32process = mock.MagicMock(name="win32process")
    win32con = types.ModuleType("win32con")
    win32con.SRCCOPY = 0x00CC0020  # type: ignore[attr-defined]

    def enum_windows(callback, extra):
        for hwnd in windows:
            callback(hwnd, extra)

    win32gui.EnumWindows.side_effect = enum_windows
    win32gui.IsWindowVisible.side_effect = lambda h: windows[h][1]
    win32gui.GetWindowText.side_effect = lambda h: windows[h][0]
    win32gui.GetWindowRect.side_effect = lambda h: windows[h][2]
    win32process.GetWindowThreadProcessId.side_effect = lambda h: (1, windows[h][3])

    return {
        "win32gui": win32gui,
        "win32ui": win32ui,
        "win32con": win32con,
        "win32process": win32process,
    }


def _import_window_capture(modules_patch: dict):
    """Import the window_capture module with mocked win32 modules.

    Forces a fresh module load so the ``_PYWIN32_AVAILABLE`` flag
    picks up the patched (or absent) modules.
    """
    sys.modules.pop("src.capture.window_capture", None)
    with mock.patch.dict(sys.modules, modules_patch):
        return importlib.import_module("src.capture.window_capture")


def _setup_bitmap(mocks, width, height, fill=0):
    bgra = np.full((height, width, 4), fill, dtype=np.uint8)
    bgra[:, :, 3] = 255
    bitmap = mock.MagicMock(name="bitmap")
    bitmap.GetBitmapBits.return_value = bgra.tobytes()
    mocks["win32ui"].CreateBitmap.return_value = bitmap
    return bitmap


def _fake_process(names):
    def factory(pid):
        if pid not in names:
            raise psutil.NoSuchProcess(pid)
        proc = mock.MagicMock()
        proc.name.return_value = names[pid]
        return proc

    return factory


_WINDOWS = {
    100: ("Pac-Man", True, (10, 20, 610, 520), 500),
    200: ("", True, (0, 0, 10, 10), 501),
    300: ("Hidden", False, (0, 0, 10, 10), 502),
    400: ("Downloads", True, (0, 0, 800, 600), 503),
}


# ── Construction ────────────────────────────────────────────────────


class TestWindowCaptureInit:
    def test_raises_without_pywin32(self):
        sys.modules.pop("src.capture.window_capture", None)
        with mock.patch.dict(
            sys.modules,
            {"win32gui": None, "win32ui": None, "win32con": None, "win32process": None},
        ):
            import src.capture.window_capture as wc_mod

            importlib.reload(wc_mod)
            assert wc_mod._PYWIN32_AVAILABLE is False
            with pytest.raises(RuntimeError, match="pywin32 is required"):
                wc_mod.WindowCapture()

    def test_init_with_pywin32(self):
        wc_mod = _import_window_capture(_make_mock_pywin32())
        assert wc_mod._PYWIN32_AVAILABLE is True
        wc_mod.WindowCapture()


# ── Enumeration ─────────────────────────────────────────────────────


class TestListWindows:
    def test_visible_titled_only(self):
        wc_mod = _import_window_capture(_make_mock_pywin32(_WINDOWS))
        names = {500: "Pacman.exe", 503: "explorer.exe"}
        with mock.patch.object(wc_mod.psutil, "Process", side_effect=_fake_process(names)):
            windows = wc_mod.WindowCapture().list_windows()

        assert [w.window_id for w in windows] == [100, 400]
        pacman = windows[0]
        assert pacman.application == "Pacman"
        assert pacman.title == "Pac-Man"
        assert pacman.bounds == (10, 20, 600, 500)
        assert pacman.matches("Pacman", "Pac-Man")

    def test_missing_process_gives_empty_application(self):
        wc_mod = _import_window_capture(_make_mock_pywin32(_WINDOWS))
        with mock.patch.object(wc_mod.psutil, "Process", side_effect=_fake_process({})):
            windows = wc_mod.WindowCapture().list_windows()
        assert all(w.application == "" for w in windows)

    def test_vanished_window_skipped(self):
        mocks = _make_mock_pywin32(_WINDOWS)

        def rect(hwnd):
            if hwnd == 100:
                raise RuntimeError("invalid window handle")
            return _WINDOWS[hwnd][2]

        mocks["win32gui"].GetWindowRect.side_effect = rect
        wc_mod = _import_window_capture(mocks)
        with mock.patch.object(wc_mod.psutil, "Process", side_effect=_fake_process({})):
            windows = wc_mod.WindowCapture().list_windows()
        assert [w.window_id for w in windows] == [400]

    def test_no_windows(self):
        wc_mod = _import_window_capture(_make_mock_pywin32({}))
        assert wc_mod.WindowCapture().list_windows() == []


# ── Capture ─────────────────────────────────────────────────────────


class TestCapture:
    def test_capture_bgr(self):
        mocks = _make_mock_pywin32(_WINDOWS)
        _setup_bitmap(mocks, 600, 500, fill=77)
        wc_mod = _import_window_capture(mocks)
        with mock.patch("ctypes.windll", create=True) as windll:
            windll.user32.PrintWindow.return_value = 0
            frame = wc_mod.WindowCapture().capture(100)

        assert frame is not None
        assert frame.shape == (500, 600, 3)
        assert frame.dtype == np.uint8
        assert (frame == 77).all()

    def test_bitblt_fallback_when_printwindow_fails(self):
        mocks = _make_mock_pywin32(_WINDOWS)
        _setup_bitmap(mocks, 600, 500)
        save_dc = mocks["win32ui"].CreateDCFromHandle.return_value.CreateCompatibleDC.return_value
        wc_mod = _import_window_capture(mocks)
        with mock.patch("ctypes.windll", create=True) as windll:
            windll.user32.PrintWindow.return_value = 0
            wc_mod.WindowCapture().capture(100)
        save_dc.BitBlt.assert_called_once()

    def test_printwindow_success_skips_bitblt(self):
        mocks = _make_mock_pywin32(_WINDOWS)
        _setup_bitmap(mocks, 600, 500)
        save_dc = mocks["win32ui"].CreateDCFromHandle.return_value.CreateCompatibleDC.return_value
        wc_mod = _import_window_capture(mocks)
        with mock.patch("ctypes.windll", create=True) as windll:
            windll.user32.PrintWindow.return_value = 1
            frame = wc_mod.WindowCapture().capture(100)
        assert frame is not None
        save_dc.BitBlt.assert_not_called()
        args = windll.user32.PrintWindow.call_args[0]
        assert args[0] == 100
        assert args[2] == 2

    def test_gdi_cleanup(self):
        mocks = _make_mock_pywin32(_WINDOWS)
        bitmap = _setup_bitmap(mocks, 600, 500)
        mfc_dc = mocks["win32ui"].CreateDCFromHandle.return_value
        save_dc = mfc_dc.CreateCompatibleDC.return_value
        wc_mod = _import_window_capture(mocks)
        with mock.patch("ctypes.windll", create=True) as windll:
            windll.user32.PrintWindow.return_value = 0
            wc_mod.WindowCapture().capture(100)

        mocks["win32gui"].DeleteObject.assert_called_once_with(bitmap.GetHandle())
        save_dc.DeleteDC.assert_called_once()
        mfc_dc.DeleteDC.assert_called_once()
        mocks["win32gui"].ReleaseDC.assert_called_once()

    def test_gdi_error_returns_none_and_cleans_up(self):
        mocks = _make_mock_pywin32(_WINDOWS)
        bitmap = _setup_bitmap(mocks, 600, 500)
        bitmap.GetBitmapBits.side_effect = RuntimeError("GDI failure")
        wc_mod = _import_window_capture(mocks)
        with mock.patch("ctypes.windll", create=True) as windll:
            windll.user32.PrintWindow.return_value = 0
            assert wc_mod.WindowCapture().capture(100) is None
        mocks["win32gui"].DeleteObject.assert_called_once()
        mocks["win32gui"].ReleaseDC.assert_called_once()

    def test_window_gone_returns_none(self):
        mocks = _make_mock_pywin32(_WINDOWS)
        mocks["win32gui"].GetWindowRect.side_effect = RuntimeError("invalid handle")
        wc_mod = _import_window_capture(mocks)
        assert wc_mod.WindowCapture().capture(999) is None
        mocks["win32gui"].GetWindowDC.assert_not_called()

    def test_minimised_window_returns_none(self):
        mocks = _make_mock_pywin32({100: ("Pac-Man", True, (-32000, -32000, -32000, -32000), 500)})
        wc_mod = _import_window_capture(mocks)
        assert wc_mod.WindowCapture().capture(100) is None


# ── Scale factor ────────────────────────────────────────────────────


class TestScaleFactor:
    def test_from_dpi(self):
        wc_mod = _import_window_capture(_make_mock_pywin32(_WINDOWS))
        with mock.patch("ctypes.windll", create=True) as windll:
            windll.user32.GetDpiForWindow.return_value = 192
            assert wc_mod.WindowCapture().scale_factor(100) == 2.0

    def test_zero_dpi_defaults_to_one(self):
        wc_mod = _import_window_capture(_make_mock_pywin32(_WINDOWS))
        with mock.patch("ctypes.windll", create=True) as windll:
            windll.user32.GetDpiForWindow.return_value = 0
            assert wc_mod.WindowCapture().scale_factor(100) == 1.0

    def test_api_unavailable_defaults_to_one(self):
        wc_mod = _import_window_capture(_make_mock_pywin32(_WINDOWS))
        with mock.patch("ctypes.windll", create=True) as windll:
            windll.user32.GetDpiForWindow.side_effect = AttributeError("old Windows")
            assert wc_mod.WindowCapture().scale_factor(100) == 1.0
