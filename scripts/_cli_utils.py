"""Helpers shared by the command-line scripts.

Logging setup with level-coloured tags, the options every script
shares, and a writer for canonical frame dumps.
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

import cv2
import numpy as np

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_OUTPUT_DIR = PROJECT_ROOT / "output"

# Third-party loggers that flood INFO with per-inference chatter.
_NOISY_LOGGERS = ("ultralytics", "PIL", "matplotlib")

_LEVEL_COLORS = {
    logging.DEBUG: "\033[90m",
    logging.INFO: "\033[36m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[1;31m",
}
_RESET = "\033[0m"


class _LevelColorFormatter(logging.Formatter):
    """``[HH:MM:SS.mmm] LEVEL logger: message`` with a coloured tag."""

    def __init__(self, use_color: bool = True) -> None:
        super().__init__()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S.%f")[:-3]
        tag = f"[{stamp}] {record.levelname:<8}"
        if self.use_color:
            tag = f"{_LEVEL_COLORS.get(record.levelno, '')}{tag}{_RESET}"
        line = f"{tag} {record.name}: {record.getMessage()}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def setup_logging(verbose: bool = False) -> logging.Logger:
    """Send all logging to stdout; DEBUG when ``verbose``, else INFO.

    Replaces any handlers already on the root logger, so calling it
    twice does not duplicate output.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_LevelColorFormatter(use_color=sys.stdout.isatty()))

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return root


def base_argparser(description: str) -> argparse.ArgumentParser:
    """Parser with the options every perception script accepts."""
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument(
        "--game",
        default="pacman",
        help="Game plugin under games/ (default: %(default)s)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Session config YAML (default: the game plugin's default_config)",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help=f"Where dumps are written (default: {DEFAULT_OUTPUT_DIR})",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def ensure_output_dir(base: Path | None = None, sub: str | None = None) -> Path:
    """Create ``base/sub`` (``base`` defaults to ``output/``) and return it."""
    out = Path(base) if base is not None else DEFAULT_OUTPUT_DIR
    if sub:
        out = out / sub
    out.mkdir(parents=True, exist_ok=True)
    return out


def timestamp_str() -> str:
    """UTC timestamp usable in file and directory names."""
    return datetime.now(tz=timezone.utc).strftime("%Y%m%d_%H%M%S")


def save_frame_png(image: np.ndarray, path: Path) -> None:
    """Write a BGR frame as PNG.

    Raises
    ------
    OSError
        If OpenCV could not write the file.
    """
    if not cv2.imwrite(str(path), image):
        raise OSError(f"Could not write frame to {path}")
