#!/usr/bin/env python
"""Run the perception pipeline against a live game window.

Acquires the window named in the session config, captures it at the
configured rate and logs a summary of every board.  Optionally prints
each board as ASCII and saves the canonical frames as PNGs.

Usage::

    python scripts/run_perception.py
    python scripts/run_perception.py --duration 30 --render
    python scripts/run_perception.py --config configs/games/pacman.yaml --save-frames -v

Exit codes: 0 on success, 1 if the tile classifier could not be loaded,
2 if the game window was not found.
"""

from __future__ import annotations

import logging
import sys

sys.path.insert(0, str(__import__("pathlib").Path(__file__).resolve().parent.parent))

from scripts._cli_utils import (  # noqa: E402
    PROJECT_ROOT,
    base_argparser,
    ensure_output_dir,
    save_frame_png,
    setup_logging,
    timestamp_str,
)

logger = logging.getLogger(__name__)


class BoardLogger:
    """Session listener that logs boards as they arrive."""

    def __init__(self, render: bool = False) -> None:
        self.render = render
        self.boards = 0
        self.acquired = False
        self.failed = False

    def on_window_acquired(self, metadata) -> None:
        self.acquired = True
        logger.info(
            "Window '%s' (%s) at %s", metadata.title, metadata.application, metadata.bounds
        )

    def on_acquisition_failed(self, timeout_s: float) -> None:
        self.failed = True
        logger.error("Game window not found within %.1fs", timeout_s)

    def on_board(self, board) -> None:
        from src.perception import CellState, describe

        self.boards += 1
        counts = board.counts()
        summary = ", ".join(
            f"{describe(state)}={counts[state]}"
            for state in (
                CellState.PACMAN,
                CellState.PELLET,
                CellState.POWER_PELLET,
                CellState.FRIGHTENED_GHOST,
                CellState.UNKNOWN,
            )
        )
        logger.info("Board #%d t=%.2f: %s", self.boards, board.timestamp, summary)
        if self.render:
            print(board.render())


def main() -> int:
    parser = base_argparser("Acquire the game window and classify live boards.")
    parser.add_argument(
        "--duration",
        type=float,
        default=30.0,
        help="Seconds to run after starting (default: %(default)s)",
    )
    parser.add_argument(
        "--render",
        action="store_true",
        help="Print every board as ASCII",
    )
    parser.add_argument(
        "--save-frames",
        action="store_true",
        help="Save canonical frames as PNGs under the output directory",
    )
    args = parser.parse_args()
    setup_logging(args.verbose)

    from games import load_game_plugin
    from src.capture import WindowCapture
    from src.orchestrator import PerceptionSession, load_session_config

    # -- Resolve config from plugin defaults -------------------------------
    plugin = load_game_plugin(args.game)
    config_path = args.config if args.config else PROJECT_ROOT / plugin.default_config
    config = load_session_config(config_path.stem, configs_dir=config_path.parent)
    logger.info("Game plugin: %s, config: %s", plugin.game_name, config_path)
    listener = BoardLogger(render=args.render)

    class FrameSavingSession(PerceptionSession):
        frames_dir = None

        def on_frame(self, frame) -> None:
            if self.frames_dir is not None:
                save_frame_png(frame.image, self.frames_dir / f"frame_{listener.boards:05d}.png")
            super().on_frame(frame)

    session = FrameSavingSession.from_config(config, WindowCapture(), listener=listener)
    if args.save_frames:
        session.frames_dir = ensure_output_dir(args.output_dir, f"frames_{timestamp_str()}")
        logger.info("Saving canonical frames to %s", session.frames_dir)

    with session:
        if not session.start():
            return 1
        session.run(timeout_s=args.duration)

    logger.info("Done: %d boards", listener.boards)
    if listener.failed or not listener.acquired:
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
