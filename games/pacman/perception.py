"""Pac-Man perception constants.

Native arcade resolution is 224x288 pixels, drawn on an 8x8 tile grid
of 28 columns by 36 rows.  The top three rows hold the score display
and the bottom two the lives / fruit counters; neither is part of the
maze, so the board assembler never classifies them.
"""

from src.perception.board import CellRegion
from src.perception.geometry import GameGeometry
from src.perception.tiles import all_types, describe

PACMAN_GEOMETRY = GameGeometry(
    game_width=224,
    game_height=288,
    tile_width=8,
    tile_height=8,
    top_border_pt=20.0,
    bottom_border_pt=2.0,
)

PACMAN_IGNORE_REGIONS: tuple[CellRegion, ...] = (
    CellRegion(row_start=0, row_stop=3),  # score
    CellRegion(row_start=34, row_stop=36),  # lives / fruit
)

PACMAN_CLASSES: list[str] = [describe(t) for t in all_types()]
"""Classifier class names, in tile-type order.

Order must match the class folders the tile classifier was trained on.
"""
