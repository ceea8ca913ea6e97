"""Tile taxonomy for the maze board.

Two closed enumerations share one numeric code space:

- :class:`TileType` -- the 13 values a tile classifier may produce.
- :class:`CellState` -- the values a board cell may hold: every
  :class:`TileType` plus :attr:`CellState.IGNORE` for cells that are
  deliberately not classified (score rows, status bar, ...).

Keeping ``IGNORE`` out of :class:`TileType` means a classifier cannot
return it.  Only the board assembler produces ``IGNORE`` cells.
"""

from __future__ import annotations

import enum
import re
from typing import Any


class TileType(enum.IntEnum):
    """Classifier output for a single tile patch."""

    UNKNOWN = 0
    PACMAN = 1
    WALL = 2
    BLANK = 3
    FRUIT = 4
    BLINKY = 5
    INKY = 6
    PINKY = 7
    CLYDE = 8
    FRIGHTENED_GHOST = 9
    PELLET = 10
    POWER_PELLET = 11
    TEXT = 12


class CellState(enum.IntEnum):
    """State of one board cell: a classified tile or ``IGNORE``."""

    UNKNOWN = 0
    PACMAN = 1
    WALL = 2
    BLANK = 3
    FRUIT = 4
    BLINKY = 5
    INKY = 6
    PINKY = 7
    CLYDE = 8
    FRIGHTENED_GHOST = 9
    PELLET = 10
    POWER_PELLET = 11
    TEXT = 12
    IGNORE = 13

    @classmethod
    def from_tile(cls, tile: TileType) -> "CellState":
        """Lift a classifier output into the board cell space."""
        return cls(int(tile))


_LABELS: dict[int, str] = {
    0: "Unknown",
    1: "PacMan",
    2: "Wall",
    3: "Blank",
    4: "Fruit",
    5: "Blinky",
    6: "Inky",
    7: "Pinky",
    8: "Clyde",
    9: "Frightened Ghost",
    10: "Pellet",
    11: "Power Pellet",
    12: "Text",
    13: "Ignore",
}

# One-character glyphs used by Board.render().
GLYPHS: dict[int, str] = {
    0: "?",
    1: "C",
    2: "#",
    3: " ",
    4: "%",
    5: "B",
    6: "I",
    7: "P",
    8: "K",
    9: "f",
    10: ".",
    11: "o",
    12: "T",
    13: "~",
}

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")


def all_types() -> list[TileType]:
    """Return the 13 classifiable tile types in canonical order."""
    return list(TileType)


def describe(code: Any) -> str:
    """Return a human-readable label for a tile or cell code.

    Accepts :class:`TileType`, :class:`CellState` or a plain ``int``.
    Every code from 0 to 13 has a label; anything else (out-of-range
    integers, ``bool``, non-integers) yields ``""``.
    """
    if isinstance(code, bool) or not isinstance(code, int):
        return ""
    return _LABELS.get(int(code), "")


def _normalise(name: str) -> str:
    return _NON_ALNUM_RE.sub("", name.lower())


_BY_NORMALISED_NAME: dict[str, TileType] = {}
for _tile in TileType:
    _BY_NORMALISED_NAME[_normalise(_tile.name)] = _tile
    _BY_NORMALISED_NAME[_normalise(_LABELS[_tile.value])] = _tile


def tile_type_for_label(name: str) -> TileType:
    """Map a model class name onto a :class:`TileType`.

    Matching ignores case, spaces, hyphens and underscores, so
    ``"Power Pellet"``, ``"power_pellet"`` and ``"POWER-PELLET"`` all
    resolve to :attr:`TileType.POWER_PELLET`.  Names that match no tile
    type, including ``"ignore"``, resolve to :attr:`TileType.UNKNOWN`.
    """
    return _BY_NORMALISED_NAME.get(_normalise(str(name)), TileType.UNKNOWN)
