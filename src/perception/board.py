"""Board assembly: turn a canonical frame into a grid of cell states.

The canonical frame is partitioned into ``rows x cols`` tiles of
``tile_height x tile_width`` pixels.  Tiles inside ignore regions
(score rows, status bar) become :attr:`CellState.IGNORE` without
touching the classifier; every other tile is classified in a single
batched call.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Iterable, Protocol, Sequence

import numpy as np

from .geometry import GameGeometry
from .preprocessor import CanonicalFrame
from .tiles import GLYPHS, CellState, TileType

logger = logging.getLogger(__name__)


class PatchClassifier(Protocol):
    """What the assembler needs from a tile classifier."""

    def classify_batch(self, patches: Sequence[np.ndarray]) -> list[TileType]: ...


@dataclass(frozen=True)
class CellRegion:
    """Half-open block of cells ``[row_start, row_stop) x [col_start, col_stop)``.

    ``col_stop`` of ``None`` means "to the last column".
    """

    row_start: int
    row_stop: int
    col_start: int = 0
    col_stop: int | None = None

    def contains(self, row: int, col: int) -> bool:
        if not self.row_start <= row < self.row_stop:
            return False
        if col < self.col_start:
            return False
        return self.col_stop is None or col < self.col_stop


@dataclass(frozen=True)
class Board:
    """Immutable grid of cell states for one captured frame.

    Parameters
    ----------
    cells : tuple[tuple[CellState, ...], ...]
        Row-major grid, ``cells[row][col]``.
    timestamp : float
        Capture time of the source frame (scheduler clock seconds).
    """

    cells: tuple[tuple[CellState, ...], ...]
    timestamp: float

    @property
    def rows(self) -> int:
        return len(self.cells)

    @property
    def cols(self) -> int:
        return len(self.cells[0]) if self.cells else 0

    def __getitem__(self, pos: tuple[int, int]) -> CellState:
        row, col = pos
        return self.cells[row][col]

    def positions(self, state: CellState | TileType) -> list[tuple[int, int]]:
        """All ``(row, col)`` positions holding ``state``, row-major."""
        code = int(state)
        return [
            (r, c)
            for r, row in enumerate(self.cells)
            for c, cell in enumerate(row)
            if int(cell) == code
        ]

    def counts(self) -> Counter:
        """Number of cells per :class:`CellState`."""
        return Counter(cell for row in self.cells for cell in row)

    def to_array(self) -> np.ndarray:
        """Return the cell codes as a fresh ``(rows, cols)`` int8 array."""
        return np.array(
            [[int(cell) for cell in row] for row in self.cells], dtype=np.int8
        )

    def render(self) -> str:
        """One glyph per cell, one line per row.  Diagnostics only."""
        return "\n".join("".join(GLYPHS[int(cell)] for cell in row) for row in self.cells)


class BoardAssembler:
    """Classifies canonical frames into :class:`Board` snapshots.

    Parameters
    ----------
    classifier : PatchClassifier
        A loaded tile classifier (usually :class:`TileClassifier`).
    geometry : GameGeometry
        Canonical frame size and tile size.
    ignore_regions : iterable of CellRegion
        Cells that are never classified and always ``IGNORE``.
    """

    def __init__(
        self,
        classifier: PatchClassifier,
        geometry: GameGeometry | None = None,
        ignore_regions: Iterable[CellRegion] = (),
    ) -> None:
        self.classifier = classifier
        self.geometry = geometry or GameGeometry()
        self.ignore_regions: tuple[CellRegion, ...] = tuple(ignore_regions)

        # Precomputed once; the grid never changes within a session.
        self._ignored = np.zeros((self.rows, self.cols), dtype=bool)
        for r in range(self.rows):
            for c in range(self.cols):
                self._ignored[r, c] = any(
                    region.contains(r, c) for region in self.ignore_regions
                )

    @property
    def rows(self) -> int:
        return self.geometry.rows

    @property
    def cols(self) -> int:
        return self.geometry.cols

    def is_ignored(self, row: int, col: int) -> bool:
        """Whether the cell at ``(row, col)`` is excluded from classification."""
        return bool(self._ignored[row, col])

    def assemble(self, frame: CanonicalFrame) -> Board:
        """Build the board for one canonical frame.

        Raises
        ------
        ValueError
            If the frame is not at the canonical resolution.
        """
        image = frame.image
        if image.shape[:2] != self.geometry.canonical_shape:
            raise ValueError(
                f"Expected a canonical {self.geometry.canonical_shape} frame, "
                f"got {image.shape[:2]}"
            )

        th = self.geometry.tile_height
        tw = self.geometry.tile_width

        positions: list[tuple[int, int]] = []
        patches: list[np.ndarray] = []
        for r in range(self.rows):
            for c in range(self.cols):
                if self._ignored[r, c]:
                    continue
                positions.append((r, c))
                patches.append(image[r * th : (r + 1) * th, c * tw : (c + 1) * tw])

        tiles = self.classifier.classify_batch(patches) if patches else []
        if len(tiles) != len(patches):
            raise RuntimeError(
                f"Classifier returned {len(tiles)} results for {len(patches)} tiles"
            )

        grid = [[CellState.IGNORE] * self.cols for _ in range(self.rows)]
        for (r, c), tile in zip(positions, tiles):
            grid[r][c] = CellState.from_tile(tile)

        return Board(
            cells=tuple(tuple(row) for row in grid),
            timestamp=frame.timestamp,
        )
