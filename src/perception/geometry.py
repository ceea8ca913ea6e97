"""Game geometry shared by the preprocessor and the board assembler."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class GameGeometry:
    """Native dimensions of the game and the window chrome around it.

    Parameters
    ----------
    game_width : int
        Native game width in pixels (canonical frame width).
    game_height : int
        Native game height in pixels (canonical frame height).
    tile_width : int
        Width of one maze tile in canonical pixels.
    tile_height : int
        Height of one maze tile in canonical pixels.
    top_border_pt : float
        Window chrome above the playfield, in logical points.
    bottom_border_pt : float
        Window chrome below the playfield, in logical points.
    """

    game_width: int = 224
    game_height: int = 288
    tile_width: int = 8
    tile_height: int = 8
    top_border_pt: float = 20.0
    bottom_border_pt: float = 2.0

    def __post_init__(self) -> None:
        if self.game_width <= 0 or self.game_height <= 0:
            raise ValueError(
                f"Game size must be positive, got {self.game_width}x{self.game_height}"
            )
        if self.tile_width <= 0 or self.tile_height <= 0:
            raise ValueError(
                f"Tile size must be positive, got {self.tile_width}x{self.tile_height}"
            )
        if self.game_width % self.tile_width or self.game_height % self.tile_height:
            raise ValueError(
                f"Game size {self.game_width}x{self.game_height} is not a whole "
                f"number of {self.tile_width}x{self.tile_height} tiles"
            )
        if self.tile_width >= self.game_width:
            raise ValueError("Tile width must be smaller than the game width")
        if self.top_border_pt < 0 or self.bottom_border_pt < 0:
            raise ValueError("Window borders must be non-negative")

    @property
    def rows(self) -> int:
        """Number of tile rows on a board."""
        return self.game_height // self.tile_height

    @property
    def cols(self) -> int:
        """Number of tile columns on a board."""
        return self.game_width // self.tile_width

    @property
    def playfield_aspect(self) -> float:
        """Width/height ratio of the playfield inside the window.

        The rendered playfield is one tile narrower than the native game.
        """
        return (self.game_width - self.tile_width) / self.game_height

    @property
    def canonical_shape(self) -> tuple[int, int]:
        """``(height, width)`` of a canonical frame in pixels."""
        return self.game_height, self.game_width
