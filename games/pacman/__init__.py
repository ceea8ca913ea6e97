"""Pac-Man game plugin.

Provides the game-specific constants the perception core needs:

- :data:`~games.pacman.perception.PACMAN_GEOMETRY` -- native resolution,
  tile size and window chrome
- :data:`~games.pacman.perception.PACMAN_IGNORE_REGIONS` -- HUD rows the
  board assembler never classifies
- :data:`~games.pacman.perception.PACMAN_CLASSES` -- tile classifier
  class names
- Config file: ``configs/games/pacman.yaml``

Plugin metadata (used by ``games.load_game_plugin()``)::

    from games import load_game_plugin
    plugin = load_game_plugin("pacman")
    assembler = BoardAssembler(classifier, plugin.geometry, plugin.ignore_regions)
"""

from games.pacman.perception import (
    PACMAN_CLASSES,
    PACMAN_GEOMETRY,
    PACMAN_IGNORE_REGIONS,
)

__all__ = ["PACMAN_CLASSES", "PACMAN_GEOMETRY", "PACMAN_IGNORE_REGIONS"]

# -- Plugin metadata (required by games.load_game_plugin) ------------------
game_name = "pacman"
default_config = "configs/games/pacman.yaml"
default_weights = "weights/pacman/tiles.pt"
geometry = PACMAN_GEOMETRY
ignore_regions = PACMAN_IGNORE_REGIONS
class_names = PACMAN_CLASSES
