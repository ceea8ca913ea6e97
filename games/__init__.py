"""Per-game constants for the perception core.

The perception pipeline is game-agnostic; everything that depends on
which maze game is on screen lives in a package under ``games/``.  A
session names its game (``SessionConfig.game``) and
:func:`load_game_plugin` imports ``games.<game>`` and checks that it
exposes:

``game_name``
    Human-readable game name, used in log lines.
``default_config``
    Session YAML, relative to the project root, used by the scripts
    when no ``--config`` is given.
``default_weights``
    Tile classifier weights used when a config leaves
    ``weights_path`` unset.
``geometry``
    :class:`~src.perception.GameGeometry` of the native game frame.
``ignore_regions``
    :class:`~src.perception.CellRegion` blocks that are never
    classified (score, lives, ...).
``class_names``
    Tile classes the weights are expected to know; checked when the
    classifier loads.

Bundled: :mod:`games.pacman`.
"""

from __future__ import annotations

import importlib
import types

_PLUGIN_ATTRS = (
    "game_name",
    "default_config",
    "default_weights",
    "geometry",
    "ignore_regions",
    "class_names",
)


def load_game_plugin(name: str) -> types.ModuleType:
    """Import ``games.<name>`` and verify it exposes every plugin attribute.

    Raises
    ------
    ImportError
        If there is no such plugin package.
    AttributeError
        If the package lacks one or more plugin attributes.
    """
    module = importlib.import_module(f"games.{name}")

    absent = [attr for attr in _PLUGIN_ATTRS if not hasattr(module, attr)]
    if absent:
        raise AttributeError(
            f"games.{name} cannot be used as a game plugin, it does not define: "
            f"{', '.join(absent)}"
        )
    return module
