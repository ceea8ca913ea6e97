"""Perception session configuration.

A :class:`SessionConfig` describes everything a perception session
needs to know: which game plugin supplies the board geometry, which
on-screen window to acquire, where the tile classifier weights live,
and the acquisition / capture timing.

Configs can be loaded from YAML files via :func:`load_session_config`.
String values in YAML configs support environment variable expansion
using ``$VAR``, ``${VAR}`` or ``${VAR:-default}`` syntax, and the
weights path supports ``~`` for the user home directory.
"""

from __future__ import annotations

import dataclasses
import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

# Default search path for session config YAML files.
_CONFIGS_DIR = Path(__file__).resolve().parent.parent.parent / "configs" / "games"

# $NAME, ${NAME} or ${NAME:-default}.
_ENV_VAR_RE = re.compile(
    r"\$(?:\{(?P<braced>[A-Za-z_][A-Za-z0-9_]*)(?::-(?P<default>[^}]*))?\}"
    r"|(?P<bare>[A-Za-z_][A-Za-z0-9_]*))"
)


@dataclass
class SessionConfig:
    """Declarative description of one perception session.

    Parameters
    ----------
    name : str
        Config identifier (e.g. ``"pacman"``).
    game : str
        Game plugin directory under ``games/`` providing geometry and
        ignore regions.
    target_application : str
        Application (process) name owning the game window.
    target_window : str
        Exact title of the game window.
    weights_path : str or Path, optional
        Tile classifier weights (Ultralytics classification ``.pt``).
        ``None`` uses the game plugin's ``default_weights``.
    device : str
        Inference device, ``"auto"`` to detect.
    confidence_threshold : float
        Minimum top-1 probability for a tile prediction.
    img_size : int
        Classifier inference size.
    poll_interval_s : float
        Seconds between acquisition polls.
    acquisition_timeout_s : float
        Seconds before acquisition gives up.
    capture_fps : float
        Capture ticks per second.
    top_border_pt : float
        Window chrome above the playfield, in points.
    bottom_border_pt : float
        Window chrome below the playfield, in points.
    """

    name: str
    target_application: str
    target_window: str
    game: str = "pacman"

    # Classifier
    weights_path: str | Path | None = None
    device: str = "auto"
    confidence_threshold: float = 0.25
    img_size: int = 32

    # Timing
    poll_interval_s: float = 0.25
    acquisition_timeout_s: float = 10.0
    capture_fps: float = 11.0

    # Window chrome
    top_border_pt: float = 20.0
    bottom_border_pt: float = 2.0

    def __post_init__(self) -> None:
        if self.weights_path is not None:
            self.weights_path = Path(os.path.expanduser(_expand_vars(str(self.weights_path))))
        for attr in ("poll_interval_s", "acquisition_timeout_s", "capture_fps"):
            if getattr(self, attr) <= 0:
                raise ValueError(f"{attr} must be positive, got {getattr(self, attr)}")


def _expand_vars(value: str) -> str:
    """Expand ``$VAR``, ``${VAR}`` and ``${VAR:-default}`` in ``value``.

    Unset variables without a default are kept verbatim.
    """

    def _replace(match: re.Match) -> str:
        name = match.group("braced") or match.group("bare")
        if name in os.environ:
            return os.environ[name]
        default = match.group("default")
        return default if default is not None else match.group(0)

    return _ENV_VAR_RE.sub(_replace, value)


def _expand_string_values(data: dict) -> dict:
    """Apply :func:`_expand_vars` to every top-level string value."""
    return {
        key: _expand_vars(value) if isinstance(value, str) else value
        for key, value in data.items()
    }


def load_session_config(
    name: str,
    configs_dir: str | Path | None = None,
) -> SessionConfig:
    """Load a :class:`SessionConfig` from a YAML file.

    Searches ``configs_dir`` (default ``configs/games/``) for a file
    named ``<name>.yaml``.

    Parameters
    ----------
    name : str
        Config identifier matching the YAML filename (without extension).
    configs_dir : str or Path, optional
        Override the default config directory.

    Returns
    -------
    SessionConfig

    Raises
    ------
    FileNotFoundError
        If no YAML file is found for ``name``.
    ValueError
        If the YAML contains unknown, missing or invalid fields.
    """
    search_dir = Path(configs_dir) if configs_dir else _CONFIGS_DIR
    config_path = search_dir / f"{name}.yaml"

    if not config_path.exists():
        raise FileNotFoundError(
            f"No session config found at {config_path}. "
            f"Available configs: {[p.stem for p in search_dir.glob('*.yaml')]}"
        )

    logger.info("Loading session config from %s", config_path)
    with open(config_path, "r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)

    if not isinstance(raw, dict):
        raise ValueError(
            f"Expected a YAML mapping in {config_path}, got {type(raw).__name__}"
        )

    raw = _expand_string_values(raw)

    valid_fields = {f.name for f in dataclasses.fields(SessionConfig)}
    unknown = set(raw) - valid_fields
    if unknown:
        raise ValueError(
            f"Unknown fields in {config_path}: {sorted(unknown)}. "
            f"Valid fields: {sorted(valid_fields)}"
        )

    try:
        return SessionConfig(**raw)
    except TypeError as exc:
        raise ValueError(
            f"Invalid config in {config_path}: {exc}. "
            f"Valid fields: {sorted(valid_fields)}"
        ) from exc
