"""YOLO-based tile classifier for canonical game frames.

Loads a trained Ultralytics *classification* model (e.g. fine-tuned
``yolov8n-cls``) and maps a single tile patch to a
:class:`~src.perception.tiles.TileType`.  Uses ``resolve_device()`` to
auto-detect the best available device (XPU > CUDA > CPU) by default.

The classifier is total on valid input: labels the model knows but the
taxonomy does not, low-confidence predictions and inference errors all
map to :attr:`TileType.UNKNOWN`.  Loading never raises; :meth:`load`
reports failure through its return value so callers can refuse to
start capturing.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Sequence

import cv2
import numpy as np

from .tiles import TileType, tile_type_for_label

try:
    from ultralytics import YOLO

    _ULTRALYTICS_AVAILABLE = True
except ImportError:
    YOLO = None  # type: ignore[assignment,misc]
    _ULTRALYTICS_AVAILABLE = False

logger = logging.getLogger(__name__)


def resolve_device(requested: str = "auto") -> str:
    """Resolve the best available compute device for inference.

    Parameters
    ----------
    requested : str
        ``"auto"`` (try xpu > cuda > cpu), ``"xpu"``, ``"cuda"``,
        or ``"cpu"``.

    Returns
    -------
    str
        Device string suitable for ``TileClassifier(device=...)``.
    """
    if requested != "auto":
        return requested

    try:
        import torch

        if hasattr(torch, "xpu") and torch.xpu.is_available():
            return "xpu"
        if torch.cuda.is_available():
            return "cuda"
    except ImportError:
        pass
    return "cpu"


class TileClassifier:
    """Classifies fixed-size tile patches with a YOLO classification model.

    Parameters
    ----------
    weights_path : str or Path
        Path to the trained ``.pt`` classification weights.
    device : str
        ``"auto"`` to auto-detect (xpu > cuda > cpu), or an explicit
        device string.  Default ``"auto"``.
    confidence_threshold : float
        Predictions whose top-1 probability is below this value are
        reported as :attr:`TileType.UNKNOWN`.  Default 0.25.
    img_size : int
        Inference image size (square).  Tile patches are upscaled by
        Ultralytics to this size.  Default 32.
    class_names : sequence of str, optional
        Class names the weights are expected to carry (a game plugin's
        ``class_names``).  Compared by tile type, not by index; a model
        covering other tile types is logged as a warning.

    Attributes
    ----------
    model : YOLO or None
        The loaded Ultralytics model, ``None`` until :meth:`load`
        succeeds.
    labels : dict[int, TileType]
        Model class index to tile type, filled by :meth:`load`.
    """

    def __init__(
        self,
        weights_path: str | Path = "weights/pacman/tiles.pt",
        device: str = "auto",
        confidence_threshold: float = 0.25,
        img_size: int = 32,
        class_names: Sequence[str] | None = None,
    ) -> None:
        self.weights_path = Path(weights_path)
        self.device = resolve_device(device)
        self.confidence_threshold = confidence_threshold
        self.img_size = img_size
        self.class_names = list(class_names) if class_names is not None else None

        self.model: Any = None  # Loaded lazily
        self.labels: dict[int, TileType] = {}

    def load(self) -> bool:
        """Load the classification model and move it to the target device.

        Returns
        -------
        bool
            ``True`` if the model is ready for :meth:`classify`.
            ``False`` if ultralytics is not installed, the weights file
            is missing or unreadable, or the weights are not a
            classification model.  Failures are logged, never raised.
        """
        if not _ULTRALYTICS_AVAILABLE:
            logger.error(
                "ultralytics is required for TileClassifier. "
                "Install it with: pip install ultralytics"
            )
            return False

        if not self.weights_path.is_file():
            logger.error("Tile classifier weights not found: %s", self.weights_path)
            return False

        try:
            model = YOLO(str(self.weights_path))
        except Exception as exc:
            logger.error(
                "Failed to load tile classifier from %s: %s", self.weights_path, exc
            )
            return False

        task = getattr(model, "task", None)
        if task != "classify":
            logger.error(
                "Weights %s are a '%s' model, expected 'classify'",
                self.weights_path,
                task,
            )
            return False

        # Attempt to move model to the requested device, fall back to CPU
        try:
            model.to(self.device)
            logger.info("Tile classifier loaded on device: %s", self.device)
        except Exception:
            logger.warning("Device '%s' unavailable, falling back to CPU", self.device)
            self.device = "cpu"
            try:
                model.to("cpu")
            except Exception as cpu_exc:
                logger.error("Failed to move tile classifier to CPU: %s", cpu_exc)
                return False

        names = getattr(model, "names", {})
        self.model = model
        self.labels = self._map_labels(names)
        self._check_class_names(names)
        return True

    def _check_class_names(self, names: Any) -> None:
        """Warn when the model does not cover exactly the expected tile types."""
        if self.class_names is None:
            return
        expected = {tile_type_for_label(n) for n in self.class_names}
        found = set(self.labels.values())
        missing = sorted(t.name for t in expected - found)
        extra = sorted(t.name for t in found - expected)
        if missing or extra:
            logger.warning(
                "Model classes %s do not match the expected tile types "
                "(missing: %s, unexpected: %s)",
                names,
                missing,
                extra,
            )

    @staticmethod
    def _map_labels(names: Any) -> dict[int, TileType]:
        """Translate the model's class names into tile types."""
        if isinstance(names, dict):
            items = names.items()
        elif isinstance(names, (list, tuple)):
            items = enumerate(names)
        else:
            items = ()

        labels: dict[int, TileType] = {}
        for idx, name in items:
            tile = tile_type_for_label(str(name))
            if tile is TileType.UNKNOWN and str(name).lower() != "unknown":
                logger.warning("Model class '%s' has no tile type; mapping to Unknown", name)
            labels[int(idx)] = tile
        return labels

    def is_loaded(self) -> bool:
        """Check if the model has been loaded.

        Returns
        -------
        bool
            True if the model is loaded and ready for inference.
        """
        return self.model is not None

    def classify(self, patch: np.ndarray) -> TileType:
        """Classify a single tile patch.

        Parameters
        ----------
        patch : np.ndarray
            BGR ``(h, w, 3)`` or grayscale ``(h, w)`` uint8 tile image.

        Returns
        -------
        TileType
            The predicted tile type, or :attr:`TileType.UNKNOWN`.

        Raises
        ------
        RuntimeError
            If the model has not been loaded yet.
        ValueError
            If ``patch`` is not a non-empty image array.
        """
        return self.classify_batch([patch])[0]

    def classify_batch(self, patches: Sequence[np.ndarray]) -> list[TileType]:
        """Classify many tile patches in one inference call.

        Same contract as :meth:`classify`, one result per patch, in order.
        """
        if not self.is_loaded():
            raise RuntimeError("Model not loaded. Call load() before classify().")

        images = [_as_bgr(p) for p in patches]
        if not images:
            return []

        try:
            results = self.model(
                images,
                imgsz=self.img_size,
                verbose=False,
                device=self.device,
            )
        except Exception as exc:
            logger.warning("Tile inference failed, reporting Unknown: %s", exc)
            return [TileType.UNKNOWN] * len(images)

        tiles: list[TileType] = []
        for i in range(len(images)):
            result = results[i] if i < len(results) else None
            tiles.append(self._tile_from_result(result))
        return tiles

    def _tile_from_result(self, result: Any) -> TileType:
        probs = getattr(result, "probs", None)
        if probs is None:
            return TileType.UNKNOWN

        cls_id = int(probs.top1)
        conf = float(probs.top1conf)
        if conf < self.confidence_threshold:
            return TileType.UNKNOWN
        return self.labels.get(cls_id, TileType.UNKNOWN)


def _as_bgr(patch: np.ndarray) -> np.ndarray:
    """Validate a tile patch and return it as a contiguous BGR image."""
    if not isinstance(patch, np.ndarray) or patch.size == 0:
        raise ValueError("Tile patch must be a non-empty numpy array")
    if patch.ndim == 2:
        return cv2.cvtColor(patch, cv2.COLOR_GRAY2BGR)
    if patch.ndim == 3 and patch.shape[2] == 3:
        return np.ascontiguousarray(patch)
    if patch.ndim == 3 and patch.shape[2] == 4:
        return cv2.cvtColor(patch, cv2.COLOR_BGRA2BGR)
    raise ValueError(f"Unsupported tile patch shape {patch.shape}")
