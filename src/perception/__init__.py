"""Perception module -- frame preprocessing, tile classification and board assembly."""

from .board import Board, BoardAssembler, CellRegion
from .geometry import GameGeometry
from .preprocessor import (
    CanonicalFrame,
    CapturedFrame,
    CropRect,
    FramePreprocessor,
    FrameTooSmallError,
)
from .tile_classifier import TileClassifier, resolve_device
from .tiles import CellState, TileType, all_types, describe, tile_type_for_label

__all__ = [
    "Board",
    "BoardAssembler",
    "CanonicalFrame",
    "CapturedFrame",
    "CellRegion",
    "CellState",
    "CropRect",
    "FramePreprocessor",
    "FrameTooSmallError",
    "GameGeometry",
    "TileClassifier",
    "TileType",
    "all_types",
    "describe",
    "resolve_device",
    "tile_type_for_label",
]
