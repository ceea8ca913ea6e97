"""Tests for BoardAssembler, Board and CellRegion."""

from __future__ import annotations

import dataclasses

import numpy as np
import pytest

from conftest import ScriptedClassifier
from games.pacman.perception import PACMAN_IGNORE_REGIONS
from src.perception.board import Board, BoardAssembler, CellRegion
from src.perception.preprocessor import CanonicalFrame
from src.perception.tiles import CellState, TileType


def _frame(image=None, timestamp=5.0) -> CanonicalFrame:
    if image is None:
        image = np.zeros((288, 224, 3), dtype=np.uint8)
    return CanonicalFrame(image=image, timestamp=timestamp, scale_factor=2.0)


def _colour_rule(patch: np.ndarray) -> TileType:
    """Blue tiles are walls, white tiles pellets, everything else blank."""
    b, g, r = (int(v) for v in patch[0, 0])
    if b > 200 and g < 50:
        return TileType.WALL
    if b > 200 and g > 200 and r > 200:
        return TileType.PELLET
    return TileType.BLANK


def _paint(image: np.ndarray, row: int, col: int, colour) -> None:
    image[row * 8 : (row + 1) * 8, col * 8 : (col + 1) * 8] = colour


@pytest.fixture
def assembler(classifier, geometry):
    return BoardAssembler(classifier, geometry, PACMAN_IGNORE_REGIONS)


class TestCellRegion:
    def test_half_open_rows(self):
        region = CellRegion(0, 3)
        assert region.contains(0, 0)
        assert region.contains(2, 27)
        assert not region.contains(3, 0)

    def test_column_bounds(self):
        region = CellRegion(5, 6, col_start=10, col_stop=12)
        assert region.contains(5, 10)
        assert region.contains(5, 11)
        assert not region.contains(5, 12)
        assert not region.contains(5, 9)

    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            CellRegion(0, 1).row_stop = 5


class TestAssemble:
    def test_shape(self, assembler):
        board = assembler.assemble(_frame())
        assert (board.rows, board.cols) == (36, 28)
        assert board.timestamp == 5.0

    def test_ignored_rows_always_ignore(self, geometry):
        # A classifier that would call everything a wall.
        clf = ScriptedClassifier(lambda _p: TileType.WALL)
        board = BoardAssembler(clf, geometry, PACMAN_IGNORE_REGIONS).assemble(_frame())
        for row in (0, 1, 2, 34, 35):
            assert set(board.cells[row]) == {CellState.IGNORE}
        for row in range(3, 34):
            assert set(board.cells[row]) == {CellState.WALL}

    def test_ignored_cells_never_classified(self, assembler, classifier):
        assembler.assemble(_frame())
        assert classifier.patches_seen == 31 * 28
        assert classifier.batches == 1

    def test_patches_are_tile_sized(self, geometry):
        shapes = set()

        def rule(patch):
            shapes.add(patch.shape)
            return TileType.BLANK

        BoardAssembler(ScriptedClassifier(rule), geometry).assemble(_frame())
        assert shapes == {(8, 8, 3)}

    def test_cells_follow_patch_content(self, assembler, geometry):
        clf = ScriptedClassifier(_colour_rule)
        assembler = BoardAssembler(clf, geometry, PACMAN_IGNORE_REGIONS)
        image = np.zeros((288, 224, 3), dtype=np.uint8)
        _paint(image, 3, 0, (255, 0, 0))
        _paint(image, 10, 5, (255, 255, 255))
        _paint(image, 0, 0, (255, 0, 0))  # inside the score rows

        board = assembler.assemble(_frame(image))
        assert board[3, 0] is CellState.WALL
        assert board[10, 5] is CellState.PELLET
        assert board[0, 0] is CellState.IGNORE
        assert board[20, 20] is CellState.BLANK

    def test_no_ignore_regions(self, classifier, geometry):
        board = BoardAssembler(classifier, geometry).assemble(_frame())
        assert CellState.IGNORE not in board.counts()
        assert classifier.patches_seen == 36 * 28

    def test_everything_ignored_skips_classifier(self, classifier, geometry):
        board = BoardAssembler(classifier, geometry, [CellRegion(0, 36)]).assemble(_frame())
        assert board.counts() == {CellState.IGNORE: 36 * 28}
        assert classifier.batches == 0

    def test_wrong_frame_shape(self, assembler):
        with pytest.raises(ValueError, match="canonical"):
            assembler.assemble(_frame(np.zeros((100, 100, 3), dtype=np.uint8)))

    def test_classifier_result_count_mismatch(self, geometry):
        class Short(ScriptedClassifier):
            def classify_batch(self, patches):
                return super().classify_batch(patches)[:-1]

        with pytest.raises(RuntimeError, match="results"):
            BoardAssembler(Short(), geometry).assemble(_frame())

    def test_is_ignored(self, assembler):
        assert assembler.is_ignored(0, 0)
        assert assembler.is_ignored(35, 27)
        assert not assembler.is_ignored(3, 0)
        assert not assembler.is_ignored(33, 27)


class TestBoard:
    @pytest.fixture
    def board(self, assembler):
        return assembler.assemble(_frame())

    def test_immutable(self, board):
        with pytest.raises(dataclasses.FrozenInstanceError):
            board.timestamp = 1.0
        with pytest.raises(TypeError):
            board.cells[5][5] = CellState.WALL

    def test_to_array(self, board):
        arr = board.to_array()
        assert arr.shape == (36, 28)
        assert arr.dtype == np.int8
        assert arr[0, 0] == int(CellState.IGNORE)
        assert arr[10, 10] == int(CellState.BLANK)
        arr[10, 10] = 99
        assert board[10, 10] is CellState.BLANK

    def test_positions(self, geometry):
        clf = ScriptedClassifier(_colour_rule)
        image = np.zeros((288, 224, 3), dtype=np.uint8)
        _paint(image, 4, 7, (255, 255, 255))
        _paint(image, 12, 1, (255, 255, 255))
        board = BoardAssembler(clf, geometry).assemble(_frame(image))
        assert board.positions(TileType.PELLET) == [(4, 7), (12, 1)]
        assert board.positions(CellState.PELLET) == [(4, 7), (12, 1)]

    def test_counts(self, board):
        counts = board.counts()
        assert counts[CellState.IGNORE] == 5 * 28
        assert counts[CellState.BLANK] == 31 * 28

    def test_render(self, board):
        lines = board.render().splitlines()
        assert len(lines) == 36
        assert all(len(line) == 28 for line in lines)
        assert lines[0] != lines[10]

    def test_empty_board(self):
        board = Board(cells=(), timestamp=0.0)
        assert (board.rows, board.cols) == (0, 0)
