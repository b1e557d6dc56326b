"""The Game board implements all rules that only depend on the position: placing marks and reading off the result."""

from dataclasses import dataclass
from typing import Optional, Self

from matchplay.core.exceptions import (
    CellOccupiedError,
    GameError,
    InvalidPositionError,
)
from matchplay.core.shared_types import Mark

# 3x3 grid, cells indexed row by row: 0 1 2 / 3 4 5 / 6 7 8
BOARD_DIMENSION = 3
CELL_COUNT = BOARD_DIMENSION * BOARD_DIMENSION

WINNING_LINES: tuple[tuple[int, int, int], ...] = (
    # rows
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    # columns
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    # diagonals
    (0, 4, 8),
    (2, 4, 6),
)


@dataclass
class Board:
    cells: list[Mark]

    @classmethod
    def empty(cls) -> Self:
        return cls([Mark.EMPTY] * CELL_COUNT)

    @classmethod
    def from_cells(cls, cells: list[int]) -> Self:
        """Construct a board from the stored representation (a list of 9 integers)."""
        if len(cells) != CELL_COUNT:
            raise GameError(
                f"A board has exactly {CELL_COUNT} cells, got {len(cells)}."
            )
        try:
            return cls([Mark(cell) for cell in cells])
        except ValueError as exc:
            raise GameError(f"Unknown cell value in board {cells!r}.") from exc

    def to_cells(self) -> list[int]:
        return [int(mark) for mark in self.cells]

    def mark(self, index: int) -> Mark:
        return self.cells[index]

    @staticmethod
    def is_within_bounds(index: int) -> bool:
        return isinstance(index, int) and not isinstance(index, bool) and 0 <= index < CELL_COUNT

    def place(self, mark: Mark, index: int) -> None:
        """Write a mark into an empty cell. A cell, once marked, never changes."""
        if mark == Mark.EMPTY:
            raise GameError("Cannot place an empty mark.")
        if not self.is_within_bounds(index):
            raise InvalidPositionError(
                f"Cell {index!r} is off the board. Pick one from 0-{CELL_COUNT - 1}."
            )
        if self.cells[index] != Mark.EMPTY:
            raise CellOccupiedError(f"Cell {index} is already taken.")
        self.cells[index] = mark

    def winning_mark(self) -> Optional[Mark]:
        """Mark that owns a full line, if any."""
        for a, b, c in WINNING_LINES:
            if self.cells[a] != Mark.EMPTY and self.cells[a] == self.cells[b] == self.cells[c]:
                return self.cells[a]
        return None

    def is_full(self) -> bool:
        return all(mark != Mark.EMPTY for mark in self.cells)
