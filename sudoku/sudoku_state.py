"""State and enums for the Sudoku constraint grid."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from gamecore.state import BoardState

GRID_SIZE = 9
BLOCK_SIZE = 3
DEFAULT_MAX_MISTAKES = 3


class Difficulty(str, Enum):
    """Puzzle difficulty levels offered by the service."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


@dataclass(frozen=True)
class Cell:
    """One grid cell; ``value`` is None while empty."""

    row: int
    col: int
    value: int | None = None
    read_only: bool = False
    is_error: bool = False


@dataclass(frozen=True)
class SudokuState(BoardState):
    """Immutable 9x9 board plus the mistake budget."""

    seed: int
    difficulty: Difficulty
    cells: tuple[tuple[Cell, ...], ...]
    mistakes: int = 0
    max_mistakes: int = DEFAULT_MAX_MISTAKES
    move_count: int = 0

    def cell(self, row: int, col: int) -> Cell | None:
        """Return the cell at ``(row, col)`` or None when out of range."""
        if 0 <= row < GRID_SIZE and 0 <= col < GRID_SIZE:
            return self.cells[row][col]
        return None

    def filled_count(self) -> int:
        """Count cells holding a value."""
        return sum(1 for line in self.cells for cell in line if cell.value is not None)

    def has_errors(self) -> bool:
        """Return True when any cell is in conflict."""
        return any(cell.is_error for line in self.cells for cell in line)

    def mistake_limit_reached(self) -> bool:
        return self.mistakes >= self.max_mistakes
