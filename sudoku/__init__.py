"""Sudoku constraint-grid game."""

from .sudoku_game import HOLES_BY_DIFFICULTY, SudokuGame
from .sudoku_moves import EnterValue, EraseCell, MoveType, move_from_dict
from .sudoku_state import Cell, Difficulty, SudokuState

__all__ = [
    "Cell",
    "Difficulty",
    "EnterValue",
    "EraseCell",
    "HOLES_BY_DIFFICULTY",
    "MoveType",
    "SudokuGame",
    "SudokuState",
    "move_from_dict",
]
